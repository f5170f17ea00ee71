from datetime import date

import pytest

from lms.exceptions import BusinessRuleError
from lms.utils.months import current_month, month_of, resolve_month


def test_resolve_month_defaults_to_current_month():
    assert resolve_month(None) == date.today().strftime("%Y-%m")
    assert resolve_month("   ") == current_month()


def test_resolve_month_accepts_well_formed_month():
    assert resolve_month("2025-08") == "2025-08"
    assert resolve_month(" 2025-08 ") == "2025-08"


@pytest.mark.parametrize("bad", ["2025/08", "25-08", "2025-8", "August", "2025-08-01"])
def test_resolve_month_rejects_malformed_month(bad):
    with pytest.raises(BusinessRuleError):
        resolve_month(bad)


def test_month_of_date():
    assert month_of("2025-08-27") == "2025-08"
    with pytest.raises(BusinessRuleError):
        month_of("27/08/2025")
