"""Domain errors raised by services and translated to HTTP responses in `main`."""


class ResourceNotFoundError(LookupError):
    """A requested entity does not exist (HTTP 404)."""


class BusinessRuleError(ValueError):
    """A request breaks a business rule such as a duplicate payment (HTTP 400)."""
