"""Application package for the LMS administration backend.

This package exposes the service, repository and model modules used by
the FastAPI application: students, courses, teachers, payments and
expenses, plus the authentication helpers guarding them. Individual
modules contain the concrete implementations and documentation.
"""
