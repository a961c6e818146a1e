"""Data-access and service layer for a multi-tenant booking platform."""

__version__ = "0.1.0"
