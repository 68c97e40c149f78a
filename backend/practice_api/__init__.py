"""Multi-tenant practice management and sales API."""

__version__ = "0.1.0"
