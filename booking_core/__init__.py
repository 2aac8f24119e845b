"""Scheduling and authorization core for multi-tenant booking."""

__version__ = "0.1.0"
