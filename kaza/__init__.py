"""Kaza CRM - real-estate sales and commission service."""

__version__ = "1.0.0"
