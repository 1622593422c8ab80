"""pgwarden: a permission-tiered SQL tool endpoint for PostgreSQL."""

__version__ = "0.1.0"
