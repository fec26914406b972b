"""Gross/net payroll conversion service with versioned tax rules."""

__version__ = "1.0.0"
