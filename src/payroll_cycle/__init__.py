"""Biweekly payroll cycle and obligation scheduling engine."""

__version__ = "0.1.0"
