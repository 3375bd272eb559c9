"""HTTP surface for the payroll cycle engine."""
