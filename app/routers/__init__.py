"""
HRMS Multi-Country Payroll - Routers Package

FastAPI route handlers.

Routers:
- payroll: Country payroll runs, CTC previews, calculator diagnostics
"""
