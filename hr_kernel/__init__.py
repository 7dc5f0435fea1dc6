"""
HR Kernel - UAE labor-law compliance core.

Shared foundations for the calculation engines and modules:
- Typed exceptions with machine-readable codes
- Structured JSON logging with request-scoped context
- Injectable clock (engines never read wall-clock time)
- Immutable employee, leave and loan records
- Decimal-only money with rounding at output boundaries
"""

__version__ = "0.1.0"
