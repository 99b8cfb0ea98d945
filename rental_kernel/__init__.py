"""
Rental Kernel

Shared infrastructure for the rental payment schedule engine:
- Structured JSON logging with request-scoped context
- Typed exception hierarchy with machine-readable codes
- Injectable clock and Decimal money helpers
- SQLAlchemy declarative base and engine/session management
"""

__version__ = "0.1.0"
