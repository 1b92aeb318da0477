"""
Sentiment Kernel - shared infrastructure for the batch engine.

- Typed, code-carrying exceptions
- Structured JSON logging with context propagation
- Injectable clock
- SQLAlchemy declarative base and session helpers
"""

__version__ = "0.1.0"
