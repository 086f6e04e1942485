"""Utility functions for macroboard."""
from .logging_security import SecureLogger, redact_text, redact_url
from .periods import is_later, parse_period, parse_year
from .serialization import to_float

__all__ = [
    # Logging utilities
    'SecureLogger',
    'redact_text',
    'redact_url',
    # Period utilities
    'is_later',
    'parse_period',
    'parse_year',
    # Scalar coercion
    'to_float',
]
