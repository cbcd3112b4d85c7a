"""
Cedar policy codec Python implementation.

Provides the structured policy model and its text codec (lexer, parser,
serializer, validation), the policy service wire records, and a client
for the remote policy service.
"""

from . import client
from . import config
from . import policy
from . import records

__version__ = "1.0.0"

__all__ = [
    "client",
    "config",
    "policy",
    "records",
]
