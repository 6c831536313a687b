"""
api/params.py -- Path parameter parsing shared by the resource routers.

Identifiers are declared as str in the route signatures and parsed here so a
non-numeric id yields a 400 with a resource-specific message instead of
FastAPI's generic validation error.
"""

import re

from core.database import MAX_ROW_ID, MIN_ROW_ID
from core.errors import ValidationError

_ID_RE = re.compile(r"-?[0-9]+")


def parse_id(raw: str, message: str = "ID debe ser un número válido") -> int:
    """Return raw as an int, or raise ValidationError(message).

    Values outside the 64-bit row id range are rejected too: no row can have
    them, and the driver cannot bind them.
    """
    if not _ID_RE.fullmatch(raw):
        raise ValidationError(message, code="invalid_id")
    value = int(raw)
    if not MIN_ROW_ID <= value <= MAX_ROW_ID:
        raise ValidationError(message, code="invalid_id")
    return value
