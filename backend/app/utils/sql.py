"""
SQL utilities for consistent handling of query results.

SQLModel/SQLAlchemy may return COUNT/MAX results as int or as a 1-tuple/Row.
Use scalar_int() to safely coerce to int everywhere.
"""
from typing import Any, Optional


def _unwrap(x: Any) -> Any:
    if isinstance(x, (tuple, list)) or hasattr(x, "_mapping"):
        return x[0]
    return x


def scalar_int(x: Any) -> int:
    """Convert COUNT/aggregate result to int. Handles int or 1-tuple/Row."""
    return int(_unwrap(x))


def scalar_int_or_none(x: Any) -> Optional[int]:
    """Like scalar_int, but MAX over an empty set stays None."""
    value = _unwrap(x)
    return None if value is None else int(value)
