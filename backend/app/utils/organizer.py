"""
Caller identity.

Authentication happens upstream; it forwards the authenticated organizer's id
in the X-Organizer-Id header. The engine only uses it for ownership checks.
"""
from typing import Optional

from fastapi import Header, HTTPException


def get_organizer_id(x_organizer_id: Optional[str] = Header(default=None)) -> int:
    if not x_organizer_id or not x_organizer_id.strip():
        raise HTTPException(status_code=401, detail="Missing organizer identity")
    try:
        return int(x_organizer_id)
    except ValueError:
        raise HTTPException(status_code=401, detail="Invalid organizer identity")
