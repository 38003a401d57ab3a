import base64
import binascii
import json
from datetime import datetime
from typing import Tuple


def encode_cursor(created_at: datetime, entry_id: int) -> str:
    """Opaque, URL-safe token for the last row of a page."""
    raw = json.dumps([created_at.isoformat(), entry_id], separators=(",", ":"))
    return base64.urlsafe_b64encode(raw.encode("utf-8")).decode("ascii").rstrip("=")


def decode_cursor(token: str) -> Tuple[datetime, int]:
    """Inverse of encode_cursor. Raises ValueError for anything it did not produce."""
    padded = token + "=" * (-len(token) % 4)
    try:
        created_at, entry_id = json.loads(base64.urlsafe_b64decode(padded.encode("ascii")))
        return datetime.fromisoformat(created_at), int(entry_id)
    except (binascii.Error, UnicodeError, TypeError, ValueError) as e:
        raise ValueError(f"Malformed cursor: {token!r}") from e
