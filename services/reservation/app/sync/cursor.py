import base64
from typing import Optional
from uuid import UUID


def encode_cursor(last_id: UUID) -> str:
    return base64.urlsafe_b64encode(str(last_id).encode("ascii")).decode("ascii")


def decode_cursor(cursor: Optional[str]) -> Optional[UUID]:
    if not cursor:
        return None
    try:
        return UUID(base64.urlsafe_b64decode(cursor.encode("ascii")).decode("ascii"))
    except (ValueError, UnicodeError) as exc:
        raise ValueError(f"Cursor de sincronização inválido: {cursor!r}") from exc
