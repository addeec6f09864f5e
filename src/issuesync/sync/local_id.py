"""Generation of temporary ids for issues authored offline."""

import secrets
from collections.abc import Collection

from ..models import LOCAL_ID_PREFIX

TOKEN_BYTES = 4


def generate_local_id(existing: Collection[str] = ()) -> str:
    """Generate a temporary id not present in existing.

    Examples:
        >>> generate_local_id().startswith("T")
        True
    """
    while True:
        candidate = f"{LOCAL_ID_PREFIX}{secrets.token_hex(TOKEN_BYTES)}"
        if candidate not in existing:
            return candidate
