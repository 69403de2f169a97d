"""General utility helpers for the Towncryer SDK."""
from __future__ import annotations

import os
import time
from datetime import datetime, timezone

ENV_PREFIX = "TOWNCRYER_"


def environment_name(key: str) -> str:
    """Convert a config key (``organisation_id``) into its env var (``TOWNCRYER_ORGANISATION_ID``)."""
    return f"{ENV_PREFIX}{key.upper()}"


def resolve_env_reference(value: object) -> object:
    """Replace an ``env:NAME`` string with ``$NAME``; ``None`` when it is unset."""
    if isinstance(value, str) and value[:4].lower() == "env:":
        name = value[4:].strip()
        return os.environ.get(name) if name else None
    return value


def split_full_name(name: str) -> tuple[str, str]:
    """Split ``"Jane van Dyke"`` into ``("Jane", "van Dyke")``."""
    parts = name.split()
    if not parts:
        return "", ""
    return parts[0], " ".join(parts[1:])


def utc_timestamp() -> str:
    return datetime.now(tz=timezone.utc).isoformat()


def now_ms() -> int:
    return int(time.time() * 1000)
