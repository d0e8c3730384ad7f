"""Host identity used to namespace stored views."""

from __future__ import annotations

import socket


def current_host() -> str:
    """Return the short name of the current machine."""
    name = socket.gethostname().strip()
    short = name.split(".", 1)[0]
    return short or name or "localhost"


__all__ = ["current_host"]
