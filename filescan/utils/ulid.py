"""ULID generation utility for filescan.

Provides a single `generate_ulid()` function that returns a 26-character ULID
(Universally Unique Lexicographically Sortable Identifier) used as:
  - the session id handed out by ``SessionManager.open_session()``
  - the ``session_id`` field bound into structured log entries

ULIDs sort by creation time, so session listings come out oldest-first
without a separate timestamp.

Uses the `python-ulid` library (see pyproject.toml) — do NOT hand-roll ULID generation.
"""

from __future__ import annotations

from ulid import ULID


def generate_ulid() -> str:
    """Generate a new ULID as a 26-character uppercase string.

    Returns:
        str: A 26-character ULID string.
             Format: Crockford Base32 — charset ``[0-9A-HJKMNP-TV-Z]``, exactly 26 chars.
    """
    return str(ULID())
