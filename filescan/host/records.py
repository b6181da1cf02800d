"""Plain-dict records for ``AnalysisResult`` — the host naming contract.

Hosts written against different conventions consume the same result:
snake_case (``top_words``, ``risk_score``) or camelCase (``topWords``,
``riskScore``). ``to_record()`` produces either; ``normalize_record()`` turns
a camelCase record (or any mix) back into snake_case.

Record shape (snake_case)::

    {
        "top_words": [["word", 3], ...],
        "banned_phrases": ["confidential", ...],   # sorted
        "pii_patterns": ["123-45-6789", ...],
        "entropy": 4.12,
        "is_obfuscated": False,
        "decision": "allow",
        "reason": "File appears safe",
        "risk_score": 0.0,
        "stats": {
            "total_chunks": 2,
            "total_content_length": 120,
            "processing_time": 0.8,     # ms
            "memory_usage": 240,        # bytes (estimate)
            "throughput": 150000.0,     # chars/s
        },
    }
"""

from __future__ import annotations

from typing import Any

from filescan.models.analysis import AnalysisResult

SNAKE = "snake"
CAMEL = "camel"
KEY_STYLES: frozenset[str] = frozenset({SNAKE, CAMEL})


def snake_to_camel(key: str) -> str:
    """``"risk_score"`` → ``"riskScore"``."""
    head, *rest = key.split("_")
    return head + "".join(part[:1].upper() + part[1:] for part in rest)


def camel_to_snake(key: str) -> str:
    """``"riskScore"`` → ``"risk_score"``. Already-snake keys are unchanged."""
    out: list[str] = []
    for index, char in enumerate(key):
        if char.isupper():
            if index > 0 and key[index - 1] != "_":
                out.append("_")
            out.append(char.lower())
        else:
            out.append(char)
    return "".join(out)


def _rekey(value: Any, convert) -> Any:
    if isinstance(value, dict):
        return {convert(k) if isinstance(k, str) else k: _rekey(v, convert) for k, v in value.items()}
    if isinstance(value, list):
        return [_rekey(item, convert) for item in value]
    return value


def to_record(result: AnalysisResult, key_style: str = SNAKE) -> dict[str, Any]:
    """Convert a result to a JSON-compatible dict.

    Args:
        result:    The analysis result.
        key_style: ``"snake"`` (default) or ``"camel"``.

    Raises:
        ValueError: Unknown ``key_style``.
    """
    if key_style not in KEY_STYLES:
        raise ValueError(
            f"Unknown key_style {key_style!r}; expected one of {sorted(KEY_STYLES)}"
        )

    stats = result.stats
    record: dict[str, Any] = {
        "top_words": [[word, count] for word, count in result.top_words],
        "banned_phrases": sorted(result.banned_phrases),
        "pii_patterns": list(result.pii_patterns),
        "entropy": result.entropy,
        "is_obfuscated": result.is_obfuscated,
        "decision": result.decision.value,
        "reason": result.reason,
        "risk_score": result.risk_score,
        "stats": {
            "total_chunks": stats.total_chunks,
            "total_content_length": stats.total_content_length,
            "processing_time": stats.processing_time_ms,
            "memory_usage": stats.memory_usage_bytes,
            "throughput": stats.throughput_chars_per_sec,
        },
    }
    if key_style == CAMEL:
        return _rekey(record, snake_to_camel)
    return record


def normalize_record(record: dict[str, Any]) -> dict[str, Any]:
    """Return a copy of ``record`` with every dict key in snake_case (recursive)."""
    return _rekey(record, camel_to_snake)
