"""Analysis data contracts.

  - ``Decision``        — the allow/block verdict, exchanged as its literal string value
  - ``AnalyzerState``   — lifecycle state of a ``StreamingAnalyzer``
  - ``AnalysisStats``   — chunk/size counters plus wall-clock derived metrics
  - ``AnalysisResult``  — immutable value produced by one ``finalize()`` call

Both dataclasses are frozen: a result is never mutated after ``finalize()``
returns it. Host-facing dict records (snake_case or camelCase keys) are built
by ``filescan.host.records``, not here.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum


class Decision(str, Enum):
    """Final verdict for one file."""

    ALLOW = "allow"
    BLOCK = "block"


class AnalyzerState(str, Enum):
    """Operational state of a streaming analyzer.

    EMPTY → ACCUMULATING (first ``process_chunk``) → FINALIZED (``finalize``).
    ``reset`` returns to EMPTY from any state.
    """

    EMPTY = "empty"
    ACCUMULATING = "accumulating"
    FINALIZED = "finalized"


@dataclass(frozen=True)
class AnalysisStats:
    """Counters and performance metrics for one finalize call.

    Fields:
        total_chunks:             Number of ``process_chunk`` calls, zero-length chunks included.
        total_content_length:     Sum of chunk lengths in characters.
        processing_time_ms:       Monotonic time from analyzer creation (or last reset) to finalize.
        memory_usage_bytes:       Estimated in-memory footprint of the buffered content.
        throughput_chars_per_sec: total_content_length / elapsed seconds (0.0 if elapsed is 0).

    The last three fields are wall-clock derived and are not expected to be
    identical across two analyses of the same content.
    """

    total_chunks: int = 0
    total_content_length: int = 0
    processing_time_ms: float = 0.0
    memory_usage_bytes: int = 0
    throughput_chars_per_sec: float = 0.0


@dataclass(frozen=True)
class AnalysisResult:
    """Outcome of analyzing the concatenation of all ingested chunks.

    Fields:
        top_words:      Up to 10 ``(word, count)`` pairs, most frequent first,
                        ties in first-seen order.
        banned_phrases: Reference phrases found (case-insensitive substring match).
        pii_patterns:   Raw matched substrings, in pattern-family order, duplicates kept.
        entropy:        Shannon entropy in bits per character; 0.0 for empty content.
        is_obfuscated:  ``entropy > 4.8``.
        risk_score:     Additive heuristic clamped to ``[0.0, 1.0]``.
        decision:       ``Decision.ALLOW`` or ``Decision.BLOCK``.
        reason:         Human-readable explanation built from the same signals.
        stats:          ``AnalysisStats`` for this finalize call.
    """

    top_words: tuple[tuple[str, int], ...] = ()
    banned_phrases: frozenset[str] = frozenset()
    pii_patterns: tuple[str, ...] = ()
    entropy: float = 0.0
    is_obfuscated: bool = False
    risk_score: float = 0.0
    decision: Decision = Decision.ALLOW
    reason: str = "File appears safe"
    stats: AnalysisStats = field(default_factory=AnalysisStats)

    @property
    def blocked(self) -> bool:
        """True when the decision is BLOCK."""
        return self.decision is Decision.BLOCK
