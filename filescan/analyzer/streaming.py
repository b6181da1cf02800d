"""StreamingAnalyzer — per-file chunk accumulator and content analyzer.

Provides:
  - ``ContentAnalyzer``: the capability set every analyzer exposes
    (``process_chunk``, ``finalize``, ``reset``). Hosts and wrappers such as
    ``filescan.host.limits.BoundedAnalyzer`` depend on this protocol only;
    test doubles implement it too.
  - ``StreamingAnalyzer``: the single production implementation.

Key design constraints:
  - One instance per file. State is never shared between files; ``reset()``
    restores the just-created invariants so an instance can be reused.
  - Chunks are concatenated in ingestion order before analysis, so any split
    of the same content yields the same result (stats timing aside).
  - Synchronous, CPU-only, no I/O. No internal locking: hosts must keep at
    most one call in flight per instance (see ``filescan.host.sessions``).
  - Fail-safe: an unexpected exception during analysis yields BLOCK, never
    an exception and never ALLOW.
"""

from __future__ import annotations

import logging
import time
from typing import Callable, Optional, Protocol, runtime_checkable

from filescan.analyzer import analytics
from filescan.analyzer.definitions import DEFAULT_RULES, DetectionRules
from filescan.constants import MEMORY_BYTES_PER_CHAR
from filescan.models.analysis import AnalysisResult, AnalysisStats, AnalyzerState, Decision

logger = logging.getLogger(__name__)


# ─── ContentAnalyzer ──────────────────────────────────────────────────────────


@runtime_checkable
class ContentAnalyzer(Protocol):
    """Capability set consumed by hosts: ingest, finalize, reset."""

    def process_chunk(self, chunk: str) -> None: ...

    def finalize(self) -> AnalysisResult: ...

    def reset(self) -> None: ...


# ─── StreamingAnalyzer ────────────────────────────────────────────────────────


class StreamingAnalyzer:
    """Per-file state machine: EMPTY → ACCUMULATING → FINALIZED.

    Each call to ``process_chunk()`` appends the chunk and adds its length to
    ``total_size``. ``finalize()`` joins all chunks and runs the analytical
    functions over the joined content. It is not destructive: ingesting more
    chunks afterwards and finalizing again analyzes the extended content.

    Args:
        rules: Detection rule set (banned phrases + PII patterns). Shared
               read-only; defaults to the built-in rules.
        clock: Monotonic clock returning seconds. Injected for tests.

    Usage::

        analyzer = StreamingAnalyzer()
        for chunk in chunks:
            analyzer.process_chunk(chunk)
        result = analyzer.finalize()
        analyzer.reset()  # ready for the next file
    """

    def __init__(
        self,
        rules: DetectionRules = DEFAULT_RULES,
        clock: Callable[[], float] = time.perf_counter,
    ) -> None:
        self._rules: DetectionRules = rules
        self._clock: Callable[[], float] = clock

        #: Content fragments in ingestion order.
        self._chunks: list[str] = []

        #: Running character count. Invariant: == sum(len(c) for c in _chunks).
        self._total_size: int = 0

        self._state: AnalyzerState = AnalyzerState.EMPTY

        #: Clock reading at creation / last reset. Basis for processing_time_ms.
        self._started_at: float = clock()

    # ── Introspection ──────────────────────────────────────────────────────────

    @property
    def rules(self) -> DetectionRules:
        return self._rules

    @property
    def state(self) -> AnalyzerState:
        return self._state

    @property
    def chunks(self) -> tuple[str, ...]:
        return tuple(self._chunks)

    @property
    def chunk_count(self) -> int:
        return len(self._chunks)

    @property
    def total_size(self) -> int:
        return self._total_size

    # ── Public API ─────────────────────────────────────────────────────────────

    def process_chunk(self, chunk: str) -> None:
        """Append ``chunk`` and add its length to ``total_size``.

        Zero-length chunks are accepted: no content change, but they still count
        towards ``total_chunks``. No size limit is enforced here.

        Raises:
            TypeError: If ``chunk`` is not a ``str``. Decoding bytes is the
                       host's job (``filescan.host.limits.decode_chunk``).
        """
        if not isinstance(chunk, str):
            raise TypeError(
                f"process_chunk() expects str, got {type(chunk).__name__}"
            )
        self._chunks.append(chunk)
        self._total_size += len(chunk)
        self._state = AnalyzerState.ACCUMULATING

    def finalize(self) -> AnalysisResult:
        """Analyze everything ingested so far and return an immutable result.

        Safe with zero chunks: empty content yields entropy 0, no findings,
        decision ALLOW and reason ``"File appears safe"``.
        """
        content = "".join(self._chunks)
        try:
            result = self._analyze(content)
        except Exception as exc:  # noqa: BLE001
            logger.error(
                "Analysis failed — BLOCKING (fail-safe): %s: %s",
                type(exc).__name__,
                exc,
                exc_info=True,
            )
            result = AnalysisResult(
                risk_score=1.0,
                decision=Decision.BLOCK,
                reason=f"Analysis failed: {type(exc).__name__}",
                stats=self._build_stats(),
            )

        self._state = AnalyzerState.FINALIZED
        logger.debug(
            "Analysis finalized: decision=%s chunks=%d length=%d banned=%d pii=%d entropy=%.3f",
            result.decision.value,
            result.stats.total_chunks,
            result.stats.total_content_length,
            len(result.banned_phrases),
            len(result.pii_patterns),
            result.entropy,
        )
        return result

    def reset(self) -> None:
        """Drop all ingested content and return to EMPTY."""
        self._chunks = []
        self._total_size = 0
        self._state = AnalyzerState.EMPTY
        self._started_at = self._clock()

    # ── Private Analysis Logic ────────────────────────────────────────────────

    def _analyze(self, content: str) -> AnalysisResult:
        rules = self._rules

        top_words = analytics.extract_top_words(content)
        banned = analytics.detect_banned_phrases(content, rules.banned_phrases)
        pii = analytics.detect_pii(content, rules.pii_patterns)
        entropy = analytics.shannon_entropy(content)
        obfuscated = analytics.is_obfuscated(entropy)

        risk_score = analytics.calculate_risk_score(len(banned), len(pii), entropy)
        decision = analytics.make_decision(len(banned), len(pii), obfuscated, risk_score)
        # Reference-list order keeps the reason string deterministic.
        ordered_banned = [phrase for phrase in rules.banned_phrases if phrase in banned]
        reason = analytics.build_reason(ordered_banned, len(pii), obfuscated, risk_score)

        return AnalysisResult(
            top_words=top_words,
            banned_phrases=banned,
            pii_patterns=pii,
            entropy=entropy,
            is_obfuscated=obfuscated,
            risk_score=risk_score,
            decision=decision,
            reason=reason,
            stats=self._build_stats(),
        )

    def _build_stats(self) -> AnalysisStats:
        elapsed_s = max(0.0, self._clock() - self._started_at)
        throughput = self._total_size / elapsed_s if elapsed_s > 0 else 0.0
        return AnalysisStats(
            total_chunks=len(self._chunks),
            total_content_length=self._total_size,
            processing_time_ms=elapsed_s * 1000,
            memory_usage_bytes=self._total_size * MEMORY_BYTES_PER_CHAR,
            throughput_chars_per_sec=throughput,
        )
