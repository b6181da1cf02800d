"""Analyzer loader — owns the compiled rule set and hands out analyzers.

``AnalyzerLoader`` is constructed explicitly by the host and passed to whoever
needs analyzers; there is no module-level shared instance. Creating an
analyzer before ``load()`` has succeeded raises ``EngineNotReadyError``.

Status transitions::

    not_loaded ──load()──▶ loading ──▶ loaded
                               └─────▶ error   (invalid rule configuration)
    any ──unload()──▶ not_loaded
"""

from __future__ import annotations

import logging
import threading
from enum import Enum
from typing import TYPE_CHECKING, Mapping, Optional, Sequence

from filescan.analyzer.definitions import DetectionRules, compile_rules
from filescan.analyzer.streaming import StreamingAnalyzer

if TYPE_CHECKING:
    from filescan.config import Config

logger = logging.getLogger(__name__)


class EngineNotReadyError(RuntimeError):
    """Raised when an analyzer is requested before the engine is loaded."""


class LoaderStatus(str, Enum):
    NOT_LOADED = "not_loaded"
    LOADING = "loading"
    LOADED = "loaded"
    ERROR = "error"


class AnalyzerLoader:
    """Compiles detection rules once and creates per-file analyzers.

    Thread-safety:
        ``load()`` and ``unload()`` are serialized by an internal lock, so
        concurrent callers never observe a half-built rule set. Analyzers
        themselves are not thread-safe (one per file).

    Args:
        banned_phrases: Reference phrases (``None`` → built-in list).
        pii_patterns:   Category → RE2 pattern sources (``None`` → built-in families).

    Usage::

        loader = AnalyzerLoader()
        loader.load()
        analyzer = loader.create_streaming_analyzer()
    """

    def __init__(
        self,
        banned_phrases: Optional[Sequence[str]] = None,
        pii_patterns: Optional[Mapping[str, Sequence[str]]] = None,
    ) -> None:
        self._banned_phrases = banned_phrases
        self._pii_patterns = pii_patterns
        self._rules: Optional[DetectionRules] = None
        self._status: LoaderStatus = LoaderStatus.NOT_LOADED
        self._lock = threading.Lock()

    @classmethod
    def from_config(cls, config: "Config") -> "AnalyzerLoader":
        """Build a loader from the ``detection`` section of a loaded Config."""
        return cls(
            banned_phrases=config.detection.banned_phrases,
            pii_patterns=config.detection.pii_patterns,
        )

    # ── Status ─────────────────────────────────────────────────────────────────

    @property
    def status(self) -> LoaderStatus:
        return self._status

    def is_loaded(self) -> bool:
        return self._status is LoaderStatus.LOADED

    @property
    def rules(self) -> DetectionRules:
        """The compiled rule set.

        Raises:
            EngineNotReadyError: If ``load()`` has not completed successfully.
        """
        if self._rules is None or not self.is_loaded():
            raise EngineNotReadyError("Analysis engine not loaded")
        return self._rules

    # ── Lifecycle ──────────────────────────────────────────────────────────────

    def load(self) -> DetectionRules:
        """Compile the rule set. Idempotent once loaded.

        Returns:
            The compiled ``DetectionRules``.

        Raises:
            ValueError: If a banned phrase or PII pattern is invalid. Status
                        becomes ``error``; a later ``load()`` may retry.
        """
        with self._lock:
            if self._status is LoaderStatus.LOADED and self._rules is not None:
                return self._rules

            self._status = LoaderStatus.LOADING
            try:
                rules = compile_rules(self._banned_phrases, self._pii_patterns)
            except ValueError:
                self._status = LoaderStatus.ERROR
                logger.error("Analysis engine failed to load", exc_info=True)
                raise

            self._rules = rules
            self._status = LoaderStatus.LOADED
            logger.info(
                "Analysis engine loaded: banned_phrases=%d pii_patterns=%d categories=%s",
                len(rules.banned_phrases),
                len(rules.pii_patterns),
                ",".join(rules.categories),
            )
            return rules

    def unload(self) -> None:
        """Drop the rule set. Analyzers already created keep working."""
        with self._lock:
            self._rules = None
            self._status = LoaderStatus.NOT_LOADED
            logger.info("Analysis engine unloaded")

    def create_streaming_analyzer(self) -> StreamingAnalyzer:
        """Return a fresh analyzer bound to the loaded rule set.

        Raises:
            EngineNotReadyError: If the engine is not loaded.
        """
        if not self.is_loaded() or self._rules is None:
            raise EngineNotReadyError(
                f"Analysis engine not loaded (status={self._status.value})"
            )
        return StreamingAnalyzer(rules=self._rules)
