"""SessionManager — one analyzer per file, serialized per session.

A host that analyzes several files at once opens one session per file. Each
session owns a size-bounded ``StreamingAnalyzer`` and a lock, so at most one
mutation per analyzer is ever in flight, while different sessions proceed
independently.

Session lifecycle::

    open_session() ──▶ processing ──ingest(is_last=True) / finalize()──▶ completed
                           │                                                 │
                           └──── limit / type error ──▶ failed               │
    reset()  : any state ──▶ processing (content dropped)                    │
    cancel() : any state ──▶ removed                                         │
    cleanup(): completed / failed and idle > max_age_s ──▶ removed ◀─────────┘

Session ids are ULIDs; ``active_sessions()`` lists oldest first.
"""

from __future__ import annotations

import threading
import time
from contextlib import contextmanager
from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, Callable, Iterator, Optional

from filescan.analyzer.loader import AnalyzerLoader
from filescan.constants import (
    CHUNK_SIZE,
    MAX_CONCURRENT_SESSIONS,
    MAX_CONTENT_SIZE,
    MAX_FILE_SIZE,
    MAX_SESSION_AGE_S,
)
from filescan.host.limits import BoundedAnalyzer, LimitExceededError, ValidationIssue, validate_file
from filescan.models.analysis import AnalysisResult
from filescan.utils.health import AnalysisLatencyTracker
from filescan.utils.logger import PerformanceLogger, clear_session_id, get_logger, set_session_id
from filescan.utils.ulid import generate_ulid

if TYPE_CHECKING:
    from filescan.config import Config

logger = get_logger(__name__)


# ─── Exceptions ───────────────────────────────────────────────────────────────


class SessionError(Exception):
    """Base class for session management failures."""

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class SessionNotFoundError(SessionError):
    """No session with the given id (never opened, cancelled, or cleaned up)."""


class SessionLimitError(SessionError):
    """``max_concurrent`` sessions are already processing."""


class SessionStateError(SessionError):
    """The operation is not allowed in the session's current state."""


class InvalidFileError(SessionError):
    """The file descriptor failed ``validate_file()``.

    Attributes:
        code:  The ``ValidationIssue`` code (e.g. ``"FILE_TOO_LARGE"``).
    """

    def __init__(self, issue: ValidationIssue) -> None:
        super().__init__(issue.message)
        self.code = issue.code
        self.issue = issue


# ─── Data Types ───────────────────────────────────────────────────────────────


class SessionState(str, Enum):
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"


@dataclass
class Session:
    """One file being analyzed.

    ``analyzer`` and the mutable fields are only touched while ``lock`` is held.
    """

    id: str
    file_name: str
    file_size: int
    mime_type: Optional[str]
    analyzer: BoundedAnalyzer
    started_at: float
    last_activity: float
    state: SessionState = SessionState.PROCESSING
    result: Optional[AnalysisResult] = None
    error: Optional[str] = None
    lock: threading.Lock = field(default_factory=threading.Lock, repr=False, compare=False)


# ─── SessionManager ───────────────────────────────────────────────────────────


class SessionManager:
    """Owns every open session and the analyzers behind them.

    Args:
        loader:            Loaded ``AnalyzerLoader``; each session gets a fresh analyzer.
        max_concurrent:    Sessions allowed in ``processing`` at the same time.
        max_age_s:         Idle age after which completed/failed sessions are cleaned up.
        max_chunk_chars:   Per-chunk limit passed to each ``BoundedAnalyzer``.
        max_content_chars: Cumulative content limit passed to each ``BoundedAnalyzer``.
        max_file_size:     Byte limit applied by ``validate_file()`` in ``open_session()``.
        latency_tracker:   Receives every finalize duration (a new tracker if ``None``).
        clock:             Monotonic clock in seconds. Injected for tests.
    """

    def __init__(
        self,
        loader: AnalyzerLoader,
        max_concurrent: int = MAX_CONCURRENT_SESSIONS,
        max_age_s: float = MAX_SESSION_AGE_S,
        max_chunk_chars: int = CHUNK_SIZE,
        max_content_chars: int = MAX_CONTENT_SIZE,
        max_file_size: int = MAX_FILE_SIZE,
        latency_tracker: Optional[AnalysisLatencyTracker] = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._loader = loader
        self.max_concurrent = max_concurrent
        self.max_age_s = max_age_s
        self.max_chunk_chars = max_chunk_chars
        self.max_content_chars = max_content_chars
        self.max_file_size = max_file_size
        self.latency_tracker = latency_tracker or AnalysisLatencyTracker()
        self._clock = clock

        self._sessions: dict[str, Session] = {}
        #: Guards ``_sessions`` membership only; per-session work uses ``Session.lock``.
        self._registry_lock = threading.Lock()

    @classmethod
    def from_config(
        cls,
        loader: AnalyzerLoader,
        config: "Config",
        latency_tracker: Optional[AnalysisLatencyTracker] = None,
    ) -> "SessionManager":
        """Build a manager from the ``limits`` and ``sessions`` sections of a Config."""
        return cls(
            loader,
            max_concurrent=config.sessions.max_concurrent,
            max_age_s=config.sessions.max_age_s,
            max_chunk_chars=config.limits.chunk_size,
            max_content_chars=config.limits.max_content_size,
            max_file_size=config.limits.max_file_size,
            latency_tracker=latency_tracker,
        )

    # ── Lookup ─────────────────────────────────────────────────────────────────

    def get(self, session_id: str) -> Session:
        """Return the session.

        Raises:
            SessionNotFoundError: Unknown id.
        """
        with self._registry_lock:
            session = self._sessions.get(session_id)
        if session is None:
            raise SessionNotFoundError(f"Session {session_id} not found")
        return session

    def active_sessions(self) -> list[Session]:
        """Sessions still in ``processing``, oldest first."""
        with self._registry_lock:
            sessions = list(self._sessions.values())
        return sorted(
            (s for s in sessions if s.state is SessionState.PROCESSING),
            key=lambda s: (s.started_at, s.id),
        )

    def __len__(self) -> int:
        with self._registry_lock:
            return len(self._sessions)

    # ── Lifecycle ──────────────────────────────────────────────────────────────

    def open_session(
        self,
        file_name: str,
        file_size: int,
        mime_type: Optional[str] = None,
    ) -> str:
        """Validate the file descriptor and start a session for it.

        Returns:
            The new session id (26-char ULID).

        Raises:
            InvalidFileError:    ``validate_file()`` refused the descriptor.
            SessionLimitError:   ``max_concurrent`` sessions already processing.
            EngineNotReadyError: The loader is not loaded.
        """
        issue = validate_file(file_name, file_size, mime_type, max_file_size=self.max_file_size)
        if issue is not None:
            logger.info("File rejected", code=issue.code, file_size=file_size)
            raise InvalidFileError(issue)

        with self._registry_lock:
            self._check_capacity_locked()

            analyzer = BoundedAnalyzer(
                self._loader.create_streaming_analyzer(),
                max_chunk_chars=self.max_chunk_chars,
                max_content_chars=self.max_content_chars,
            )
            now = self._clock()
            session = Session(
                id=generate_ulid(),
                file_name=file_name,
                file_size=file_size,
                mime_type=mime_type,
                analyzer=analyzer,
                started_at=now,
                last_activity=now,
            )
            self._sessions[session.id] = session

        with _session_context(session.id):
            logger.info("Session opened", file_size=file_size, mime_type=mime_type)
        return session.id

    def ingest(
        self,
        session_id: str,
        chunk: str,
        is_last: bool = False,
    ) -> Optional[AnalysisResult]:
        """Feed one chunk to the session's analyzer.

        When ``is_last`` is true the session is finalized after the chunk is
        accepted, and the result is returned. Otherwise returns ``None``.

        A rejected chunk (size limit or non-``str``) moves the session to
        ``failed`` and the exception propagates. The analyzer never sees the
        rejected chunk.

        Raises:
            SessionNotFoundError: Unknown id.
            SessionStateError:    Session is ``completed`` or ``failed``.
            LimitExceededError:   Chunk or cumulative content too large.
            TypeError:            ``chunk`` is not a ``str``.
        """
        session = self.get(session_id)
        with session.lock, _session_context(session_id):
            if session.state is not SessionState.PROCESSING:
                raise SessionStateError(
                    f"Session {session_id} is already {session.state.value}"
                )
            session.last_activity = self._clock()
            try:
                session.analyzer.process_chunk(chunk)
            except (LimitExceededError, TypeError) as exc:
                session.state = SessionState.FAILED
                session.error = str(exc)
                logger.warning(
                    "Session failed",
                    error_type=type(exc).__name__,
                    code=getattr(exc, "code", None),
                )
                raise

            if is_last:
                return self._finalize_locked(session)
        return None

    def finalize(self, session_id: str, force: bool = False) -> AnalysisResult:
        """Analyze everything ingested so far and mark the session ``completed``.

        Finalizing a ``completed`` session analyzes again (same content, fresh
        stats). A ``failed`` session is refused unless ``force`` is true, in
        which case the content accepted before the failure is analyzed.

        Raises:
            SessionNotFoundError: Unknown id.
            SessionStateError:    Session is ``failed`` and ``force`` is false.
        """
        session = self.get(session_id)
        with session.lock, _session_context(session_id):
            if session.state is SessionState.FAILED and not force:
                raise SessionStateError(f"Session {session_id} is in failed state")
            return self._finalize_locked(session)

    def reset(self, session_id: str) -> None:
        """Drop the session's content and return it to ``processing``.

        A completed or failed session counts toward ``max_concurrent`` again
        once reset, so the cap is checked before it is revived.

        Raises:
            SessionNotFoundError: Unknown id.
            SessionLimitError:    Reviving the session would exceed
                                  ``max_concurrent``.
        """
        session = self.get(session_id)
        with session.lock, _session_context(session_id):
            with self._registry_lock:
                if session.state is not SessionState.PROCESSING:
                    self._check_capacity_locked()
                session.analyzer.reset()
                session.state = SessionState.PROCESSING
            session.result = None
            session.error = None
            session.last_activity = self._clock()
            logger.debug("Session reset")

    def cancel(self, session_id: str) -> None:
        """Reset the session's analyzer and forget the session.

        Raises:
            SessionNotFoundError: Unknown id.
        """
        session = self.get(session_id)
        with session.lock, _session_context(session_id):
            session.analyzer.reset()
            with self._registry_lock:
                self._sessions.pop(session_id, None)
            logger.info("Session cancelled", state=session.state.value)

    def cleanup(self, now: Optional[float] = None) -> int:
        """Remove completed/failed sessions idle for longer than ``max_age_s``.

        Args:
            now: Clock reading to compare against (defaults to the manager clock).

        Returns:
            Number of sessions removed.
        """
        current = self._clock() if now is None else now
        with self._registry_lock:
            stale = [
                session_id
                for session_id, session in self._sessions.items()
                if session.state is not SessionState.PROCESSING
                and current - session.last_activity > self.max_age_s
            ]
            for session_id in stale:
                del self._sessions[session_id]

        if stale:
            logger.info("Stale sessions cleaned up", removed=len(stale))
        return len(stale)

    # ── Private ────────────────────────────────────────────────────────────────

    def _check_capacity_locked(self) -> None:
        """Raise SessionLimitError if ``max_concurrent`` sessions are processing.

        Caller must hold ``_registry_lock``.
        """
        processing = sum(
            1 for s in self._sessions.values() if s.state is SessionState.PROCESSING
        )
        if processing >= self.max_concurrent:
            raise SessionLimitError(
                f"Maximum concurrent sessions reached ({self.max_concurrent})"
            )

    def _finalize_locked(self, session: Session) -> AnalysisResult:
        with PerformanceLogger("session finalize", logger=logger) as perf:
            result = session.analyzer.finalize()
        # Best-effort metrics; never fail a finalize because of them.
        try:
            self.latency_tracker.record(perf.duration_ms)
        except Exception:  # noqa: BLE001
            pass

        session.state = SessionState.COMPLETED
        session.result = result
        session.last_activity = self._clock()
        logger.info(
            "Session completed",
            decision=result.decision.value,
            risk_score=result.risk_score,
            total_chunks=result.stats.total_chunks,
            total_content_length=result.stats.total_content_length,
        )
        return result


@contextmanager
def _session_context(session_id: str) -> Iterator[None]:
    set_session_id(session_id)
    try:
        yield
    finally:
        clear_session_id()
