"""Host size policy — pre-checks, chunking, and a size-bounded analyzer wrapper.

The core ``StreamingAnalyzer`` accepts content of any size. Hosts that read
files from users apply the limits here before anything reaches the analyzer:

  - ``validate_file()``    — file descriptor pre-check (empty, too large, wrong type)
  - ``validate_content()`` — decoded-text pre-check (blank, too large)
  - ``iter_chunks()``      — split decoded text into ingestion-order slices
  - ``decode_chunk()``     — bytes → text, UTF-8 with replacement characters
  - ``BoundedAnalyzer``    — ``ContentAnalyzer`` wrapper that rejects oversized
                             chunks and cumulative content BEFORE delegating

A rejected chunk never reaches the wrapped analyzer, so its state is exactly
what it was before the rejected call.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterator, Optional

from filescan.analyzer.streaming import ContentAnalyzer
from filescan.constants import (
    ALLOWED_FILE_EXTENSIONS,
    ALLOWED_MIME_TYPES,
    CHUNK_SIZE,
    MAX_CONTENT_SIZE,
    MAX_FILE_SIZE,
)
from filescan.models.analysis import AnalysisResult
from filescan.utils.logger import get_logger

logger = get_logger(__name__)

# ─── Issue codes ──────────────────────────────────────────────────────────────

NO_FILE = "NO_FILE"
EMPTY_FILE = "EMPTY_FILE"
FILE_TOO_LARGE = "FILE_TOO_LARGE"
INVALID_FILE_TYPE = "INVALID_FILE_TYPE"
EMPTY_CONTENT = "EMPTY_CONTENT"
CONTENT_TOO_LARGE = "CONTENT_TOO_LARGE"
CHUNK_TOO_LARGE = "CHUNK_TOO_LARGE"


# ─── Exceptions ───────────────────────────────────────────────────────────────


class LimitExceededError(Exception):
    """Raised when input would push an analyzer past a host size limit.

    Attributes:
        code:    Machine-readable issue code (e.g. ``"CHUNK_TOO_LARGE"``).
        limit:   The configured limit in characters.
        actual:  The size that was rejected.
    """

    code: str = "LIMIT_EXCEEDED"

    def __init__(self, message: str, limit: int, actual: int) -> None:
        super().__init__(message)
        self.message = message
        self.limit = limit
        self.actual = actual


class ChunkTooLargeError(LimitExceededError):
    """A single chunk is longer than ``max_chunk_chars``."""

    code: str = CHUNK_TOO_LARGE


class ContentTooLargeError(LimitExceededError):
    """Accepting the chunk would push total content past ``max_content_chars``."""

    code: str = CONTENT_TOO_LARGE


# ─── Pre-checks ───────────────────────────────────────────────────────────────


@dataclass(frozen=True)
class ValidationIssue:
    """Why a file or content was refused before analysis."""

    code: str
    message: str


def _format_mb(size: int) -> str:
    return f"{size // (1024 * 1024)}MB"


def validate_file(
    name: Optional[str],
    size: int,
    mime_type: Optional[str] = None,
    max_file_size: int = MAX_FILE_SIZE,
) -> Optional[ValidationIssue]:
    """Check a file descriptor before any bytes are read.

    A file is accepted when its name ends in ``.txt`` OR its MIME type is
    ``text/plain``.

    Returns:
        ``None`` when the file is acceptable, otherwise the first
        ``ValidationIssue`` found (checked in the order: missing, empty,
        too large, wrong type).
    """
    if not name:
        return ValidationIssue(NO_FILE, "No file selected")
    if size <= 0:
        return ValidationIssue(EMPTY_FILE, "File is empty")
    if size > max_file_size:
        return ValidationIssue(
            FILE_TOO_LARGE, f"File is too large (max {_format_mb(max_file_size)})"
        )
    if not name.lower().endswith(ALLOWED_FILE_EXTENSIONS) and mime_type not in ALLOWED_MIME_TYPES:
        return ValidationIssue(INVALID_FILE_TYPE, "Only .txt files are supported")
    return None


def validate_content(
    text: str,
    max_content_size: int = MAX_CONTENT_SIZE,
) -> Optional[ValidationIssue]:
    """Check decoded text before it is handed to an analyzer in one piece.

    Returns:
        ``None`` when acceptable; ``EMPTY_CONTENT`` for empty or
        whitespace-only text; ``CONTENT_TOO_LARGE`` above the limit.
    """
    if not text or not text.strip():
        return ValidationIssue(EMPTY_CONTENT, "Content is empty")
    if len(text) > max_content_size:
        return ValidationIssue(
            CONTENT_TOO_LARGE, f"Content is too large (max {_format_mb(max_content_size)})"
        )
    return None


# ─── Chunking / decoding ──────────────────────────────────────────────────────


def iter_chunks(text: str, chunk_size: int = CHUNK_SIZE) -> Iterator[str]:
    """Yield consecutive slices of at most ``chunk_size`` characters.

    ``"".join(iter_chunks(text, n)) == text`` for every ``n > 0``. Empty text
    yields nothing.

    Raises:
        ValueError: If ``chunk_size`` is not positive.
    """
    if chunk_size <= 0:
        raise ValueError(f"chunk_size must be positive, got {chunk_size}")
    for start in range(0, len(text), chunk_size):
        yield text[start:start + chunk_size]


def decode_chunk(data: bytes, encoding: str = "utf-8") -> str:
    """Decode a raw byte chunk; undecodable bytes become U+FFFD.

    Multi-byte sequences split across two byte chunks decode to replacement
    characters. Hosts that read binary streams should decode the whole file
    or use an incremental decoder and pass ``str`` chunks instead.
    """
    return data.decode(encoding, errors="replace")


# ─── BoundedAnalyzer ──────────────────────────────────────────────────────────


class BoundedAnalyzer:
    """``ContentAnalyzer`` wrapper enforcing per-chunk and cumulative limits.

    Args:
        analyzer:          The wrapped analyzer (usually a ``StreamingAnalyzer``).
        max_chunk_chars:   Longest accepted chunk, in characters.
        max_content_chars: Longest accepted total content, in characters.

    Raises (from ``process_chunk``):
        ChunkTooLargeError:   ``len(chunk) > max_chunk_chars``.
        ContentTooLargeError: accepted total + ``len(chunk)`` > ``max_content_chars``.
    """

    def __init__(
        self,
        analyzer: ContentAnalyzer,
        max_chunk_chars: int = CHUNK_SIZE,
        max_content_chars: int = MAX_CONTENT_SIZE,
    ) -> None:
        self._analyzer = analyzer
        self.max_chunk_chars = max_chunk_chars
        self.max_content_chars = max_content_chars
        #: Characters accepted since creation / last reset.
        self._accepted_chars: int = 0

    @property
    def analyzer(self) -> ContentAnalyzer:
        return self._analyzer

    @property
    def accepted_chars(self) -> int:
        return self._accepted_chars

    def process_chunk(self, chunk: str) -> None:
        if not isinstance(chunk, str):
            raise TypeError(
                f"process_chunk() expects str, got {type(chunk).__name__}"
            )

        size = len(chunk)
        if size > self.max_chunk_chars:
            logger.warning(
                "Chunk rejected",
                code=CHUNK_TOO_LARGE,
                chunk_chars=size,
                limit=self.max_chunk_chars,
            )
            raise ChunkTooLargeError(
                f"Chunk is too large ({size} chars, max {self.max_chunk_chars})",
                limit=self.max_chunk_chars,
                actual=size,
            )

        projected = self._accepted_chars + size
        if projected > self.max_content_chars:
            logger.warning(
                "Chunk rejected",
                code=CONTENT_TOO_LARGE,
                total_chars=projected,
                limit=self.max_content_chars,
            )
            raise ContentTooLargeError(
                f"Content is too large ({projected} chars, max {self.max_content_chars})",
                limit=self.max_content_chars,
                actual=projected,
            )

        self._analyzer.process_chunk(chunk)
        self._accepted_chars = projected

    def finalize(self) -> AnalysisResult:
        return self._analyzer.finalize()

    def reset(self) -> None:
        self._analyzer.reset()
        self._accepted_chars = 0
