"""Detection rule definitions for the content analyzer.

All default patterns are pre-compiled at module load time using google-re2.
Configured rule sets are compiled once by ``compile_rules()`` (called from
``AnalyzerLoader.load()``); no pattern compilation happens per chunk or per
finalize call.

IMPORT RULES:
  - ``import re2`` ONLY — ``import re`` is PROHIBITED in this file and any
    filescan/analyzer/ file. RE2 runs in linear time, so no configured pattern
    can backtrack catastrophically on adversarial input.
  - Enforced by tests/security/test_redos_gate.py.
"""

from __future__ import annotations

import re2  # google-re2, NOT stdlib re

from dataclasses import dataclass
from typing import Any, Mapping, Optional, Sequence


# ---------------------------------------------------------------------------
# PatternEntry dataclass
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class PatternEntry:
    """A single compiled PII pattern with metadata.

    Fields:
        pattern:  Pre-compiled re2 pattern object.
        category: PII family name (e.g. ``"email"``). Families are scanned in
                  declaration order and their matches concatenated in that order.
        slug:     Kebab-case identifier, unique within a rule set.
    """
    pattern: Any           # re2._Regexp, pre-compiled
    category: str
    slug: str


# ===========================================================================
# BANNED PHRASES
# Matched case-insensitively as plain substrings (not token-bounded).
# ===========================================================================

DEFAULT_BANNED_PHRASES: tuple[str, ...] = (
    "malware",
    "virus",
    "trojan",
    "confidential",
    "do not share",
)


# ===========================================================================
# PII PATTERNS
# Declaration order is significant: detect_pii() concatenates matches
# family by family in this order. Applied to raw (not lower-cased) content.
# ===========================================================================

DEFAULT_PII_PATTERN_SOURCES: dict[str, tuple[str, ...]] = {
    # Bare 9–12 digit runs (account numbers, phone numbers, national IDs)
    "numeric_id": (r'\b\d{9,12}\b',),
    # Email address: practical local@domain.tld shape
    "email": (r'\b[A-Za-z0-9._%+\-]+@[A-Za-z0-9.\-]+\.[A-Za-z]{2,}\b',),
    # US Social Security Number, strict 3-2-4 hyphenated
    "ssn": (r'\b\d{3}-\d{2}-\d{4}\b',),
    # Payment card: four hyphenated groups of four digits
    "card_number": (r'\b\d{4}-\d{4}-\d{4}-\d{4}\b',),
}


# ---------------------------------------------------------------------------
# DetectionRules
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class DetectionRules:
    """Immutable rule set shared (read-only) by every analyzer a loader creates.

    Fields:
        banned_phrases: Reference phrases, in reference-list order.
        pii_patterns:   Compiled PII patterns, in family declaration order.
    """
    banned_phrases: tuple[str, ...]
    pii_patterns: tuple[PatternEntry, ...]

    @property
    def categories(self) -> tuple[str, ...]:
        """Distinct PII categories in declaration order."""
        seen: dict[str, None] = {}
        for entry in self.pii_patterns:
            seen.setdefault(entry.category, None)
        return tuple(seen)


def _slugify(category: str) -> str:
    return category.strip().lower().replace("_", "-").replace(" ", "-")


def compile_rules(
    banned_phrases: Optional[Sequence[str]] = None,
    pii_patterns: Optional[Mapping[str, Sequence[str]]] = None,
) -> DetectionRules:
    """Build a ``DetectionRules`` from plain strings.

    Args:
        banned_phrases: Reference phrases. ``None`` → ``DEFAULT_BANNED_PHRASES``.
        pii_patterns:   Mapping of category → RE2 pattern sources. Mapping order is
                        kept as the family declaration order.
                        ``None`` → ``DEFAULT_PII_PATTERN_SOURCES``.

    Returns:
        A compiled, immutable rule set.

    Raises:
        ValueError: On an empty/blank banned phrase, an empty category name, or a
                    pattern that google-re2 refuses to compile.
    """
    raw_phrases = DEFAULT_BANNED_PHRASES if banned_phrases is None else banned_phrases
    for phrase in raw_phrases:
        if not isinstance(phrase, str) or not phrase.strip():
            raise ValueError(f"Banned phrase must be a non-empty string, got {phrase!r}")
    # Duplicates collapse; first occurrence fixes the reporting order.
    phrases = tuple(dict.fromkeys(raw_phrases))

    sources = DEFAULT_PII_PATTERN_SOURCES if pii_patterns is None else pii_patterns
    entries: list[PatternEntry] = []
    for category, patterns in sources.items():
        if not isinstance(category, str) or not category.strip():
            raise ValueError(f"PII category must be a non-empty string, got {category!r}")
        if isinstance(patterns, str):
            patterns = (patterns,)
        base_slug = f"pii-{_slugify(category)}"
        for index, source in enumerate(patterns):
            try:
                compiled = re2.compile(source)
            except re2.error as exc:
                raise ValueError(
                    f"PII pattern for {category!r} is not a valid RE2 pattern: {source!r} ({exc})"
                ) from exc
            slug = base_slug if index == 0 else f"{base_slug}-{index + 1}"
            entries.append(PatternEntry(pattern=compiled, category=category, slug=slug))

    return DetectionRules(banned_phrases=phrases, pii_patterns=tuple(entries))


# COMPILED AT MODULE LOAD: the rule set used when no configuration is supplied.
DEFAULT_RULES: DetectionRules = compile_rules()

PII_PATTERNS: tuple[PatternEntry, ...] = DEFAULT_RULES.pii_patterns
