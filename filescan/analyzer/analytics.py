"""Pure analytical functions used by ``StreamingAnalyzer.finalize()``.

Provides:
  - ``extract_top_words()``     — top-N word frequency with stable tie-break
  - ``detect_banned_phrases()`` — case-insensitive substring containment
  - ``detect_pii()``            — all PII matches, family by family, duplicates kept
  - ``shannon_entropy()``       — bits per character over the content's code points
  - ``is_obfuscated()``         — entropy threshold check
  - ``calculate_risk_score()``  — additive heuristic clamped to [0, 1]
  - ``make_decision()``         — allow/block policy
  - ``build_reason()``          — human-readable explanation of the decision

INVARIANTS:
  - Deterministic, no shared mutable state, no I/O.
  - Total over ``str``: never raise for empty or arbitrarily large content.
  - ``import re2`` ONLY — ``import re`` is PROHIBITED in this file.
"""

from __future__ import annotations

import math
from collections import Counter
from typing import Iterable, Sequence

import re2  # google-re2, NOT stdlib re

from filescan.analyzer.definitions import DEFAULT_BANNED_PHRASES, PII_PATTERNS, PatternEntry
from filescan.constants import (
    BANNED_PHRASE_WEIGHT,
    ENTROPY_THRESHOLD,
    EXCESS_ENTROPY_FLOOR,
    EXCESS_ENTROPY_WEIGHT,
    MAX_RISK_SCORE,
    MIN_TOKEN_LENGTH_EXCLUSIVE,
    OBFUSCATION_WEIGHT,
    PII_MATCH_WEIGHT,
    RISK_THRESHOLD,
    TOP_WORDS_LIMIT,
)
from filescan.models.analysis import Decision

# RE2 perl classes are ASCII: \w == [0-9A-Za-z_], \s == [\t\n\f\r ].
# The whitespace class adds \v and U+FEFF plus \pZ (Unicode separators) so
# words either side of a non-breaking space split instead of merging.
# Strip and split use the same whitespace class.
_SPACE_CLASS = r'\s\x0b\pZ\x{FEFF}'
_NON_WORD_NON_SPACE = re2.compile(r'[^\w' + _SPACE_CLASS + r']')
_WHITESPACE_RUN = re2.compile(r'[' + _SPACE_CLASS + r']+')

SAFE_REASON: str = "File appears safe"


# ---------------------------------------------------------------------------
# Word frequency
# ---------------------------------------------------------------------------


def extract_top_words(content: str, limit: int = TOP_WORDS_LIMIT) -> tuple[tuple[str, int], ...]:
    """Return the ``limit`` most frequent words as ``(word, count)`` pairs.

    Lower-cases, strips every character that is neither a word character nor
    whitespace, splits on whitespace runs, and drops tokens of 3 characters or
    fewer. Equal counts keep first-seen order (``Counter.most_common`` is stable
    over insertion order).
    """
    if not content:
        return ()
    cleaned = _NON_WORD_NON_SPACE.sub("", content.lower())
    counts = Counter(
        token
        for token in _WHITESPACE_RUN.split(cleaned)
        if len(token) > MIN_TOKEN_LENGTH_EXCLUSIVE
    )
    return tuple(counts.most_common(limit))


# ---------------------------------------------------------------------------
# Banned phrases
# ---------------------------------------------------------------------------


def detect_banned_phrases(
    content: str,
    phrases: Sequence[str] = DEFAULT_BANNED_PHRASES,
) -> frozenset[str]:
    """Return the reference phrases contained anywhere in ``content``.

    Case-insensitive and not token-bounded: ``"malwaretown"`` contains
    ``"malware"``. Each phrase is reported at most once.
    """
    if not content:
        return frozenset()
    lowered = content.lower()
    return frozenset(phrase for phrase in phrases if phrase.lower() in lowered)


# ---------------------------------------------------------------------------
# PII
# ---------------------------------------------------------------------------


def detect_pii(
    content: str,
    patterns: Iterable[PatternEntry] = PII_PATTERNS,
) -> tuple[str, ...]:
    """Return every raw PII match, concatenated in pattern-declaration order.

    Each pattern scans the whole raw content independently; occurrences are
    not deduplicated within or across families.
    """
    if not content:
        return ()
    matches: list[str] = []
    for entry in patterns:
        matches.extend(m.group(0) for m in entry.pattern.finditer(content))
    return tuple(matches)


# ---------------------------------------------------------------------------
# Entropy
# ---------------------------------------------------------------------------


def shannon_entropy(content: str) -> float:
    """Shannon entropy in bits over the empirical character distribution.

    Returns 0.0 for empty content and for content made of a single repeated
    character. Upper bound is ``log2(number of distinct characters)``.
    """
    if not content:
        return 0.0
    total = len(content)
    entropy = 0.0
    for count in Counter(content).values():
        probability = count / total
        entropy -= probability * math.log2(probability)
    return entropy


def is_obfuscated(entropy: float) -> bool:
    """True when ``entropy`` exceeds ``ENTROPY_THRESHOLD`` (4.8 bits/char)."""
    return entropy > ENTROPY_THRESHOLD


# ---------------------------------------------------------------------------
# Risk score + decision
# ---------------------------------------------------------------------------


def calculate_risk_score(banned_count: int, pii_count: int, entropy: float) -> float:
    """Combine detection signals into a score in ``[0.0, 1.0]``.

    Terms:
      - 0.2 per distinct banned phrase
      - 0.1 per PII occurrence
      - 0.3 flat when entropy > 4.8
      - (entropy - 4.5) * 0.1 when entropy > 4.5

    The two entropy terms overlap above 4.8, so the score jumps by 0.3 at
    exactly that point.
    """
    score = banned_count * BANNED_PHRASE_WEIGHT + pii_count * PII_MATCH_WEIGHT
    if is_obfuscated(entropy):
        score += OBFUSCATION_WEIGHT
    if entropy > EXCESS_ENTROPY_FLOOR:
        score += (entropy - EXCESS_ENTROPY_FLOOR) * EXCESS_ENTROPY_WEIGHT
    return min(score, MAX_RISK_SCORE)


def make_decision(
    banned_count: int,
    pii_count: int,
    obfuscated: bool,
    risk_score: float,
) -> Decision:
    """BLOCK on any banned phrase, any PII hit, obfuscation, or a high score.

    A single banned phrase or PII match forces BLOCK even when the aggregate
    score is low.
    """
    if banned_count > 0 or pii_count > 0 or obfuscated or risk_score > RISK_THRESHOLD:
        return Decision.BLOCK
    return Decision.ALLOW


def build_reason(
    banned_phrases: Sequence[str],
    pii_count: int,
    obfuscated: bool,
    risk_score: float,
) -> str:
    """One clause per true condition, in decision-policy order, joined by ``"; "``.

    Args:
        banned_phrases: Matched phrases in the order they should be listed.
        pii_count:      Number of PII occurrences.
        obfuscated:     Obfuscation flag.
        risk_score:     Final (clamped) risk score.

    Returns:
        The joined clauses, or ``"File appears safe"`` when no condition holds.
    """
    reasons: list[str] = []
    if banned_phrases:
        reasons.append(f"Contains banned phrases: {', '.join(banned_phrases)}")
    if pii_count > 0:
        reasons.append(f"Contains PII patterns: {pii_count} detected")
    if obfuscated:
        reasons.append("Content appears to be obfuscated")
    if risk_score > RISK_THRESHOLD:
        reasons.append(f"High risk score: {risk_score:.2f}")
    return "; ".join(reasons) if reasons else SAFE_REASON
