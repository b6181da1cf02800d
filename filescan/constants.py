"""Shared constants for filescan.

All thresholds, weights, and size limits used across modules are defined here.
No magic numbers in other modules — import from here.
"""

# ─── Obfuscation / Entropy ───────────────────────────────────────────────────

# Shannon entropy (bits per character) above which content is flagged as
# obfuscated. Plain English prose sits around 4.0–4.3; base64 and packed or
# encrypted payloads push towards 6.
ENTROPY_THRESHOLD: float = 4.8

# Entropy above which the excess-entropy term starts contributing to the risk
# score. Deliberately lower than ENTROPY_THRESHOLD: between 4.5 and 4.8 only the
# linear term applies; above 4.8 both the linear term and OBFUSCATION_WEIGHT do.
EXCESS_ENTROPY_FLOOR: float = 4.5

# ─── Risk Score Weights ──────────────────────────────────────────────────────

BANNED_PHRASE_WEIGHT: float = 0.2   # per distinct banned phrase
PII_MATCH_WEIGHT: float = 0.1       # per PII occurrence (not deduplicated)
OBFUSCATION_WEIGHT: float = 0.3     # flat, when entropy > ENTROPY_THRESHOLD
EXCESS_ENTROPY_WEIGHT: float = 0.1  # multiplied by (entropy - EXCESS_ENTROPY_FLOOR)

MAX_RISK_SCORE: float = 1.0

# A risk score strictly above this value forces BLOCK on its own.
RISK_THRESHOLD: float = 0.6

# ─── Word Frequency ──────────────────────────────────────────────────────────

TOP_WORDS_LIMIT: int = 10

# Tokens of this length or shorter are discarded before counting.
MIN_TOKEN_LENGTH_EXCLUSIVE: int = 3

# ─── Stats ───────────────────────────────────────────────────────────────────

# Rough in-memory footprint per ingested character (bytes).
MEMORY_BYTES_PER_CHAR: int = 2

# ─── Host Size Policy ────────────────────────────────────────────────────────
# These limits belong to the host layer (filescan.host), never to the core
# analyzer. The analyzer itself accepts content of any size.

CHUNK_SIZE: int = 1_048_576            # 1 MiB per chunk
MAX_FILE_SIZE: int = 104_857_600       # 100 MiB
MAX_CONTENT_SIZE: int = 52_428_800     # 50 MiB of decoded text

ALLOWED_FILE_EXTENSIONS: tuple[str, ...] = (".txt",)
ALLOWED_MIME_TYPES: tuple[str, ...] = ("text/plain",)

# ─── Sessions ────────────────────────────────────────────────────────────────

MAX_CONCURRENT_SESSIONS: int = 3

# Completed or failed sessions idle longer than this are dropped by cleanup().
MAX_SESSION_AGE_S: float = 30 * 60
