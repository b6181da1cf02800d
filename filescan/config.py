"""Config loading for filescan.

Reads `.filescan/config.yaml` (or `~/.filescan/config.yaml`).
Raises SystemExit on parse errors, missing `version` field, or invalid values.
If no config file is found, returns default values (safe to run without config).

Config search order:
  1. `config_path` argument (if provided — for testing or explicit override)
  2. FILESCAN_CONFIG environment variable (if set)
  3. `.filescan/config.yaml` (working directory — for development)
  4. `~/.filescan/config.yaml` (home directory — for installed hosts)

Environment variable overrides:
  FILESCAN_MAX_FILE_SIZE — overrides limits.max_file_size (bytes)
  FILESCAN_CONFIG        — sets an explicit config file path to try first
"""

from __future__ import annotations

import os
import sys
from dataclasses import dataclass, field
from typing import Any, Optional

import yaml

from filescan.analyzer.definitions import (
    DEFAULT_BANNED_PHRASES,
    DEFAULT_PII_PATTERN_SOURCES,
    compile_rules,
)
from filescan.constants import (
    CHUNK_SIZE,
    MAX_CONCURRENT_SESSIONS,
    MAX_CONTENT_SIZE,
    MAX_FILE_SIZE,
    MAX_SESSION_AGE_S,
)
from filescan.utils.logger import get_logger

logger = get_logger(__name__)

# ─── Version constants ────────────────────────────────────────────────────────

# Current supported config version
SUPPORTED_CONFIG_VERSION = 1

# Set of all supported versions, checked by load_config()
SUPPORTED_VERSIONS: frozenset[int] = frozenset({1})

# Default config search paths (FILESCAN_CONFIG env var prepended at runtime)
DEFAULT_CONFIG_PATHS = [
    ".filescan/config.yaml",
    os.path.expanduser("~/.filescan/config.yaml"),
]


def _config_error(msg: str) -> SystemExit:
    print(f"CONFIG ERROR: {msg}", file=sys.stderr)
    return SystemExit(1)


# ─── Dataclasses ─────────────────────────────────────────────────────────────


@dataclass
class DetectionConfig:
    """Rule set handed to ``AnalyzerLoader``.

    banned_phrases: Reference phrases, matched case-insensitively as substrings.
    pii_patterns:   Category → list of RE2 pattern sources. Order is significant:
                    PII matches are reported family by family in this order.
    """

    banned_phrases: list[str] = field(default_factory=lambda: list(DEFAULT_BANNED_PHRASES))
    pii_patterns: dict[str, list[str]] = field(
        default_factory=lambda: {
            category: list(sources)
            for category, sources in DEFAULT_PII_PATTERN_SOURCES.items()
        }
    )


@dataclass
class LimitsConfig:
    """Host size policy (see ``filescan.host.limits``)."""

    chunk_size: int = CHUNK_SIZE              # chars per chunk
    max_file_size: int = MAX_FILE_SIZE        # bytes, checked before reading
    max_content_size: int = MAX_CONTENT_SIZE  # chars of decoded text


@dataclass
class SessionsConfig:
    """SessionManager configuration."""

    max_concurrent: int = MAX_CONCURRENT_SESSIONS
    max_age_s: float = MAX_SESSION_AGE_S


@dataclass
class Config:
    """Root configuration object populated from .filescan/config.yaml.

    All fields have safe defaults — filescan can run without any config file.
    """

    version: int = SUPPORTED_CONFIG_VERSION
    detection: DetectionConfig = field(default_factory=DetectionConfig)
    limits: LimitsConfig = field(default_factory=LimitsConfig)
    sessions: SessionsConfig = field(default_factory=SessionsConfig)
    path: Optional[str] = None  # Path to the loaded config file

    @classmethod
    def defaults(cls) -> "Config":
        """Return a fully-default Config (no file required)."""
        return cls()

    @classmethod
    def from_dict(cls, raw: dict, path: Optional[str] = None) -> "Config":
        """Construct Config from a parsed YAML dict.

        Merges user-supplied values onto defaults; unknown keys are silently ignored.

        Args:
            raw:  Parsed YAML dict (must already be validated for version field).
            path: Path to the config file (stored in Config.path).

        Returns:
            Config with all fields populated from raw + defaults for missing fields.

        Raises:
            SystemExit(1): On a malformed section, an empty banned phrase, a
                           pattern google-re2 cannot compile, or a non-positive limit.
        """
        # ── Detection ─────────────────────────────────────────────────────────
        detection_raw = _section(raw, "detection")
        defaults = DetectionConfig()

        banned_phrases = detection_raw.get("banned_phrases", defaults.banned_phrases)
        if not isinstance(banned_phrases, list):
            raise _config_error("detection.banned_phrases must be a list of strings.")

        pii_raw = detection_raw.get("pii_patterns", defaults.pii_patterns)
        if not isinstance(pii_raw, dict):
            raise _config_error(
                "detection.pii_patterns must be a mapping of category -> list of patterns."
            )
        pii_patterns: dict[str, list[str]] = {}
        for category, sources in pii_raw.items():
            if isinstance(sources, str):
                sources = [sources]
            if not isinstance(sources, list) or not all(isinstance(s, str) for s in sources):
                raise _config_error(
                    f"detection.pii_patterns.{category} must be a pattern string or a list of them."
                )
            pii_patterns[str(category)] = sources

        # Compile once here so a bad pattern stops startup, not the first finalize.
        try:
            compile_rules(banned_phrases, pii_patterns)
        except ValueError as exc:
            raise _config_error(f"Invalid detection rules: {exc}")

        detection = DetectionConfig(banned_phrases=banned_phrases, pii_patterns=pii_patterns)

        # ── Limits ────────────────────────────────────────────────────────────
        limits_raw = _section(raw, "limits")
        limits = LimitsConfig(
            chunk_size=_positive(limits_raw, "limits", "chunk_size", CHUNK_SIZE),
            max_file_size=_positive(limits_raw, "limits", "max_file_size", MAX_FILE_SIZE),
            max_content_size=_positive(limits_raw, "limits", "max_content_size", MAX_CONTENT_SIZE),
        )

        # ── Sessions ──────────────────────────────────────────────────────────
        sessions_raw = _section(raw, "sessions")
        sessions = SessionsConfig(
            max_concurrent=_positive(
                sessions_raw, "sessions", "max_concurrent", MAX_CONCURRENT_SESSIONS
            ),
            max_age_s=_positive(
                sessions_raw, "sessions", "max_age_s", MAX_SESSION_AGE_S, allow_float=True
            ),
        )

        return cls(
            version=raw.get("version", SUPPORTED_CONFIG_VERSION),
            detection=detection,
            limits=limits,
            sessions=sessions,
            path=path,
        )


def _section(raw: dict, name: str) -> dict:
    value = raw.get(name)
    if value is None:
        return {}
    if not isinstance(value, dict):
        raise _config_error(f"'{name}' must be a mapping.")
    return value


def _positive(
    section: dict,
    section_name: str,
    key: str,
    default: Any,
    allow_float: bool = False,
) -> Any:
    value = section.get(key, default)
    accepted = (int, float) if allow_float else (int,)
    # bool is an int subclass; `chunk_size: true` is a typo, not 1
    if isinstance(value, bool) or not isinstance(value, accepted) or value <= 0:
        kind = "number" if allow_float else "integer"
        raise _config_error(
            f"{section_name}.{key} must be a positive {kind}, got {value!r}."
        )
    return value


# ─── Config loading ───────────────────────────────────────────────────────────


def load_config(config_path: Optional[str] = None) -> Config:
    """Load and validate filescan configuration.

    Search order:
      1. ``config_path`` argument (if provided — for testing or explicit override)
      2. ``FILESCAN_CONFIG`` environment variable (if set)
      3. ``.filescan/config.yaml`` (current working directory)
      4. ``~/.filescan/config.yaml`` (home directory)

    If no file is found at any of these paths, returns default Config (not an error).
    If a file is found but invalid, writes error to stderr and raises SystemExit(1).

    After loading (or defaulting), ``FILESCAN_MAX_FILE_SIZE`` is applied as an
    override to ``config.limits.max_file_size``.

    Returns:
        Config object with all values populated (file values merged onto defaults).

    Raises:
        SystemExit(1): On YAML parse error, missing ``version`` field, unsupported
                       version, invalid section values, or invalid
                       ``FILESCAN_MAX_FILE_SIZE``.
    """
    # Build search list
    search_paths: list[str] = []
    if config_path:
        search_paths.append(config_path)
    env_config = os.environ.get("FILESCAN_CONFIG")
    if env_config:
        search_paths.append(env_config)
    search_paths.extend(DEFAULT_CONFIG_PATHS)

    # Find first existing config file
    found_path: Optional[str] = None
    for candidate in search_paths:
        expanded = os.path.expanduser(candidate)
        if os.path.isfile(expanded):
            found_path = expanded
            break

    # ── No config file found ─────────────────────────────────────────────────
    if found_path is None:
        logger.info("No config file found — using defaults", searched=search_paths)
        config = Config.defaults()
        _apply_env_overrides(config)
        return config

    # ── Parse config file ─────────────────────────────────────────────────────
    logger.info("Loading config", path=found_path)

    try:
        with open(found_path) as fh:
            raw = yaml.safe_load(fh)
    except yaml.YAMLError as exc:
        msg = (
            f"CONFIG ERROR: Failed to parse {found_path}: {exc}\n"
            "filescan refuses to start with an invalid config. "
            "Check the YAML syntax and try again."
        )
        print(msg, file=sys.stderr)
        raise SystemExit(1)
    except OSError as exc:
        msg = f"CONFIG ERROR: Could not read {found_path}: {exc}"
        print(msg, file=sys.stderr)
        raise SystemExit(1)

    # Empty file or non-mapping YAML (e.g. plain scalar)
    if not isinstance(raw, dict):
        if raw is None:
            msg = (
                f"CONFIG ERROR: {found_path} is missing the required 'version' field.\n"
                "Add 'version: 1' to the top of your config file."
            )
        else:
            msg = (
                f"CONFIG ERROR: {found_path} is not a valid YAML mapping.\n"
                "The config file must be a YAML dictionary at the top level."
            )
        print(msg, file=sys.stderr)
        raise SystemExit(1)

    # ── Version validation ────────────────────────────────────────────────────
    version = raw.get("version")
    if version is None:
        msg = (
            f"CONFIG ERROR: {found_path} is missing the required 'version' field.\n"
            "Add 'version: 1' to the top of your config file."
        )
        print(msg, file=sys.stderr)
        raise SystemExit(1)

    if version not in SUPPORTED_VERSIONS:
        msg = (
            f"CONFIG ERROR: Unsupported config version: {version}. "
            f"Supported versions: {sorted(SUPPORTED_VERSIONS)}."
        )
        print(msg, file=sys.stderr)
        raise SystemExit(1)

    config = Config.from_dict(raw, path=found_path)

    # ── Apply env var overrides (after file parsing) ──────────────────────────
    _apply_env_overrides(config)

    logger.info(
        "Config loaded",
        path=found_path,
        version=config.version,
        banned_phrases=len(config.detection.banned_phrases),
        pii_categories=len(config.detection.pii_patterns),
    )
    return config


def _apply_env_overrides(config: Config) -> None:
    """Apply environment variable overrides to a Config object in-place.

    Currently handles:
      FILESCAN_MAX_FILE_SIZE — overrides config.limits.max_file_size (positive
                               integer; raises SystemExit(1) if invalid)

    Called both for file-loaded and default configs so env vars always take
    precedence over any file value.

    Raises:
        SystemExit(1): If FILESCAN_MAX_FILE_SIZE is set but not a positive integer.
    """
    env_size = os.environ.get("FILESCAN_MAX_FILE_SIZE")
    if env_size is not None:
        try:
            value = int(env_size)
        except ValueError:
            value = 0
        if value <= 0:
            msg = (
                f"CONFIG ERROR: FILESCAN_MAX_FILE_SIZE environment variable is not a "
                f"positive integer: '{env_size}'"
            )
            print(msg, file=sys.stderr)
            raise SystemExit(1)
        config.limits.max_file_size = value
