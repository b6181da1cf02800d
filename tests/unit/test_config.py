"""Unit tests for filescan/config.py: config file loading and validation.

Covers:
  - Missing config file → Config.defaults(), no exception
  - Missing / unsupported 'version' → SystemExit(1) with human-readable message
  - Invalid YAML / non-mapping document → SystemExit(1)
  - detection section: custom phrases and patterns, invalid values → SystemExit(1)
  - limits / sessions sections: overrides, non-positive values → SystemExit(1)
  - FILESCAN_CONFIG search path and FILESCAN_MAX_FILE_SIZE override
"""

from __future__ import annotations

import textwrap
from typing import Any

import pytest

from filescan.config import (
    SUPPORTED_VERSIONS,
    Config,
    DetectionConfig,
    LimitsConfig,
    SessionsConfig,
    load_config,
)
from filescan.constants import CHUNK_SIZE, MAX_CONCURRENT_SESSIONS, MAX_FILE_SIZE


def write_config(tmp_path: Any, body: str) -> str:
    config_file = tmp_path / "config.yaml"
    config_file.write_text(textwrap.dedent(body))
    return str(config_file)


# ─── Missing config file ──────────────────────────────────────────────────────


class TestMissingConfigFile:

    def test_nonexistent_path_returns_defaults(self, tmp_path: Any, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.chdir(tmp_path)
        monkeypatch.setenv("HOME", str(tmp_path))
        config = load_config(config_path="/nonexistent/path/to/config.yaml")
        assert isinstance(config, Config)
        assert config.version == 1
        assert config.path is None

    def test_defaults(self) -> None:
        config = Config.defaults()
        assert config.detection.banned_phrases[0] == "malware"
        assert list(config.detection.pii_patterns) == ["numeric_id", "email", "ssn", "card_number"]
        assert config.limits == LimitsConfig()
        assert config.limits.chunk_size == CHUNK_SIZE
        assert config.sessions.max_concurrent == MAX_CONCURRENT_SESSIONS

    def test_default_instances_do_not_share_lists(self) -> None:
        first = DetectionConfig()
        second = DetectionConfig()
        first.banned_phrases.append("extra")
        assert "extra" not in second.banned_phrases


# ─── Version validation ───────────────────────────────────────────────────────


class TestVersionField:

    def test_missing_version_raises_system_exit(self, tmp_path: Any, capsys: pytest.CaptureFixture) -> None:
        path = write_config(tmp_path, "limits:\n  chunk_size: 10\n")
        with pytest.raises(SystemExit) as exc_info:
            load_config(config_path=path)
        assert exc_info.value.code == 1
        assert "missing the required 'version' field" in capsys.readouterr().err

    def test_empty_file_is_missing_version(self, tmp_path: Any) -> None:
        path = write_config(tmp_path, "")
        with pytest.raises(SystemExit) as exc_info:
            load_config(config_path=path)
        assert exc_info.value.code == 1

    def test_unsupported_version(self, tmp_path: Any, capsys: pytest.CaptureFixture) -> None:
        path = write_config(tmp_path, "version: 2\n")
        with pytest.raises(SystemExit) as exc_info:
            load_config(config_path=path)
        assert exc_info.value.code == 1
        assert "Unsupported config version: 2" in capsys.readouterr().err

    def test_supported_versions(self) -> None:
        assert SUPPORTED_VERSIONS == frozenset({1})

    def test_version_only_gives_defaults(self, tmp_path: Any) -> None:
        path = write_config(tmp_path, "version: 1\n")
        config = load_config(config_path=path)
        assert config.path == path
        assert config.detection == DetectionConfig()
        assert config.limits == LimitsConfig()
        assert config.sessions == SessionsConfig()


# ─── Malformed documents ──────────────────────────────────────────────────────


class TestMalformedDocuments:

    def test_invalid_yaml(self, tmp_path: Any, capsys: pytest.CaptureFixture) -> None:
        path = write_config(tmp_path, "version: 1\ndetection: [unclosed\n")
        with pytest.raises(SystemExit) as exc_info:
            load_config(config_path=path)
        assert exc_info.value.code == 1
        assert "Failed to parse" in capsys.readouterr().err

    def test_non_mapping_document(self, tmp_path: Any) -> None:
        path = write_config(tmp_path, "- just\n- a list\n")
        with pytest.raises(SystemExit) as exc_info:
            load_config(config_path=path)
        assert exc_info.value.code == 1

    def test_section_must_be_mapping(self, tmp_path: Any) -> None:
        path = write_config(tmp_path, "version: 1\nlimits: 5\n")
        with pytest.raises(SystemExit) as exc_info:
            load_config(config_path=path)
        assert exc_info.value.code == 1


# ─── detection section ────────────────────────────────────────────────────────


class TestDetectionSection:

    def test_custom_rules(self, tmp_path: Any) -> None:
        path = write_config(tmp_path, r"""
            version: 1
            detection:
              banned_phrases: [secret, "internal only"]
              pii_patterns:
                employee_id: ['\bEMP-\d{5}\b']
                zip: '\b\d{5}\b'
        """)
        config = load_config(config_path=path)
        assert config.detection.banned_phrases == ["secret", "internal only"]
        assert config.detection.pii_patterns == {
            "employee_id": [r"\bEMP-\d{5}\b"],
            "zip": [r"\b\d{5}\b"],
        }

    def test_empty_phrase_rejected(self, tmp_path: Any, capsys: pytest.CaptureFixture) -> None:
        path = write_config(tmp_path, """
            version: 1
            detection:
              banned_phrases: [ok, ""]
        """)
        with pytest.raises(SystemExit) as exc_info:
            load_config(config_path=path)
        assert exc_info.value.code == 1
        assert "Invalid detection rules" in capsys.readouterr().err

    def test_invalid_re2_pattern_rejected(self, tmp_path: Any, capsys: pytest.CaptureFixture) -> None:
        path = write_config(tmp_path, r"""
            version: 1
            detection:
              pii_patterns:
                repeated: ['(a)\1']
        """)
        with pytest.raises(SystemExit) as exc_info:
            load_config(config_path=path)
        assert exc_info.value.code == 1
        assert "not a valid RE2 pattern" in capsys.readouterr().err

    def test_phrases_must_be_list(self, tmp_path: Any) -> None:
        path = write_config(tmp_path, """
            version: 1
            detection:
              banned_phrases: malware
        """)
        with pytest.raises(SystemExit):
            load_config(config_path=path)

    def test_pattern_list_must_hold_strings(self, tmp_path: Any) -> None:
        path = write_config(tmp_path, """
            version: 1
            detection:
              pii_patterns:
                numbers: [123]
        """)
        with pytest.raises(SystemExit):
            load_config(config_path=path)


# ─── limits / sessions sections ───────────────────────────────────────────────


class TestLimitsAndSessions:

    def test_overrides(self, tmp_path: Any) -> None:
        path = write_config(tmp_path, """
            version: 1
            limits:
              chunk_size: 4096
              max_file_size: 2048
              max_content_size: 1000
            sessions:
              max_concurrent: 5
              max_age_s: 90.5
        """)
        config = load_config(config_path=path)
        assert config.limits == LimitsConfig(chunk_size=4096, max_file_size=2048, max_content_size=1000)
        assert config.sessions == SessionsConfig(max_concurrent=5, max_age_s=90.5)

    @pytest.mark.parametrize("value", ["0", "-1", "true", "'big'", "1.5"])
    def test_invalid_chunk_size(self, tmp_path: Any, value: str) -> None:
        path = write_config(tmp_path, f"version: 1\nlimits:\n  chunk_size: {value}\n")
        with pytest.raises(SystemExit) as exc_info:
            load_config(config_path=path)
        assert exc_info.value.code == 1

    def test_invalid_session_age(self, tmp_path: Any) -> None:
        path = write_config(tmp_path, "version: 1\nsessions:\n  max_age_s: 0\n")
        with pytest.raises(SystemExit):
            load_config(config_path=path)


# ─── Environment ──────────────────────────────────────────────────────────────


class TestEnvironment:

    def test_filescan_config_env(self, tmp_path: Any, monkeypatch: pytest.MonkeyPatch) -> None:
        path = write_config(tmp_path, "version: 1\nsessions:\n  max_concurrent: 7\n")
        monkeypatch.setenv("FILESCAN_CONFIG", path)
        config = load_config()
        assert config.path == path
        assert config.sessions.max_concurrent == 7

    def test_explicit_path_wins_over_env(self, tmp_path: Any, monkeypatch: pytest.MonkeyPatch) -> None:
        env_dir = tmp_path / "env"
        env_dir.mkdir()
        env_path = write_config(env_dir, "version: 1\nsessions:\n  max_concurrent: 7\n")
        explicit = write_config(tmp_path, "version: 1\nsessions:\n  max_concurrent: 2\n")
        monkeypatch.setenv("FILESCAN_CONFIG", env_path)
        assert load_config(config_path=explicit).sessions.max_concurrent == 2

    def test_working_directory_config(self, tmp_path: Any, monkeypatch: pytest.MonkeyPatch) -> None:
        (tmp_path / ".filescan").mkdir()
        (tmp_path / ".filescan" / "config.yaml").write_text("version: 1\nlimits:\n  chunk_size: 99\n")
        monkeypatch.chdir(tmp_path)
        assert load_config().limits.chunk_size == 99

    def test_max_file_size_override(self, tmp_path: Any, monkeypatch: pytest.MonkeyPatch) -> None:
        path = write_config(tmp_path, "version: 1\nlimits:\n  max_file_size: 10\n")
        monkeypatch.setenv("FILESCAN_MAX_FILE_SIZE", "4096")
        assert load_config(config_path=path).limits.max_file_size == 4096

    def test_max_file_size_override_without_file(self, tmp_path: Any, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.chdir(tmp_path)
        monkeypatch.setenv("HOME", str(tmp_path))
        monkeypatch.setenv("FILESCAN_MAX_FILE_SIZE", "123")
        config = load_config(config_path=str(tmp_path / "absent.yaml"))
        assert config.limits.max_file_size == 123
        assert config.limits.max_file_size != MAX_FILE_SIZE

    @pytest.mark.parametrize("value", ["abc", "0", "-5"])
    def test_invalid_max_file_size_env(self, monkeypatch: pytest.MonkeyPatch, value: str) -> None:
        monkeypatch.setenv("FILESCAN_MAX_FILE_SIZE", value)
        with pytest.raises(SystemExit) as exc_info:
            load_config(config_path="/nonexistent/config.yaml")
        assert exc_info.value.code == 1
