"""Unit tests for AnalyzerLoader: status transitions, engine-not-ready guard,
config-driven rule sets, and per-analyzer isolation."""

from __future__ import annotations

import threading

import pytest

from filescan.analyzer.loader import AnalyzerLoader, EngineNotReadyError, LoaderStatus
from filescan.analyzer.streaming import StreamingAnalyzer
from filescan.config import Config, DetectionConfig
from filescan.models.analysis import Decision


class TestStatus:

    def test_initial_status_not_loaded(self):
        loader = AnalyzerLoader()
        assert loader.status is LoaderStatus.NOT_LOADED
        assert loader.is_loaded() is False

    def test_load_sets_loaded(self):
        loader = AnalyzerLoader()
        rules = loader.load()
        assert loader.status is LoaderStatus.LOADED
        assert loader.is_loaded() is True
        assert loader.rules is rules

    def test_load_is_idempotent(self):
        loader = AnalyzerLoader()
        assert loader.load() is loader.load()

    def test_unload_returns_to_not_loaded(self, loader):
        loader.unload()
        assert loader.status is LoaderStatus.NOT_LOADED
        with pytest.raises(EngineNotReadyError):
            loader.rules

    def test_status_values_are_strings(self):
        assert [s.value for s in LoaderStatus] == ["not_loaded", "loading", "loaded", "error"]

    def test_invalid_rules_set_error_status(self):
        loader = AnalyzerLoader(pii_patterns={"broken": ["(unclosed"]})
        with pytest.raises(ValueError):
            loader.load()
        assert loader.status is LoaderStatus.ERROR
        with pytest.raises(EngineNotReadyError):
            loader.create_streaming_analyzer()

    def test_concurrent_load_compiles_once(self):
        loader = AnalyzerLoader()
        results = []

        def worker():
            results.append(loader.load())

        threads = [threading.Thread(target=worker) for _ in range(8)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()
        assert len({id(r) for r in results}) == 1


class TestCreateAnalyzer:

    def test_before_load_raises(self):
        with pytest.raises(EngineNotReadyError):
            AnalyzerLoader().create_streaming_analyzer()

    def test_returns_fresh_analyzers(self, loader):
        first = loader.create_streaming_analyzer()
        second = loader.create_streaming_analyzer()
        assert isinstance(first, StreamingAnalyzer)
        assert first is not second
        first.process_chunk("malware")
        assert second.total_size == 0

    def test_analyzers_share_loader_rules(self, loader):
        analyzer = loader.create_streaming_analyzer()
        assert analyzer.rules is loader.rules

    def test_analyzer_survives_unload(self, loader):
        analyzer = loader.create_streaming_analyzer()
        loader.unload()
        analyzer.process_chunk("virus")
        assert analyzer.finalize().decision is Decision.BLOCK


class TestFromConfig:

    def test_uses_detection_section(self):
        config = Config(
            detection=DetectionConfig(
                banned_phrases=["blueprint"],
                pii_patterns={"badge": [r"\bB-\d{4}\b"]},
            )
        )
        loader = AnalyzerLoader.from_config(config)
        loader.load()
        analyzer = loader.create_streaming_analyzer()
        analyzer.process_chunk("The BLUEPRINT for badge B-1234")
        result = analyzer.finalize()
        assert result.banned_phrases == frozenset({"blueprint"})
        assert result.pii_patterns == ("B-1234",)

    def test_default_config_gives_default_rules(self):
        loader = AnalyzerLoader.from_config(Config.defaults())
        rules = loader.load()
        assert rules.categories == ("numeric_id", "email", "ssn", "card_number")
