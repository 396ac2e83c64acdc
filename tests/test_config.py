import pytest
from pydantic import ValidationError

from taskparse.config import Settings


class TestSettings:
    def test_defaults(self, monkeypatch):
        for name in ("OLLAMA_BASE_URL", "OLLAMA_MODEL", "STRATEGY_MODE", "INFERENCE_ENABLED"):
            monkeypatch.delenv(f"TASKPARSE_{name}", raising=False)

        settings = Settings(_env_file=None)

        assert settings.ollama_base_url == "http://localhost:11434"
        assert settings.ollama_model == "qwen2.5:7b"
        assert settings.inference_timeout == 15.0
        assert settings.cache_capacity == 1000
        assert settings.similarity_threshold == 0.85
        assert settings.fuzzy_min_length == 3
        assert settings.strategy_mode == "fixed_then_rules"
        assert settings.max_input_length == 10_000
        assert settings.has_inference is True

    def test_environment_override(self, monkeypatch):
        monkeypatch.setenv("TASKPARSE_STRATEGY_MODE", "rules_only")
        monkeypatch.setenv("TASKPARSE_CACHE_CAPACITY", "50")

        settings = Settings(_env_file=None)

        assert settings.strategy_mode == "rules_only"
        assert settings.cache_capacity == 50

    def test_unknown_strategy_mode_rejected(self, monkeypatch):
        monkeypatch.setenv("TASKPARSE_STRATEGY_MODE", "guess")

        with pytest.raises(ValidationError):
            Settings(_env_file=None)

    def test_inference_disabled(self, monkeypatch):
        monkeypatch.setenv("TASKPARSE_INFERENCE_ENABLED", "false")

        assert Settings(_env_file=None).has_inference is False

    def test_empty_base_url_disables_inference(self):
        assert Settings(_env_file=None, ollama_base_url="").has_inference is False
