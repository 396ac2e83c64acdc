from typing import Literal

from pydantic_settings import BaseSettings, SettingsConfigDict

StrategyMode = Literal["fixed_then_rules", "rules_then_fixed", "fixed_only", "rules_only"]


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env", env_file_encoding="utf-8", env_prefix="TASKPARSE_", extra="ignore"
    )

    # Ollama-compatible inference service
    ollama_base_url: str = "http://localhost:11434"
    ollama_model: str = "qwen2.5:7b"
    inference_timeout: float = 15.0  # seconds
    inference_enabled: bool = True

    # Interpretation cache
    cache_capacity: int = 1000
    similarity_threshold: float = 0.85
    fuzzy_min_length: int = 3

    strategy_mode: StrategyMode = "fixed_then_rules"
    max_input_length: int = 10_000

    user_timezone: str = "UTC"
    log_level: str = "INFO"

    @property
    def has_inference(self) -> bool:
        return self.inference_enabled and bool(self.ollama_base_url)


settings = Settings()
