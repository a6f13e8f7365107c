from pydantic_settings import BaseSettings
from functools import lru_cache


class Settings(BaseSettings):
    log_level: str = "INFO"

    # CORS: comma-separated origins allowed to access the API
    cors_origins: str = "http://localhost:5173"

    # Decision cache
    cache_max_size: int = 1000
    cache_ttl_seconds: float = 300.0

    # Default block-mode thresholds
    block_secrets_threshold: int = 3
    block_injections_threshold: int = 2
    block_high_severity_threshold: int = 1

    # Detection
    entropy_threshold: float = 4.5
    extra_patterns_file: str = ""      # JSON {"secrets": [...], "injections": [...]}

    # AI analysis
    ai_provider: str = "ollama"        # "groq", "openai", "anthropic", "ollama", "lmstudio"
    ai_model: str = "llama3"
    ai_timeout_seconds: float = 10.0
    ai_max_chars: int = 4000
    ai_min_confidence: float = 0.5

    # Provider credentials and local endpoints
    openai_api_key: str = ""
    anthropic_api_key: str = ""
    groq_api_key: str = ""
    ollama_base_url: str = "http://localhost:11434"
    lmstudio_base_url: str = "http://localhost:1234"

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8"}

    def api_key_for(self, provider: str) -> str | None:
        keys = {
            "openai": self.openai_api_key,
            "anthropic": self.anthropic_api_key,
            "groq": self.groq_api_key,
        }
        return keys.get(provider) or None

    def endpoint_for(self, provider: str) -> str | None:
        """Endpoint override for local providers; cloud providers use defaults."""
        if provider == "ollama":
            return f"{self.ollama_base_url.rstrip('/')}/api/chat"
        if provider == "lmstudio":
            return f"{self.lmstudio_base_url.rstrip('/')}/v1/chat/completions"
        return None


@lru_cache
def get_settings() -> Settings:
    return Settings()
