"""Configuration Manager for the Scatterbrain content engine.

Centralized configuration loading from environment variables with sensible defaults.
All configuration is validated at load time to fail fast on invalid values.
Business logic never reads this module; components receive their collaborators
and settings through their constructors.
"""

import os
from dataclasses import dataclass, field
from pathlib import Path

from scatterbrain.core.exceptions import ConfigurationError

VALID_PROVIDERS = {"anthropic", "openai"}
VALID_STORES = {"memory", "json", "supabase"}


@dataclass
class Config:
    """Application configuration loaded from environment variables.

    Required:
        anthropic_api_key: API key for Claude/Anthropic LLM (may be empty
            when the OpenAI provider is selected).

    Optional (with defaults):
        llm_provider: Name of the LLM provider ("anthropic" or "openai").
        openai_api_key: API key for the OpenAI provider.
        model: Model identifier used by every stage. None uses the provider default.
        request_timeout: Outer wall-clock budget per request, in seconds.
        cache_ttl: Generator cache entry lifetime, in seconds.
        cache_max_entries: Generator cache capacity.
        store_backend: Record store backend ("memory", "json" or "supabase").
        store_file: Path to the JSON record store file.
        supabase_url: Base URL of the Supabase project.
        supabase_service_key: Service role key for Supabase REST and auth.
        api_tokens: Static bearer tokens mapped to user ids.
        log_level: Logging verbosity (DEBUG, INFO, WARNING, ERROR).
        host: Interface the HTTP server binds to.
        port: Port the HTTP server listens on.
    """

    # Required
    anthropic_api_key: str

    # Optional with defaults
    llm_provider: str = "anthropic"
    openai_api_key: str | None = None
    model: str | None = None
    request_timeout: float = 45.0
    cache_ttl: float = 3600.0
    cache_max_entries: int = 100
    store_backend: str = "memory"
    store_file: Path = field(default_factory=lambda: Path("data/records.json"))
    supabase_url: str | None = None
    supabase_service_key: str | None = None
    api_tokens: dict[str, str] = field(default_factory=dict)
    log_level: str = "INFO"
    host: str = "0.0.0.0"
    port: int = 8766

    def __post_init__(self) -> None:
        """Validate configuration after initialization."""
        if isinstance(self.store_file, str):
            self.store_file = Path(self.store_file)

        # Validate log level
        valid_log_levels = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        if self.log_level.upper() not in valid_log_levels:
            raise ConfigurationError(
                f"Invalid LOG_LEVEL '{self.log_level}'. "
                f"Must be one of: {', '.join(sorted(valid_log_levels))}"
            )
        self.log_level = self.log_level.upper()

        self.llm_provider = self.llm_provider.lower()
        if self.llm_provider not in VALID_PROVIDERS:
            raise ConfigurationError(
                f"Invalid SCATTERBRAIN_LLM_PROVIDER '{self.llm_provider}'. "
                f"Must be one of: {', '.join(sorted(VALID_PROVIDERS))}"
            )

        self.store_backend = self.store_backend.lower()
        if self.store_backend not in VALID_STORES:
            raise ConfigurationError(
                f"Invalid SCATTERBRAIN_STORE '{self.store_backend}'. "
                f"Must be one of: {', '.join(sorted(VALID_STORES))}"
            )
        if self.store_backend == "supabase" and not (
            self.supabase_url and self.supabase_service_key
        ):
            raise ConfigurationError(
                "SUPABASE_URL and SUPABASE_SERVICE_ROLE_KEY are required "
                "for the supabase store"
            )

        if self.request_timeout <= 0:
            raise ConfigurationError("SCATTERBRAIN_REQUEST_TIMEOUT must be positive")
        if self.cache_ttl <= 0:
            raise ConfigurationError("SCATTERBRAIN_CACHE_TTL must be positive")
        if self.cache_max_entries < 1:
            raise ConfigurationError("SCATTERBRAIN_CACHE_MAX_ENTRIES must be at least 1")
        if not 0 < self.port < 65536:
            raise ConfigurationError("SCATTERBRAIN_PORT must be between 1 and 65535")


def parse_api_tokens(raw: str) -> dict[str, str]:
    """Parse "token:user_id,token2:user_id2" into a token -> user id mapping.

    Raises:
        ConfigurationError: If an entry has no user id.
    """
    tokens: dict[str, str] = {}
    for entry in raw.split(","):
        entry = entry.strip()
        if not entry:
            continue
        token, sep, user_id = entry.partition(":")
        if not sep or not token.strip() or not user_id.strip():
            raise ConfigurationError(
                f"SCATTERBRAIN_API_TOKENS entry must be 'token:user_id', got '{entry}'"
            )
        tokens[token.strip()] = user_id.strip()
    return tokens


def load_config(*, require_api_key: bool = True) -> Config:
    """Load configuration from environment variables.

    Args:
        require_api_key: If True (default), raises ConfigurationError when
            the selected provider's API key is missing. Set to False for
            testing or environments where the LLM is not needed.

    Returns:
        Config object with all settings loaded.

    Raises:
        ConfigurationError: If required config is missing or values are invalid.
    """
    api_key = os.environ.get("ANTHROPIC_API_KEY", "")
    provider = os.environ.get("SCATTERBRAIN_LLM_PROVIDER", "anthropic")
    openai_key = os.environ.get("OPENAI_API_KEY")

    if require_api_key:
        if provider.lower() == "openai" and not openai_key:
            raise ConfigurationError(
                "OPENAI_API_KEY environment variable is required but not set"
            )
        if provider.lower() != "openai" and not api_key:
            raise ConfigurationError(
                "ANTHROPIC_API_KEY environment variable is required but not set"
            )

    def get_float(key: str, default: float) -> float:
        """Parse float from env var with default."""
        value = os.environ.get(key)
        if value is None:
            return default
        try:
            return float(value)
        except ValueError:
            raise ConfigurationError(f"{key} must be a valid number, got '{value}'")

    def get_int(key: str, default: int) -> int:
        """Parse int from env var with default."""
        value = os.environ.get(key)
        if value is None:
            return default
        try:
            return int(value)
        except ValueError:
            raise ConfigurationError(f"{key} must be a valid integer, got '{value}'")

    return Config(
        anthropic_api_key=api_key,
        llm_provider=provider,
        openai_api_key=openai_key,
        model=os.environ.get("SCATTERBRAIN_MODEL") or None,
        request_timeout=get_float("SCATTERBRAIN_REQUEST_TIMEOUT", 45.0),
        cache_ttl=get_float("SCATTERBRAIN_CACHE_TTL", 3600.0),
        cache_max_entries=get_int("SCATTERBRAIN_CACHE_MAX_ENTRIES", 100),
        store_backend=os.environ.get("SCATTERBRAIN_STORE", "memory"),
        store_file=Path(os.environ.get("SCATTERBRAIN_STORE_FILE", "data/records.json")),
        supabase_url=os.environ.get("SUPABASE_URL"),
        supabase_service_key=os.environ.get("SUPABASE_SERVICE_ROLE_KEY"),
        api_tokens=parse_api_tokens(os.environ.get("SCATTERBRAIN_API_TOKENS", "")),
        log_level=os.environ.get("LOG_LEVEL", "INFO"),
        host=os.environ.get("SCATTERBRAIN_HOST", "0.0.0.0"),
        port=get_int("SCATTERBRAIN_PORT", 8766),
    )


# Singleton instance for convenience
_config: Config | None = None


def get_config(*, require_api_key: bool = True) -> Config:
    """Get the global configuration instance.

    Loads configuration on first call and caches it for subsequent calls.
    Use reset_config() to force a reload.

    Args:
        require_api_key: If True (default), raises ConfigurationError when
            the provider API key is missing.

    Returns:
        The global Config instance.
    """
    global _config
    if _config is None:
        _config = load_config(require_api_key=require_api_key)
    return _config


def reset_config() -> None:
    """Reset the global configuration instance.

    Forces the next get_config() call to reload from environment variables.
    Useful for testing.
    """
    global _config
    _config = None
