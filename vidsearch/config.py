from pydantic import field_validator
from pydantic_settings import BaseSettings

UNKNOWN_BANG_MODES = ("passthrough", "error")


class Settings(BaseSettings):
    # Dispatch
    search_concurrency_limit: int = 10
    search_engine_timeout_seconds: float = 15.0
    search_request_timeout_seconds: float = 30.0  # batched path deadline
    search_results_per_page: int = 50
    search_max_page: int = 10

    # Result filters
    search_min_duration_seconds: int = 0  # 0 disables the filter
    search_filter_premium: bool = True

    # Engines
    search_default_engines: str = ""  # comma list, empty = every engine enabled
    search_unknown_bang_mode: str = "passthrough"  # passthrough | error

    # Circuit breaker
    circuit_failure_threshold: int = 5
    circuit_success_threshold: int = 2
    circuit_cooldown_seconds: float = 30.0

    # Retry
    retry_max_attempts: int = 3
    retry_initial_delay_seconds: float = 0.1
    retry_max_delay_seconds: float = 2.0
    retry_multiplier: float = 2.0
    retry_jitter: float = 0.1

    # Outbound HTTP
    http_user_agent: str = (
        "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
        "(KHTML, like Gecko) Chrome/131.0.0.0 Safari/537.36"
    )
    http_proxy_url: str = ""  # socks5:// or http:// proxy, optional

    # App
    cors_origins: str = "*"
    app_log_level: str = "INFO"
    noisy_log_level: str = "WARNING"
    admin_token: str = ""  # empty disables admin auth

    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "extra": "ignore",
    }

    @field_validator(
        "search_concurrency_limit",
        "search_results_per_page",
        "search_max_page",
        "circuit_failure_threshold",
        "circuit_success_threshold",
        "retry_max_attempts",
    )
    @classmethod
    def validate_positive_int(cls, v: int) -> int:
        if v <= 0:
            raise ValueError("must be positive")
        return v

    @field_validator(
        "search_engine_timeout_seconds",
        "search_request_timeout_seconds",
        "circuit_cooldown_seconds",
        "retry_max_delay_seconds",
    )
    @classmethod
    def validate_positive_float(cls, v: float) -> float:
        if v <= 0:
            raise ValueError("must be positive")
        return v

    @field_validator("search_min_duration_seconds", "retry_initial_delay_seconds")
    @classmethod
    def validate_non_negative(cls, v):
        if v < 0:
            raise ValueError("must be >= 0")
        return v

    @field_validator("retry_multiplier")
    @classmethod
    def validate_multiplier(cls, v: float) -> float:
        if v < 1.0:
            raise ValueError("retry_multiplier must be >= 1")
        return v

    @field_validator("retry_jitter")
    @classmethod
    def validate_jitter(cls, v: float) -> float:
        if not 0.0 <= v <= 1.0:
            raise ValueError("retry_jitter must be within [0, 1]")
        return v

    @field_validator("search_unknown_bang_mode")
    @classmethod
    def validate_unknown_bang_mode(cls, v: str) -> str:
        mode = v.strip().lower()
        if mode not in UNKNOWN_BANG_MODES:
            raise ValueError(f"search_unknown_bang_mode must be one of {UNKNOWN_BANG_MODES}")
        return mode

    @property
    def cors_origin_list(self) -> list[str]:
        return [o.strip() for o in self.cors_origins.split(",") if o.strip()]

    @property
    def default_engine_list(self) -> list[str]:
        return [e.strip().lower() for e in self.search_default_engines.split(",") if e.strip()]


settings = Settings()
