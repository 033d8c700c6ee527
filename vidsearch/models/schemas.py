from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field


# --- Results ---


class ResultItem(BaseModel):
    """Canonical result handed to callers. Immutable once built."""

    model_config = ConfigDict(frozen=True)

    id: str
    title: str
    url: str
    thumbnail: str = ""
    preview_url: str | None = None
    download_url: str | None = None
    duration: str = ""
    duration_seconds: int = 0
    views: str = ""
    views_count: int = 0
    quality: str | None = None
    performer: str | None = None
    source: str
    source_display: str


# --- Requests ---


class EngineToggleRequest(BaseModel):
    enabled: bool


class RuntimeConfigUpdate(BaseModel):
    search_concurrency_limit: int | None = Field(default=None, gt=0)
    search_engine_timeout_seconds: float | None = Field(default=None, gt=0)
    search_request_timeout_seconds: float | None = Field(default=None, gt=0)
    search_min_duration_seconds: int | None = Field(default=None, ge=0)
    search_filter_premium: bool | None = None
    search_unknown_bang_mode: str | None = Field(default=None, pattern="^(passthrough|error)$")
    circuit_failure_threshold: int | None = Field(default=None, gt=0)
    circuit_success_threshold: int | None = Field(default=None, gt=0)
    circuit_cooldown_seconds: float | None = Field(default=None, gt=0)
    retry_max_attempts: int | None = Field(default=None, gt=0)
    retry_initial_delay_seconds: float | None = Field(default=None, ge=0)
    retry_max_delay_seconds: float | None = Field(default=None, gt=0)
    retry_multiplier: float | None = Field(default=None, ge=1)
    retry_jitter: float | None = Field(default=None, ge=0, le=1)


# --- Responses ---


class SearchData(BaseModel):
    query: str
    search_query: str
    results: list[ResultItem]
    engines_used: list[str]
    engines_failed: list[str]
    search_time_ms: int
    has_bang: bool = False
    bang_engines: list[str] = Field(default_factory=list)


class PaginationData(BaseModel):
    page: int
    limit: int
    total: int
    pages: int


class SearchResponse(BaseModel):
    ok: bool = True
    data: SearchData
    pagination: PaginationData


class CircuitInfo(BaseModel):
    state: str
    consecutive_failures: int = 0
    retry_in_s: float = 0.0


class EngineInfo(BaseModel):
    name: str
    display_name: str
    tier: int
    enabled: bool
    features: list[str]
    bangs: list[str]
    circuit: CircuitInfo


class EnginesResponse(BaseModel):
    ok: bool = True
    data: list[EngineInfo]
    count: int
