from __future__ import annotations

from fastapi import APIRouter, Depends

from vidsearch.api.deps import Runtime, get_runtime
from vidsearch.engines.base import Feature
from vidsearch.models.schemas import CircuitInfo, EngineInfo, EnginesResponse
from vidsearch.services.circuit_breaker import CircuitBreakerRegistry
from vidsearch.services.registry import EngineEntry

router = APIRouter(prefix="/api/engines", tags=["engines"])


def engine_info(entry: EngineEntry, breakers: CircuitBreakerRegistry) -> EngineInfo:
    engine = entry.engine
    circuit = breakers.get(entry.name).snapshot()
    return EngineInfo(
        name=entry.name,
        display_name=engine.display_name or entry.name,
        tier=engine.tier,
        enabled=entry.enabled,
        features=[feature.value for feature in Feature if engine.supports_feature(feature)],
        bangs=[f"!{code}" for code in entry.codes],
        circuit=CircuitInfo(
            state=circuit["state"],
            consecutive_failures=circuit["consecutive_failures"],
            retry_in_s=circuit["retry_in_s"],
        ),
    )


@router.get("", response_model=EnginesResponse)
async def list_engines(runtime: Runtime = Depends(get_runtime)):
    """List registered engines, most reliable tier first."""
    entries = sorted(
        runtime.registry.snapshot().entries,
        key=lambda e: (e.engine.tier, e.name),
    )
    data = [engine_info(entry, runtime.breakers) for entry in entries]
    return EnginesResponse(data=data, count=len(data))
