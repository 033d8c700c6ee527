from __future__ import annotations

from fastapi import APIRouter, Depends

from vidsearch.api.deps import Runtime, get_runtime, require_admin
from vidsearch.api.routes.engines import engine_info
from vidsearch.errors import UnknownEngineError
from vidsearch.models.schemas import EngineToggleRequest, RuntimeConfigUpdate
from vidsearch.services import logger as log_service

router = APIRouter(
    prefix="/api/admin",
    tags=["admin"],
    dependencies=[Depends(require_admin)],
)

RUNTIME_FIELDS = tuple(RuntimeConfigUpdate.model_fields)


@router.patch("/engines/{name}")
async def toggle_engine(
    name: str,
    request: EngineToggleRequest,
    runtime: Runtime = Depends(get_runtime),
):
    entry = runtime.registry.set_enabled(name, request.enabled)
    log_service.log_event(
        event_type="engine_toggled",
        message=f"Engine {name} {'enabled' if request.enabled else 'disabled'}",
        engine=name,
        enabled=request.enabled,
    )
    return {"ok": True, "data": engine_info(entry, runtime.breakers)}


@router.post("/engines/{name}/reset")
async def reset_circuit(name: str, runtime: Runtime = Depends(get_runtime)):
    entry = runtime.registry.get(name)
    if entry is None:
        raise UnknownEngineError(name)
    runtime.breakers.reset(name)
    log_service.log_event(event_type="circuit_reset", message=f"Circuit reset for {name}", engine=name)
    return {"ok": True, "data": engine_info(entry, runtime.breakers)}


@router.patch("/config")
async def update_config(update: RuntimeConfigUpdate, runtime: Runtime = Depends(get_runtime)):
    """Change search, circuit and retry tunables without a restart."""
    changes = update.model_dump(exclude_none=True)
    for field_name, value in changes.items():
        setattr(runtime.settings, field_name, value)
    if any(name.startswith("circuit_") for name in changes):
        runtime.reload_breakers()
    if changes:
        log_service.log_event(
            event_type="config_updated",
            message="Runtime configuration updated",
            fields=sorted(changes),
        )
    return {
        "ok": True,
        "data": {name: getattr(runtime.settings, name) for name in RUNTIME_FIELDS},
    }
