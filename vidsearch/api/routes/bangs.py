from __future__ import annotations

from fastapi import APIRouter, Depends, Query

from vidsearch.api.deps import Runtime, get_runtime
from vidsearch.services import bangs

router = APIRouter(prefix="/api/bangs", tags=["bangs"])


@router.get("")
async def list_bangs(runtime: Runtime = Depends(get_runtime)):
    data = [info.to_dict() for info in bangs.list_bangs(runtime.registry.snapshot())]
    return {"ok": True, "data": data, "count": len(data)}


@router.get("/autocomplete")
async def autocomplete(
    q: str = Query(default=""),
    limit: int = Query(default=10, ge=1, le=50),
    runtime: Runtime = Depends(get_runtime),
):
    suggestions = bangs.autocomplete(q, runtime.registry.snapshot(), limit=limit)
    return {"ok": True, "data": [info.to_dict() for info in suggestions]}
