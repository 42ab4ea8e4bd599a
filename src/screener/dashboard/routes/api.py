"""JSON status endpoints: health, engine status, signals, confirmations, metric caches."""

from __future__ import annotations

import structlog
from fastapi import APIRouter, Query, Request
from fastapi.responses import JSONResponse

log = structlog.get_logger(__name__)

router = APIRouter()


def _service_or_503(request: Request):  # type: ignore[no-untyped-def]
    service = getattr(request.app.state, "service", None)
    if service is None:
        return None, JSONResponse(status_code=503, content={"error": "screener not started"})
    return service, None


@router.get("/health")
async def get_health(request: Request) -> JSONResponse:
    """Liveness probe; reports whether the scan loop is running."""
    service = getattr(request.app.state, "service", None)
    return JSONResponse(content={
        "status": "ok",
        "running": bool(service is not None and service.is_running),
    })


@router.get("/status")
async def get_status(request: Request) -> JSONResponse:
    """Engine status: cycles, tracked symbols, last cycle summary, publisher stats."""
    service, error = _service_or_503(request)
    if error is not None:
        return error
    return JSONResponse(content=service.get_status())


@router.get("/signals")
async def get_signals(
    request: Request,
    limit: int = Query(default=50, ge=1, le=500),
    symbol: str | None = None,
) -> JSONResponse:
    """Recent signals, newest first. Reads the signal store when one is configured."""
    service, error = _service_or_503(request)
    if error is not None:
        return error

    store = service.signal_store
    if store is not None:
        try:
            signals = await store.get_recent_signals(limit=limit, symbol=symbol)
        except Exception as e:
            log.warning("signal_store_query_failed", error=str(e))
            signals = service.recent_signals(limit=limit, symbol=symbol)
    else:
        signals = service.recent_signals(limit=limit, symbol=symbol)

    return JSONResponse(content=[s.to_dict() for s in signals])


@router.get("/confirmations/{symbol:path}")
async def get_confirmations(request: Request, symbol: str) -> JSONResponse:
    """Confirmation progress for every tracked period of a symbol."""
    service, error = _service_or_503(request)
    if error is not None:
        return error

    counters = await service.confirmations.snapshot(symbol)
    return JSONResponse(content={
        "symbol": symbol,
        "signal_threshold": service.confirmations.signal_threshold,
        "required_confirmations": service.confirmations.required_confirmations,
        "counters": counters,
    })


@router.get("/metric-cache")
async def get_metric_cache(request: Request) -> JSONResponse:
    """Size, TTL and value provenance of each metric cache."""
    service, error = _service_or_503(request)
    if error is not None:
        return error

    content = {}
    for cache in service.metric_caches:
        content[cache.name] = await cache.info()
    return JSONResponse(content=content)
