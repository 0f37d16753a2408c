"""Health check routes."""

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse

from anyrss.idgen import IDGenerator
from anyrss.storage import KVStore

router = APIRouter()


@router.get("/health")
def health_check(request: Request) -> JSONResponse:
    """
    Report whether the store is open and the ID generator can issue ids.

    Answers 503 when either is down: reads may still work, but posting fails.
    """
    store: KVStore = request.app.state.store
    ids: IDGenerator = request.app.state.ids
    healthy = store.is_open and ids.running
    return JSONResponse(
        status_code=200 if healthy else 503,
        content={
            "status": "ok" if healthy else "unavailable",
            "store": "open" if store.is_open else "closed",
            "idGenerator": "running" if ids.running else "stopped",
            "lastId": ids.last_id,
        },
    )
