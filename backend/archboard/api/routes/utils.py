from fastapi import APIRouter, HTTPException

from archboard.api.deps import StorageDep

router = APIRouter(prefix="/utils", tags=["utils"])


@router.get("/health-check/")
def health_check(storage: StorageDep) -> dict[str, str]:
    if not storage.ping():
        raise HTTPException(status_code=503, detail="Storage unavailable")
    return {"status": "ok", "storage": storage.backend}
