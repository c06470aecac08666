from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse
from bakery.infra.database import ping
from bakery.utils.rate_limit import rate_limit_health_info

router = APIRouter(prefix="/health", tags=["Health"])

@router.get("")
def health_root(request: Request):
    return {"ok": True, "rate_limit": rate_limit_health_info(request)}

@router.get("/database")
def health_database():
    info = ping()
    return JSONResponse(info, status_code=200 if info["connect_ok"] else 503)
