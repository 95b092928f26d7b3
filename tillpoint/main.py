import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from tillpoint.db.session import get_till, settings
from tillpoint.errors import (
    InfrastructureError,
    NotFoundError,
    StateError,
    TillError,
    ValidationError,
)
from tillpoint.routers.orders_router import router as orders_router
from tillpoint.routers.reports_router import router as reports_router
from tillpoint.routers.sessions_router import router as sessions_router
from tillpoint.routers.staff_router import router as staff_router

logger = logging.getLogger(__name__)

STATUS_BY_ERROR = (
    (ValidationError, 400),
    (NotFoundError, 404),
    (StateError, 409),
    (InfrastructureError, 503),
)


def configure_logging(level: str = settings.LOG_LEVEL) -> None:
    logging.basicConfig(
        level=level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def status_for(error: TillError) -> int:
    for error_type, status in STATUS_BY_ERROR:
        if isinstance(error, error_type):
            return status
    return 500


@asynccontextmanager
async def lifespan(app: FastAPI):
    configure_logging()
    get_till().create_all()
    logger.info("till store ready at %s", settings.DATABASE_URL)
    yield


app = FastAPI(title="TillPoint API v0", lifespan=lifespan)


@app.exception_handler(TillError)
async def till_error_handler(request: Request, exc: TillError):
    status = status_for(exc)
    if status >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc)
    return JSONResponse(status_code=status, content={"detail": str(exc), "code": exc.code})


@app.get("/")
def root():
    return {"ok": True, "service": "tillpoint", "module": "till"}


app.include_router(orders_router, prefix="/orders", tags=["orders"])
app.include_router(sessions_router, prefix="/sessions", tags=["sessions"])
app.include_router(reports_router, prefix="/reports", tags=["reports"])
app.include_router(staff_router, prefix="/staff", tags=["staff"])
