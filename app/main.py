import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy import text
from app.core.config import settings
from app.core.database import SessionLocal
from app.core.errors import ArchiveError, BlockedError
from app.core.init_db import init_db
from app.models import audit_log, document, opd, user  # noqa: F401  register mappers
from app.api.routes.auth import router as auth_router
from app.api.routes.opds import router as opds_router
from app.api.routes.users import router as users_router
from app.api.routes.documents import router as documents_router
from app.api.routes.audit_logs import router as audit_logs_router

logging.basicConfig(
    level=logging.DEBUG if settings.ENV == "dev" else logging.INFO,
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    db = SessionLocal()
    try:
        init_db(db)
    finally:
        db.close()
    yield


# 1) Create the app FIRST
app = FastAPI(title="BKPSDM Digital Archive", lifespan=lifespan)

# 2) Add CORS Middleware BEFORE routes
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# 3) Domain errors -> JSON responses
@app.exception_handler(ArchiveError)
async def archive_error_handler(request: Request, exc: ArchiveError):
    content = {"detail": exc.message}
    if isinstance(exc, BlockedError) and exc.reason:
        content["reason"] = exc.reason
    logger.info("%s %s -> %s: %s", request.method, request.url.path, exc.status_code, exc.message)
    return JSONResponse(status_code=exc.status_code, content=content)


# 4) Include routers AFTER app is created
app.include_router(auth_router)
app.include_router(opds_router)
app.include_router(users_router)
app.include_router(documents_router)
app.include_router(audit_logs_router)

# 5) Health check endpoints
@app.get("/health")
def health():
    return {"ok": True, "service": "archive"}

@app.get("/db-health")
def db_health():
    db = SessionLocal()
    try:
        db.execute(text("select 1"))
        return {"ok": True, "db": "connected"}
    finally:
        db.close()
