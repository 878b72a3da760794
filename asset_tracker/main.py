import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)
logger = logging.getLogger(__name__)
from fastapi.middleware.cors import CORSMiddleware

from asset_tracker.core.config import settings
from asset_tracker.core.db import engine, Base
from asset_tracker.core.errors import AssetTrackerError
from asset_tracker.routers import auth, users, bases, equipment, assets, purchases
from asset_tracker.routers.transfers import router as transfers_router
from asset_tracker.routers.assignments import router as assignments_router
from asset_tracker.routers.expenditures import router as expenditures_router
from asset_tracker.routers.dashboard import router as dashboard_router
from asset_tracker.routers.audit_logs import router as audit_logs_router


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan: startup and shutdown events"""
    # Startup
    Base.metadata.create_all(bind=engine)
    logger.info("[Startup] Database tables ready")

    yield

    # Shutdown
    engine.dispose()


app = FastAPI(
    title="Military Asset Tracker API",
    version="0.1",
    root_path=settings.ROOT_PATH,
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],  # In production, restrict to specific origins
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(AssetTrackerError)
async def asset_tracker_error_handler(request: Request, exc: AssetTrackerError):
    logger.info(f"[API] {request.method} {request.url.path} -> {exc.kind}: {exc.message}")
    return JSONResponse(status_code=exc.status_code, content=jsonable_encoder(exc.to_dict()))


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception):
    logger.exception(f"[API] {request.method} {request.url.path} failed")
    return JSONResponse(status_code=500, content={"detail": "Internal server error", "kind": "InternalError"})


@app.get("/health", tags=["system"])
def health():
    return {"ok": True}


@app.get("/", tags=["system"])
def root():
    return {"service": "asset-tracker-api"}


app.include_router(auth.router)
app.include_router(users.router)
app.include_router(bases.router)
app.include_router(equipment.router)
app.include_router(assets.router)
app.include_router(purchases.router)
app.include_router(transfers_router)
app.include_router(assignments_router)
app.include_router(expenditures_router)
app.include_router(dashboard_router)
app.include_router(audit_logs_router)
