import os
import importlib
import logging

from fastapi import FastAPI, APIRouter, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException
from alembic.config import Config
from alembic import command

# APScheduler imports
from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.interval import IntervalTrigger

from core.config import settings
from core.database import SessionLocal
from core.exceptions import GarageError
import core.sequences  # noqa: F401  registers the sequence_counters table

logging.basicConfig(level=settings.LOG_LEVEL)
logger = logging.getLogger("garage")

# The directory where all application folders are located
APPS_DIRECTORY = "apps"
API_PREFIX = "/api/v1"


# --- Database Migration Function ---
def run_migrations():
    """Programmatically runs Alembic migrations."""
    logger.info("Running database migrations...")
    alembic_cfg = Config(os.path.join(os.path.dirname(os.path.abspath(__file__)), "alembic.ini"))
    command.upgrade(alembic_cfg, "head")
    logger.info("Migrations complete.")


# Initialize the main FastAPI application
app = FastAPI(
    title="Garage Workshop API",
    description="Garage onboarding, job cards, inventory and invoicing.",
    version="1.0.0",
)

# --- CORS Middleware ---
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# --- Error rendering ---
@app.exception_handler(GarageError)
async def garage_error_handler(request: Request, exc: GarageError):
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict(), headers=exc.headers)


@app.exception_handler(StarletteHTTPException)
async def http_error_handler(request: Request, exc: StarletteHTTPException):
    kind = "Unauthorized" if exc.status_code == status.HTTP_401_UNAUTHORIZED else "Error"
    return JSONResponse(
        status_code=exc.status_code,
        content={"kind": kind, "message": str(exc.detail)},
        headers=getattr(exc, "headers", None),
    )


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    errors = exc.errors()
    first = errors[0] if errors else {"loc": (), "msg": "Invalid request"}
    # ("body", "parts_used", 1, "quantity") -> "parts_used.1.quantity"
    location = [str(part) for part in first.get("loc", ()) if part not in ("body", "query", "path")]
    field = ".".join(location) or None
    message = f"Invalid {field}: {first.get('msg')}" if field else str(first.get("msg"))
    content = {"kind": "ValidationError", "message": message}
    if field:
        content["detail"] = {"field": field}
    return JSONResponse(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, content=content)


@app.get("/", summary="Health check")
def root():
    return {"name": app.title, "version": app.version, "status": "ok"}


# --- Dynamic App Discovery and Router Inclusion ---
apps_path = os.path.join(os.path.dirname(os.path.abspath(__file__)), APPS_DIRECTORY)

for item_name in sorted(os.listdir(apps_path)):
    app_dir = os.path.join(apps_path, item_name)
    if not os.path.isdir(app_dir) or item_name.startswith(("_", ".")):
        continue

    # Import the models from each app to ensure Alembic can detect them
    importlib.import_module(f"{APPS_DIRECTORY}.{item_name}.models")

    module_name = f"{APPS_DIRECTORY}.{item_name}.router"
    router_module = importlib.import_module(module_name)
    router_instance = getattr(router_module, "router", None)

    if router_instance and isinstance(router_instance, APIRouter):
        app.include_router(
            router_instance,
            prefix=f"{API_PREFIX}/{item_name}",
            tags=[item_name.replace("_", " ").capitalize()],
        )
        logger.debug(f"Loaded router from '{item_name}'")
    else:
        logger.warning(f"Could not find a valid APIRouter named 'router' in '{module_name}'")


# --- Background jobs ---
def cleanup_registrations_job():
    """Delete garage registrations that were never verified."""
    from apps.garages.services import GarageService

    db = SessionLocal()
    try:
        GarageService(db).cleanup_expired_registrations()
    finally:
        db.close()


# --global scheduler variable
scheduler = None


# --- Startup Event Handler ---
@app.on_event("startup")
def startup_event():
    """Run database migrations and start scheduler on application startup."""
    global scheduler
    logger.info("Starting Garage Workshop API...")
    run_migrations()

    scheduler = BackgroundScheduler()
    scheduler.add_job(
        cleanup_registrations_job,
        IntervalTrigger(minutes=settings.CLEANUP_INTERVAL_MINUTES),
        id="cleanup_expired_registrations",
        replace_existing=True,
    )
    scheduler.start()
    logger.info("Application is ready to serve requests.")


# --- Shutdown Event Handler ---
@app.on_event("shutdown")
def shutdown_event():
    """Shutdown the scheduler when the application stops."""
    global scheduler
    if scheduler:
        scheduler.shutdown()
        logger.info("Scheduler shut down gracefully.")
