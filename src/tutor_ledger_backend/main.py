'''
FastAPI application for the teacher accounting ledger.
'''
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from contextlib import asynccontextmanager

from .database.engine import create_db_engine_and_session_factory, create_all_tables, dispose_db_engine
from .common.logger import log
from .common.config import settings
from .common.exceptions import LedgerError, InvalidAmount, InvalidFee, NotFound, StoreError
from .api import accounting

@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Handles application startup and shutdown events.
    """
    # --- On App Startup ---
    log.info(f"Starting {settings.APP_NAME} v{settings.APP_VERSION}...")
    create_db_engine_and_session_factory()
    if settings.CREATE_TABLES_ON_STARTUP:
        await create_all_tables()
    
    yield # --- Application is now running ---

    # --- On App Shutdown ---
    log.info("Application lifespan shutdown...")
    await dispose_db_engine()


# ---- CREATING THE APP ----
app = FastAPI(
    title=settings.APP_NAME,
    description=settings.APP_DESCRIPTION,
    version=settings.APP_VERSION,
    lifespan=lifespan
)

# --- Add CORS Middleware ---
origins = [
    "http://localhost",
    "http://localhost:3000",
]

# Extend with environment-specific origins
origins.extend(settings.BACKEND_CORS_ORIGINS)

app.add_middleware(
    CORSMiddleware,
    allow_origins=origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],)
# --- End of CORS Middleware ---

# --- Ledger error rendering ---
LEDGER_ERROR_STATUS = {
    InvalidAmount: 400,
    InvalidFee: 400,
    NotFound: 404,
    StoreError: 500,
}

@app.exception_handler(LedgerError)
async def ledger_error_handler(request: Request, exc: LedgerError) -> JSONResponse:
    status_code = LEDGER_ERROR_STATUS.get(type(exc), 400)
    if status_code >= 500:
        log.error(f"{exc.code} on {request.method} {request.url.path}: {exc.message}")
    else:
        log.warning(f"{exc.code} on {request.method} {request.url.path}: {exc.message}")
    return JSONResponse(status_code=status_code, content=exc.to_result())

@app.get("/")
async def health_check():
    return {"status": "ok", "message": f"{settings.APP_NAME} is running"}

app.include_router(accounting.router)
