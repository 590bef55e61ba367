from datetime import datetime, timezone
from contextlib import asynccontextmanager

from fastapi import FastAPI, HTTPException, Request, Path, status, APIRouter
from fastapi.responses import JSONResponse

from slowapi import Limiter, _rate_limit_exceeded_handler, errors
from slowapi.util import get_remote_address

# Import core modules
import config
import db_manager
from db_manager import (
    init_db, create_record as db_create_record,
    get_record_by_public_id as db_get_record, get_record_by_source as db_get_record_by_source,
)
from draper import DraperError, draperize, undraperize
from models import (
    DraperizePayload, DraperizeResponse, UndraperizePayload, UndraperizeResponse,
    RecordCreatePayload, RecordResponse,
)
from core_logic import (
    logger, http_error_for, ValidationException, ResourceNotFoundException, ConflictException,
)

# --- GLOBAL INSTANCES ---
limiter = Limiter(key_func=get_remote_address)

# --- LIFESPAN AND APP SETUP ---

@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager"""
    try:
        config.config.validate()
        init_db()
        logger.info("Application started successfully")
        yield
    finally:
        logger.info("Application shutdown complete")

# Main app instance
app = FastAPI(
    title="Don Draper ID obfuscation",
    lifespan=lifespan
)

app.state.limiter = limiter
app.add_exception_handler(errors.RateLimitExceeded, _rate_limit_exceeded_handler)


# --- ROUTERS DEFINITION (API) ---

api_router = APIRouter(prefix="/api/v1", tags=["API"])

@api_router.post("/draperize", response_model=DraperizeResponse)
@limiter.limit(config.RATE_LIMIT_CODEC)
async def api_draperize(request: Request, payload: DraperizePayload):
    """Encode a non-negative integer"""
    try:
        encoded = draperize(
            payload.value, payload.spin, payload.length,
            strict=payload.strict, drawn=payload.drawn,
        )
    except DraperError as e:
        logger.warning(f"draperize rejected {payload.value}: {e}")
        raise http_error_for(e)
    return DraperizeResponse(encoded=encoded, spin=payload.spin, length=payload.length)

@api_router.post("/undraperize", response_model=UndraperizeResponse)
@limiter.limit(config.RATE_LIMIT_CODEC)
async def api_undraperize(request: Request, payload: UndraperizePayload):
    """Decode a string produced by /draperize"""
    try:
        decoded = undraperize(payload.encoded, payload.spin, payload.length, drawn=payload.drawn)
    except DraperError as e:
        logger.warning(f"undraperize rejected {payload.encoded!r}: {e}")
        raise http_error_for(e)
    return UndraperizeResponse(decoded=decoded, value=int(decoded or "0"))

@api_router.post("/records", response_model=RecordResponse, status_code=status.HTTP_201_CREATED)
@limiter.limit(config.RATE_LIMIT_CREATE)
async def api_create_record(request: Request, payload: RecordCreatePayload):
    """Create a record with an obfuscated public id"""
    try:
        record = await db_create_record(label=payload.label, source_value=payload.source_value)
    except DraperError as e:
        logger.error(f"Record creation failed (cipher): {e}")
        raise http_error_for(e)
    except ValueError as e:
        if "already in use" in str(e):
            logger.warning(f"Record conflict: {e}")
            raise ConflictException(str(e))
        logger.error(f"Record creation validation failed (ValueError): {e}")
        raise ValidationException(str(e))
    return RecordResponse(**record)

@api_router.get("/records/{public_id}", response_model=RecordResponse)
async def api_get_record(public_id: str):
    """Look up a record by its public id"""
    record = await db_get_record(public_id)
    if not record:
        raise ResourceNotFoundException(f"Record '{public_id}' not found")
    return RecordResponse(**record)

@api_router.get("/records/by-source/{source_value}", response_model=RecordResponse)
async def api_get_record_by_source(source_value: int = Path(..., ge=0)):
    """Look up a record by its pre-obfuscation value"""
    record = await db_get_record_by_source(source_value)
    if not record:
        raise ResourceNotFoundException(f"No record for source value {source_value}")
    return RecordResponse(**record)

# --- ROUTERS DEFINITION (SERVICE) ---

web_router = APIRouter()

@web_router.get("/health")
async def health_check():
    """Health check endpoint"""
    try:
        with db_manager.get_db_connection() as conn:
            cursor = conn.cursor()
            cursor.execute("SELECT draperize(1, ?, ?)", (config.SPIN, config.LENGTH))
            cursor.fetchone()
        return {"status": "healthy", "database": "connected", "timestamp": datetime.now(timezone.utc).isoformat()}
    except Exception as e:
        logger.error(f"Health check failed: {e}")
        return JSONResponse(status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            content={"status": "unhealthy", "database": "error", "error": str(e)})

app.include_router(api_router)
app.include_router(web_router)

# --- GLOBAL ERROR HANDLER ---

@app.exception_handler(HTTPException)
async def http_exception_handler(request: Request, exc: HTTPException):
    return JSONResponse(status_code=exc.status_code, content={"error": exc.detail})


# ============================================================================
# MAIN ENTRY POINT
# ============================================================================

if __name__ == "__main__":
    import uvicorn
    uvicorn.run("app:app", host="0.0.0.0", port=8000, reload=True, log_level="info")
