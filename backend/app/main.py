import logging
import os
import subprocess
from datetime import datetime

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.exc import IntegrityError, OperationalError

from app.database import engine, init_db
from app.db_schema_patch import ensure_match_columns, ensure_player_columns, ensure_round_columns, ensure_tournament_columns
from app.routes import entries, matches, tournaments
from app.services.errors import BracketError

logging.basicConfig(
    level=os.getenv("LOG_LEVEL", "INFO").upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

app = FastAPI(title="Bracket Engine API")


# Get build info
def get_build_info():
    """Get git commit hash or build timestamp"""
    try:
        result = subprocess.run(
            ["git", "rev-parse", "--short", "HEAD"],
            cwd=os.path.dirname(os.path.dirname(__file__)),
            capture_output=True,
            text=True,
            timeout=2,
        )
        if result.returncode == 0:
            return result.stdout.strip()
    except (OSError, subprocess.SubprocessError):
        pass

    # Fallback to build timestamp
    return datetime.now().strftime("%Y%m%d-%H%M%S")


BUILD_HASH = get_build_info()

_cors_origins = [
    "http://localhost:3000",
    "http://127.0.0.1:3000",
]
_extra = os.getenv("CORS_ORIGINS", "")
if _extra:
    _cors_origins.extend(o.strip() for o in _extra.split(",") if o.strip())

app.add_middleware(
    CORSMiddleware,
    allow_origins=_cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include routers
app.include_router(tournaments.router, prefix="/api", tags=["tournaments"])
# Bracket progression (results, scores, undo)
app.include_router(matches.router, prefix="/api", tags=["matches"])
# Late entry and rebuy
app.include_router(entries.router, prefix="/api", tags=["entries"])


@app.exception_handler(BracketError)
async def bracket_error_handler(request: Request, exc: BracketError):
    """Domain errors that escape a route keep their own status code."""
    if exc.status_code == 409:
        logger.warning("Conflict on %s: %s", request.url.path, exc.message)
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.message})


@app.exception_handler(IntegrityError)
async def integrity_error_handler(request: Request, exc: IntegrityError):
    """Unique constraints on round/position back up the advancement guards under races."""
    logger.warning("Integrity conflict on %s: %s", request.url.path, exc.orig)
    return JSONResponse(status_code=409, content={"detail": "Concurrent update conflict; retry the operation"})


@app.exception_handler(OperationalError)
async def operational_error_handler(request: Request, exc: OperationalError):
    """Lock or statement timeouts. Operations re-validate from scratch, so a retry is safe."""
    logger.error("Transient database failure on %s: %s", request.url.path, exc.orig)
    return JSONResponse(status_code=503, content={"detail": "Database busy; retry the operation"})


@app.on_event("startup")
def on_startup():
    init_db()  # Use centralized init_db() which imports models and creates tables
    ensure_tournament_columns(engine)
    ensure_round_columns(engine)
    ensure_match_columns(engine)
    ensure_player_columns(engine)
    logger.info("Bracket Engine API started (build %s)", BUILD_HASH)


@app.get("/api/health")
def health_check():
    """Diagnostic endpoint to verify which code is running"""
    return {"app_name": "Bracket Engine API", "build_hash": BUILD_HASH, "status": "healthy"}
