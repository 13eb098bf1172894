import logging
import sys
from contextlib import asynccontextmanager

from fastapi import FastAPI
from slowapi import Limiter, _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded
from slowapi.util import get_remote_address

from berthboard.api.middleware import install_error_handlers, install_middleware
from berthboard.api.routes import router
from berthboard.api.state import build_store
from berthboard.config import settings
from berthboard.modules.auth_service import AuthService
from berthboard.modules.reference_data import get_reference_data

logging.basicConfig(level=settings.LOG_LEVEL)
logger = logging.getLogger(__name__)

VERSION = "0.1.0"


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Load reference data and open the vessel store."""
    try:
        reference = get_reference_data()
    except (FileNotFoundError, ValueError) as e:
        logger.critical("FATAL: could not load reference data (%s): %s", settings.REFERENCE_DATA_CONFIG, e)
        sys.exit(1)
    if not reference.berths:
        logger.warning("Reference data defines no berths; conflict checks will find nothing")

    app.state.reference = reference
    if getattr(app.state, "store", None) is None:
        app.state.store = build_store(reference)
        if app.state.store.load_error:
            logger.error("Vessel store started empty: %s", app.state.store.load_error)
    app.state.auth_service = AuthService(reference)
    yield


app = FastAPI(
    title="BerthBoard",
    description="Berth scheduling for port terminals: vessel calls, conflicts and utilization.",
    version=VERSION,
    lifespan=lifespan,
)

install_middleware(app)

limiter = Limiter(key_func=get_remote_address, default_limits=["120/minute"])
app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)

app.include_router(router, prefix="/api/v1")
install_error_handlers(app)


@app.get("/health")
def health() -> dict:
    return {"status": "ok", "version": VERSION}
