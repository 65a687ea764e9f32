import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, HTTPException, Depends
from fastapi.middleware.cors import CORSMiddleware

from config.settings import app_settings
from src.logging_config import setup_logging

# Setup logging first
setup_logging(app_settings.log_level)

from services.harmonic_engine.loader import CatalogValidationError, load_catalog_from_file
from src.assessment.errors import PersistenceError
from src.db.cache import cache_set, cache_get
from src.db.database import engine, SessionLocal
from src.db.models import Base
from src.db.repository import AssessmentRepository
from src.db.session import get_repository
from src.messaging.kafka_client import flush_producer
from src.routers import assessment as assessment_router

logger = logging.getLogger(__name__)


def seed_harmonic_catalog(catalog_path: str) -> None:
    """Loads the catalog file and inserts any states and questions the database is missing."""
    catalog = load_catalog_from_file(catalog_path)
    db = SessionLocal()
    try:
        AssessmentRepository(db).seed_catalog(catalog)
    finally:
        db.close()


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("Emotional Dynamics Indicator API starting up...")

    Base.metadata.create_all(bind=engine)

    if app_settings.seed_catalog_on_startup:
        try:
            seed_harmonic_catalog(app_settings.catalog_path)
        except (CatalogValidationError, PersistenceError) as e:
            # The API still serves whatever catalog is already stored
            logger.error(f"Failed to seed harmonic catalog on startup: {e}", exc_info=True)

    yield

    logger.info("Emotional Dynamics Indicator API shutting down...")
    flush_producer()


app = FastAPI(title="Emotional Dynamics Indicator API", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(assessment_router.router, prefix="/api/v1", tags=["assessments"])


@app.get("/", tags=["Health Check"])
async def read_root():
    """
    Root endpoint for basic health check.
    """
    return {"status": "ok", "message": "Emotional Dynamics Indicator is running."}


@app.get("/health/db", tags=["Health Check"])
def health_check_db(repository: AssessmentRepository = Depends(get_repository)):
    """
    Performs a database connection health check.
    """
    try:
        result = repository.ping()
        logger.info(f"DB health check successful (SELECT 1 returned: {result})")
        return {"status": "ok", "db_check": result}
    except PersistenceError as e:
        logger.error(f"DB health check failed: {e}")
        raise HTTPException(status_code=503, detail=f"Database connection error: {e}")


@app.get("/health/cache", tags=["Health Check"])
def health_check_cache():
    """
    Performs a cache connection health check by setting and getting a key.
    """
    key = "ping"
    value = "pong"
    if not cache_set(key, value, expire_seconds=60):
        logger.error("Cache health check failed: Could not set key 'ping'")
        raise HTTPException(status_code=503, detail="Cache error: Failed to set key")

    retrieved_value = cache_get(key)
    if retrieved_value != value:
        logger.error(f"Cache health check failed: Retrieved value '{retrieved_value}' does not match expected '{value}'")
        raise HTTPException(status_code=503, detail="Cache error: Value mismatch")
    return {"status": "ok", "cache_check": "set_get_successful", "value": retrieved_value}


if __name__ == "__main__":
    import uvicorn
    # Better to run with `uvicorn main:app --reload` from the project root directory
    uvicorn.run("main:app", host="0.0.0.0", port=8000, reload=True)
