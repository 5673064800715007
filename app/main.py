# ============================================================================
# FastAPI Application Entry Point
# ============================================================================
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from contextlib import asynccontextmanager
from datetime import datetime, timezone
import logging

from app.config import get_settings
from app.core.exceptions import TutorException
from app.schemas.responses import HealthCheckResponse

# Configure logging
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

settings = get_settings()

@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan - startup and shutdown"""
    logger.info(f"🚀 Starting {settings.APP_NAME}...")

    # Register models on the metadata before create_all
    from app.models import User, Article, Assignment, ChatSession, Message, Grade  # noqa: F401
    from app.core.database import engine, Base

    try:
        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
        logger.info("✅ Database tables created/verified")
    except Exception as e:
        logger.error(f"❌ Database initialization failed: {e}")
        raise

    # Redis only backs cross-instance turn locks
    if settings.TURN_LOCK_BACKEND == "redis":
        try:
            from app.core.redis import redis_client
            await redis_client.ping()
            logger.info("✅ Redis connected")
        except Exception as e:
            logger.warning(f"⚠️ Redis connection failed, turns will fail to lock: {e}")

    from app.services.tutor import GeminiTurnGenerator, ArticleAnalyzer
    app.state.turn_generator = GeminiTurnGenerator(settings)
    app.state.article_analyzer = ArticleAnalyzer(settings)
    if settings.GEMINI_API_KEY:
        logger.info(f"✅ Gemini ready ({settings.GEMINI_MODEL})")
    else:
        logger.warning("⚠️ GEMINI_API_KEY not set, tutor replies will use the fallback message")

    logger.info("🎉 Application started successfully!")

    yield

    logger.info("👋 Shutting down...")
    await engine.dispose()

app = FastAPI(
    title=settings.APP_NAME,
    description="Socratic AI tutor that walks students through assigned articles",
    version="1.0.0",
    lifespan=lifespan,
    docs_url="/docs",
    redoc_url="/redoc",
    openapi_url="/openapi.json"
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

@app.exception_handler(TutorException)
async def tutor_exception_handler(request: Request, exc: TutorException):
    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": exc.detail, "error_code": exc.error_code}
    )

@app.get("/")
async def root():
    return {
        "app": settings.APP_NAME,
        "status": "running",
        "docs": "/docs",
        "health": "/health"
    }

@app.get("/health", response_model=HealthCheckResponse)
async def health_check():
    return HealthCheckResponse(
        status="healthy",
        app=settings.APP_NAME,
        timestamp=datetime.now(timezone.utc)
    )

from app.api.v1.router import api_router
app.include_router(api_router, prefix=settings.API_PREFIX)
