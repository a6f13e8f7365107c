import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from config import get_settings
from api.routes import sanitize, patterns, providers
from scrubber.pipeline import get_sanitizer

settings = get_settings()

logging.basicConfig(
    level=getattr(logging, settings.log_level),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("Starting Scrubber API")

    # Compile the catalog up front so a bad extension file fails at startup
    sanitizer = get_sanitizer()
    logger.info("Loaded %d detection patterns", len(sanitizer.scanner.catalog))

    if settings.ai_provider in ("openai", "anthropic", "groq") and not settings.api_key_for(
        settings.ai_provider
    ):
        logger.warning(
            "AI_PROVIDER is %s but no API key is configured; AI analysis will fail "
            "and fall back to pattern-only detection.",
            settings.ai_provider,
        )

    yield
    sanitizer.cache.clear()
    logger.info("Shutting down Scrubber API")


app = FastAPI(
    title="Scrubber",
    description="Secret redaction and prompt-injection filter for AI agents",
    version="0.1.0",
    lifespan=lifespan,
)

cors_origins = [o.strip() for o in settings.cors_origins.split(",") if o.strip()]
app.add_middleware(
    CORSMiddleware,
    allow_origins=cors_origins,
    allow_credentials=True,
    allow_methods=["GET", "POST", "OPTIONS"],
    allow_headers=["Content-Type", "X-Requested-With"],
)

app.include_router(sanitize.router, prefix="/api/sanitize", tags=["sanitize"])
app.include_router(patterns.router, prefix="/api/patterns", tags=["patterns"])
app.include_router(providers.router, prefix="/api/providers", tags=["providers"])


@app.get("/api/health")
async def health():
    return {"status": "ok"}
