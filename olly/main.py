"""
Olly Hotel Website Assistant: FastAPI Application Entry Point
"""
import logging
from contextlib import asynccontextmanager
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from olly.config import settings
from olly.agents.base_agent import GeminiClient
from olly.api.router import api_router
from olly.db.crud import SqlKnowledgeSource
from olly.db.database import init_db, make_engine, make_sessionmaker
from olly.knowledge.cache import KnowledgeCache
from olly.knowledge.retriever import KnowledgeRetriever
from olly.knowledge.sources import AirtableSource
from olly.pipeline.guards import RateLimiter
from olly.pipeline.orchestrator import HotelAssistant

logging.basicConfig(
    level=settings.LOG_LEVEL.upper(),
    format="%(asctime)s %(levelname)s %(name)s — %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup and shutdown lifecycle."""
    logger.info(f"Starting Olly (knowledge backend: {settings.KNOWLEDGE_BACKEND})...")
    engine = None
    if settings.KNOWLEDGE_BACKEND == "sql":
        engine = make_engine()
        await init_db(engine)
        source = SqlKnowledgeSource(make_sessionmaker(engine))
        logger.info("SQL knowledge mirror initialized.")
    else:
        source = AirtableSource()

    app.state.assistant = HotelAssistant(
        retriever=KnowledgeRetriever(source, KnowledgeCache()),
        llm=GeminiClient(),
        rate_limiter=RateLimiter(),
    )
    yield
    # Shutdown
    if isinstance(source, AirtableSource):
        await source.aclose()
    if engine is not None:
        await engine.dispose()
    logger.info("Shutdown complete.")


app = FastAPI(
    title="Olly Hotel Website Assistant",
    version="1.0.0",
    description=(
        "Answers hotel website visitor questions from verified hotel records. "
        "Deterministic answers first, grounded Gemini answers otherwise."
    ),
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS.split(","),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(api_router, prefix="/api/v1")


@app.get("/health", tags=["system"])
async def health_check():
    return {
        "status": "ok",
        "model": settings.GEMINI_MODEL,
        "knowledge_backend": settings.KNOWLEDGE_BACKEND,
        "default_hotel": settings.DEFAULT_HOTEL_SLUG,
    }
