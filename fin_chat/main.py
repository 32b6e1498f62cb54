# =============================================================================
# FastAPI Application - Entry Point
# =============================================================================
#
# Run with:
#   uvicorn fin_chat.main:app --reload
#
# STARTUP:  create missing tables (when create_tables_on_startup is set)
# SHUTDOWN: close the shared FMP HTTP client
#
# DESIGN DECISION: Table creation failures don't stop the app.
# The chatbot endpoint works without a database; only chat history needs
# it. A missing database is logged and the history features fail per
# request instead.
# =============================================================================

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from fin_chat.api.chatbot import router as chatbot_router
from fin_chat.api.chats import router as chats_router
from fin_chat.api.health import router as health_router
from fin_chat.config import settings
from fin_chat.db.engine import async_engine, create_tables
from fin_chat.services.fmp import close_fmp_client

logging.basicConfig(
    level=settings.log_level.upper(),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    if settings.create_tables_on_startup:
        try:
            await create_tables()
            logger.info("Database tables ready")
        except Exception as e:
            logger.error("Could not create database tables: %s", e)

    logger.info("%s v%s started", settings.app_name, settings.app_version)
    yield

    await close_fmp_client()
    await async_engine.dispose()


app = FastAPI(
    title=settings.app_name,
    description=(
        "Financial chatbot: earnings call summaries and financial metrics "
        "for public companies, optionally in the voice of Gordon Gekko."
    ),
    version=settings.app_version,
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_allow_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(health_router)
app.include_router(chatbot_router)
app.include_router(chats_router)
