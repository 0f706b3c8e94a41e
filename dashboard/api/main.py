"""
Financeiro Insights — API Server
==================================

Financial analytics API over the CRM's closures, service orders and quotes
stored in Supabase.

Route groups:
  /api/health                   - Health check
  /api/financeiro/report        - KPIs, deltas, trend, rankings, insights
  /api/financeiro/conversion    - Quote conversion funnel
  /api/financeiro/ai-insights   - AI insights over the conversion funnel
  /api/financeiro/export.csv    - Filtered closures as CSV
"""

import logging
import os
from contextlib import asynccontextmanager
from datetime import datetime, timezone

from dotenv import load_dotenv
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

load_dotenv()

logger = logging.getLogger(__name__)

SERVICE_NAME = "Financeiro Insights"
VERSION = "1.0.0"


# ─── Lifespan ─────────────────────────────────────────────────

@asynccontextmanager
async def lifespan(app):
    """Application startup and shutdown."""
    logger.info("Starting %s...", SERVICE_NAME)

    # Configuration is validated once up front so bad env values fail fast
    from scripts.financeiro.config import load_config
    config = load_config()
    logger.info(
        "Config: utc_offset=%sh cache_ttl=%sh cooldown=%ss min_quotes=%d",
        config.utc_offset_hours, config.ai_cache_ttl_hours,
        config.ai_cooldown_seconds, config.ai_min_quotes,
    )

    # Supabase connection check
    try:
        from scripts.lib.supabase_client import get_client
        get_client()
        logger.info("Supabase connected")
    except Exception as e:
        logger.warning("Supabase not available: %s", e)

    logger.info("%s ready", SERVICE_NAME)
    yield
    logger.info("Shutting down %s...", SERVICE_NAME)


# ─── App Setup ────────────────────────────────────────────────

cors_origins = os.getenv(
    "CORS_ORIGINS", "http://localhost:3000,http://localhost:8001"
).split(",")

app = FastAPI(
    title=SERVICE_NAME,
    version=VERSION,
    description="Financial analytics & insights for the home-improvement CRM",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# ─── Include Routers ──────────────────────────────────────────

from dashboard.api.routers.financeiro import router as financeiro_router

app.include_router(financeiro_router)


# ─── Health ───────────────────────────────────────────────────

@app.get("/api/health", tags=["system"])
async def health():
    """Health check with service status."""
    supabase_ok = False
    try:
        from scripts.lib.supabase_client import get_client
        get_client()
        supabase_ok = True
    except Exception as e:
        logger.debug("Supabase unavailable for health check: %s", e)

    return {
        "status": "healthy",
        "service": SERVICE_NAME,
        "version": VERSION,
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "integrations": {
            "supabase": supabase_ok,
        },
    }
