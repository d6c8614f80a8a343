"""
CAD-to-BOQ API
FastAPI backend that parses DWG/DXF drawings into materials and prices them
into a Bill of Quantities for the ERP front-end.
"""
import time
import logging

from dotenv import load_dotenv

# .env must be loaded before config reads the environment
load_dotenv()

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from cadboq import config
from cadboq.api.boq_routes import router as boq_router
from cadboq.services.logging_config import setup_logging
from cadboq.services.middleware import RequestTimingMiddleware
from cadboq.services.perf_monitor import tracker as perf_tracker

setup_logging(level=config.LOG_LEVEL, json_output=config.LOG_JSON)
logger = logging.getLogger("cadboq-api")

_PROCESS_START = time.monotonic()
APP_VERSION = "1.0.0"

if config.DWG_DECODER == "oda" and not config.ODA_CONVERTER_PATH:
    logger.warning("DWG_DECODER=oda but ODA_CONVERTER_PATH not set, relying on auto-detect")

app = FastAPI(
    title="CAD to BOQ API",
    version=APP_VERSION,
    description="Bill of Quantities generation from DWG/DXF drawings",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=config.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["GET", "POST", "OPTIONS"],
    allow_headers=["Authorization", "Content-Type", "Accept", "X-Requested-With"],
)
# Request timing + X-Request-ID must be outermost so it wraps all other middleware
app.add_middleware(RequestTimingMiddleware)

app.include_router(boq_router)


@app.get("/health")
async def health_check():
    return {
        "status": "active",
        "version": APP_VERSION,
        "dwg_decoder": config.DWG_DECODER,
        "parse_timeout_s": config.PARSE_TIMEOUT_S,
    }


@app.get("/metrics")
async def metrics():
    """Conversion counters and stage timings from the in-process tracker."""
    snapshot = perf_tracker.get_metrics()
    return {
        "uptime_seconds": round(time.monotonic() - _PROCESS_START, 1),
        **snapshot,
    }
