"""
Service configuration: single source of truth for runtime knobs and pricing
defaults.

Environment-driven values are read once at import time. Import from here
rather than hardcoding values in services or routes.
"""
from __future__ import annotations

import os

# ── Logging ────────────────────────────────────────────────────────────────────
LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO")
LOG_JSON: bool = os.getenv("LOG_FORMAT", "json").lower() != "text"

# ── Parsing ────────────────────────────────────────────────────────────────────

# The converter gives up waiting on a parse after this long and falls back to
# synthetic drawing data.
PARSE_TIMEOUT_S: float = float(os.getenv("CAD_PARSE_TIMEOUT_S", "30"))

# Latency of the stand-in DWG decoder
DWG_DECODE_DELAY_S: float = float(os.getenv("DWG_DECODE_DELAY_S", "1.0"))

# "synthetic" (default) or "oda" (ODA File Converter → DXF scan)
DWG_DECODER: str = os.getenv("DWG_DECODER", "synthetic").lower()
ODA_CONVERTER_PATH: str = os.getenv("ODA_CONVERTER_PATH", "")
ODA_TIMEOUT_S: int = int(os.getenv("ODA_TIMEOUT_S", "120"))

SUPPORTED_EXTENSIONS: tuple[str, ...] = ("dwg", "dxf")

# ── API ────────────────────────────────────────────────────────────────────────
MAX_UPLOAD_MB: float = float(os.getenv("MAX_UPLOAD_MB", "50"))
CORS_ORIGINS: list[str] = [
    o.strip()
    for o in os.getenv("CORS_ORIGINS", "http://localhost:3000").split(",")
    if o.strip()
]

# ── BOQ generation defaults ────────────────────────────────────────────────────
DEFAULT_LABOR_RATE: float = 50.0          # per hour
DEFAULT_EQUIPMENT_RATE: float = 25.0      # per hour
DEFAULT_OVERHEAD_PCT: float = 15.0
DEFAULT_PROFIT_MARGIN_PCT: float = 20.0
DEFAULT_CURRENCY: str = "USD"
