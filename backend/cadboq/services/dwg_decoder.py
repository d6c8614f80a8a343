"""
DWG decoders.

DWG is a closed binary format; nothing in-process reads it. A decoder turns the
uploaded bytes into CADBOQData and is chosen by config.DWG_DECODER:

  synthetic  simulated decode latency, then the keyword-driven stand-in drawing
  oda        ODA File Converter (external executable) DWG → DXF, then the
             regular DXF scan

Decoders raise DrawingDecodeError on failure; the parser degrades that to
synthetic data.
"""
import asyncio
import os
import shutil
import logging
import tempfile
import subprocess
from typing import Optional, Protocol

from cadboq import config
from cadboq.errors import DrawingDecodeError
from cadboq.models.cad_schema import CADBOQData
from cadboq.services.dxf_reader import extract_cad_data
from cadboq.services.synthetic_drawing import drawing_title, generate_synthetic_drawing

logger = logging.getLogger("cadboq-dwg-decoder")


class DWGDecoder(Protocol):
    async def decode(self, data: bytes, filename: str) -> CADBOQData:
        ...


class SyntheticDWGDecoder:
    """Waits out a simulated decode, then returns the keyword-driven drawing."""

    def __init__(self, delay_s: Optional[float] = None):
        self.delay_s = config.DWG_DECODE_DELAY_S if delay_s is None else delay_s

    async def decode(self, data: bytes, filename: str) -> CADBOQData:
        if self.delay_s > 0:
            await asyncio.sleep(self.delay_s)
        logger.info(f"DWG '{filename}' decoded synthetically ({len(data)} bytes ignored)")
        return generate_synthetic_drawing(filename)


# ── ODA File Converter ─────────────────────────────────────────────────────────

def find_oda_converter(configured_path: str = "") -> Optional[str]:
    """Attempt to locate ODA File Converter on disk."""
    if configured_path and os.path.isfile(configured_path):
        return configured_path

    candidates = [
        r"C:\Program Files\ODA\ODAFileConverter\ODAFileConverter.exe",
        "/usr/bin/ODAFileConverter",
        "/usr/local/bin/ODAFileConverter",
    ]
    for c in candidates:
        if os.path.isfile(c):
            return c

    return shutil.which("ODAFileConverter")


def convert_dwg_to_dxf(input_path: str, output_dir: str, oda_path: str = "",
                       timeout_s: int = config.ODA_TIMEOUT_S) -> str:
    """
    Convert a .dwg file to .dxf using ODA File Converter.
    Returns path to the generated .dxf file.
    Raises DrawingDecodeError if ODA is missing, times out or writes nothing.
    """
    oda = find_oda_converter(oda_path)
    if not oda:
        raise DrawingDecodeError(
            "ODA File Converter not found. Set the ODA_CONVERTER_PATH environment variable."
        )

    input_dir = os.path.dirname(os.path.abspath(input_path))
    basename = os.path.basename(input_path)

    try:
        result = subprocess.run(
            [oda, input_dir, output_dir, "ACAD2018", "DXF", "0", "1", basename],
            capture_output=True,
            timeout=timeout_s,
        )
    except subprocess.TimeoutExpired:
        raise DrawingDecodeError(f"ODA File Converter timed out ({timeout_s}s limit)")

    for f in os.listdir(output_dir):
        if f.lower().endswith(".dxf"):
            return os.path.join(output_dir, f)
    raise DrawingDecodeError(
        f"ODA conversion produced no .dxf output. "
        f"Exit code: {result.returncode}, stderr: {result.stderr.decode(errors='replace')[:500]}"
    )


class ODAConverterDWGDecoder:
    """Real DWG path: external conversion to DXF, then the DXF group-code scan."""

    def __init__(self, oda_path: str = "", timeout_s: int = config.ODA_TIMEOUT_S):
        self.oda_path = oda_path or config.ODA_CONVERTER_PATH
        self.timeout_s = timeout_s

    def _decode_sync(self, data: bytes, filename: str) -> CADBOQData:
        with tempfile.TemporaryDirectory(prefix="cadboq_dwg_") as work_dir:
            in_dir = os.path.join(work_dir, "in")
            out_dir = os.path.join(work_dir, "out")
            os.makedirs(in_dir)
            os.makedirs(out_dir)
            dwg_path = os.path.join(in_dir, "drawing.dwg")
            with open(dwg_path, "wb") as fh:
                fh.write(data)

            dxf_path = convert_dwg_to_dxf(dwg_path, out_dir, self.oda_path, self.timeout_s)
            logger.info(f"DWG '{filename}' converted to DXF: {dxf_path}")
            with open(dxf_path, "r", encoding="utf-8", errors="replace") as fh:
                content = fh.read()

        try:
            return extract_cad_data(content, drawing_title(filename))
        except Exception as e:
            raise DrawingDecodeError(f"Converted DXF could not be scanned: {e}") from e

    async def decode(self, data: bytes, filename: str) -> CADBOQData:
        return await asyncio.to_thread(self._decode_sync, data, filename)


def build_dwg_decoder(kind: Optional[str] = None) -> DWGDecoder:
    kind = (kind or config.DWG_DECODER).lower()
    if kind == "oda":
        return ODAConverterDWGDecoder()
    if kind != "synthetic":
        logger.warning(f"Unknown DWG_DECODER '{kind}', using synthetic decoder")
    return SyntheticDWGDecoder()
