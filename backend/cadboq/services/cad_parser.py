"""
CAD Parser Service: turns an uploaded DWG/DXF into CADBOQData.

Dispatch is by file extension only:
  .dxf  text decode + group-code scan (dxf_reader), off the event loop
  .dwg  pluggable DWGDecoder (synthetic by default, ODA conversion opt-in)
  else  UnsupportedFormatError, raised before the payload is read

Never fails on content: any decode/scan error degrades to the keyword-driven
synthetic drawing for the same file name. Degradation is logged and reported on
ParseOutcome; parse_cad_file() hides it and returns the data alone.
"""
import asyncio
import os
import logging
from dataclasses import dataclass
from typing import Optional, Protocol

from cadboq import config
from cadboq.errors import DrawingDecodeError, UnsupportedFormatError
from cadboq.models.cad_schema import CADBOQData
from cadboq.services.dwg_decoder import DWGDecoder, SyntheticDWGDecoder, build_dwg_decoder
from cadboq.services.dxf_reader import extract_cad_data
from cadboq.services.synthetic_drawing import drawing_title, generate_synthetic_drawing

logger = logging.getLogger("cadboq-parser")


class CADFile(Protocol):
    """Anything with a file name and an async read(); FastAPI's UploadFile fits."""
    filename: Optional[str]

    async def read(self) -> bytes:
        ...


@dataclass
class CADUpload:
    """In-memory CADFile."""
    filename: str
    data: bytes

    async def read(self) -> bytes:
        return self.data


@dataclass(frozen=True)
class ParseOutcome:
    cad_data: CADBOQData
    degraded: bool = False
    reason: Optional[str] = None


def file_extension(filename: Optional[str]) -> str:
    return os.path.splitext(filename or "")[1].lstrip(".").lower()


def check_supported(filename: Optional[str]) -> str:
    """Return the lower-cased extension, or raise UnsupportedFormatError."""
    ext = file_extension(filename)
    if ext not in config.SUPPORTED_EXTENSIONS:
        raise UnsupportedFormatError(ext)
    return ext


def synthetic_outcome(filename: str, reason: str) -> ParseOutcome:
    """Fallback used for every degraded parse (content errors and timeouts)."""
    return ParseOutcome(cad_data=generate_synthetic_drawing(filename), degraded=True, reason=reason)


class CADParserService:
    """
    Stateless apart from its DWG decoder; share one instance via get_cad_parser().
    """

    def __init__(self, dwg_decoder: Optional[DWGDecoder] = None):
        self.dwg_decoder = dwg_decoder or build_dwg_decoder()

    async def parse_cad_file(self, file: CADFile) -> CADBOQData:
        """Parse a DWG/DXF file. Raises only UnsupportedFormatError."""
        outcome = await self.parse_with_outcome(file)
        return outcome.cad_data

    async def parse_with_outcome(self, file: CADFile) -> ParseOutcome:
        filename = file.filename or ""
        try:
            return await self.try_parse(file)
        except DrawingDecodeError as e:
            logger.warning(f"Parse of '{filename}' degraded to synthetic data: {e}")
            return synthetic_outcome(filename, "parse_error")

    async def try_parse(self, file: CADFile) -> ParseOutcome:
        """
        Strict parse: raises UnsupportedFormatError for bad extensions and
        DrawingDecodeError for anything that goes wrong with the content.
        """
        filename = file.filename or ""
        ext = check_supported(filename)
        if ext == "dwg":
            return await self._parse_dwg(file, filename)
        return await self._parse_dxf(file, filename)

    async def _parse_dwg(self, file: CADFile, filename: str) -> ParseOutcome:
        logger.info(f"Parsing DWG file: {filename}")
        try:
            data = await file.read()
            cad_data = await self.dwg_decoder.decode(data, filename)
        except DrawingDecodeError:
            raise
        except Exception as e:
            raise DrawingDecodeError(f"DWG decode failed: {e}") from e

        if isinstance(self.dwg_decoder, SyntheticDWGDecoder):
            return ParseOutcome(cad_data=cad_data, degraded=True, reason="synthetic_dwg")
        return ParseOutcome(cad_data=cad_data)

    async def _parse_dxf(self, file: CADFile, filename: str) -> ParseOutcome:
        logger.info(f"Parsing DXF file: {filename}")
        try:
            raw = await file.read()
            text = raw.decode("utf-8", errors="replace")
            cad_data = await asyncio.to_thread(extract_cad_data, text, drawing_title(filename))
        except Exception as e:
            raise DrawingDecodeError(f"DXF scan failed: {e}") from e

        logger.info(
            f"DXF '{filename}' parsed: {len(cad_data.materials)} materials, "
            f"{len(cad_data.dimensions)} dimensions, {len(cad_data.drawing_info.layers)} layers"
        )
        return ParseOutcome(cad_data=cad_data)


_parser: Optional[CADParserService] = None


def get_cad_parser() -> CADParserService:
    """Shared parser instance."""
    global _parser
    if _parser is None:
        _parser = CADParserService()
    return _parser
