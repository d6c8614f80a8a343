"""
CAD-to-BOQ API routes.

Upload a DWG/DXF, get the extracted drawing data and/or a priced BOQ back,
re-price an existing parse with new options, and export a BOQ as CSV or Excel.
"""
import logging
from typing import Optional
from urllib.parse import quote

from fastapi import APIRouter, Depends, File, Form, HTTPException, Query, UploadFile
from fastapi.responses import Response
from pydantic import ValidationError

from cadboq import config
from cadboq.errors import CADBOQError, UnsupportedFormatError
from cadboq.models.boq_schema import (
    BOQGenerationOptions,
    BOQGenerationResult,
    ConversionResult,
    RegenerateRequest,
)
from cadboq.models.cad_schema import CADBOQData
from cadboq.services.boq_export import export_csv, export_filename, export_xlsx
from cadboq.services.cad_parser import CADUpload, check_supported
from cadboq.services.conversion_pipeline import CADToBOQPipeline
from cadboq.services.perf_monitor import tracker

router = APIRouter(prefix="/api/v1/cad-boq", tags=["CAD to BOQ"])
logger = logging.getLogger("cadboq-routes")


def get_pipeline() -> CADToBOQPipeline:
    return CADToBOQPipeline()


async def _read_upload(file: UploadFile) -> CADUpload:
    """Validate extension before touching the payload, then enforce size limits."""
    try:
        check_supported(file.filename)
    except UnsupportedFormatError:
        tracker.record_rejection("unsupported_format")
        raise HTTPException(400, "Only DWG/DXF files accepted.")

    data = await file.read()
    if not data:
        tracker.record_rejection("empty_upload")
        raise HTTPException(400, "Uploaded file is empty.")

    max_bytes = int(config.MAX_UPLOAD_MB * 1024 * 1024)
    if len(data) > max_bytes:
        tracker.record_rejection("too_large")
        raise HTTPException(413, f"File exceeds the {config.MAX_UPLOAD_MB:g} MB upload limit.")

    return CADUpload(filename=file.filename, data=data)


def _parse_options(raw: Optional[str]) -> Optional[BOQGenerationOptions]:
    if not raw:
        return None
    try:
        return BOQGenerationOptions.model_validate_json(raw)
    except ValidationError as e:
        raise HTTPException(422, f"Invalid BOQ options: {e}")


def _attachment(filename: str) -> str:
    """
    Content-Disposition value for a download.

    Headers go out as latin-1, so the plain `filename` carries an ASCII
    stand-in and the real name travels RFC 5987 encoded in `filename*`.
    """
    fallback = filename.encode("ascii", "replace").decode("ascii")
    fallback = fallback.replace("?", "_").replace('"', "_").replace("\\", "_")
    return f"attachment; filename=\"{fallback}\"; filename*=UTF-8''{quote(filename)}"


@router.post("/parse", response_model=CADBOQData)
async def parse_drawing(
    file: UploadFile = File(...),
    pipeline: CADToBOQPipeline = Depends(get_pipeline),
):
    """Extract materials, dimensions and blocks from a DWG/DXF (no pricing)."""
    upload = await _read_upload(file)
    try:
        outcome = await pipeline.parse(upload)
    except CADBOQError as e:
        raise HTTPException(400, str(e))
    except Exception as e:
        logger.error(f"CAD parse error for '{upload.filename}': {e}", exc_info=True)
        raise HTTPException(500, f"CAD parsing failed: {e}")
    return outcome.cad_data


@router.post("/convert", response_model=ConversionResult)
async def convert_drawing(
    file: UploadFile = File(...),
    options: Optional[str] = Form(None),
    pipeline: CADToBOQPipeline = Depends(get_pipeline),
):
    """
    Full conversion: parse the drawing and generate a priced BOQ.

    `options` is an optional JSON object of BOQGenerationOptions fields; any
    field left out keeps its default.
    """
    opts = _parse_options(options)
    upload = await _read_upload(file)
    try:
        return await pipeline.convert(upload, opts)
    except CADBOQError as e:
        raise HTTPException(400, str(e))
    except Exception as e:
        logger.error(f"CAD to BOQ conversion failed for '{upload.filename}': {e}", exc_info=True)
        raise HTTPException(500, f"CAD to BOQ conversion failed: {e}")


@router.post("/regenerate", response_model=BOQGenerationResult)
async def regenerate_boq(
    request: RegenerateRequest,
    pipeline: CADToBOQPipeline = Depends(get_pipeline),
):
    """Re-price previously parsed drawing data with new options."""
    return pipeline.regenerate(request.cad_data, request.options)


@router.post("/export/csv")
async def export_boq_csv(
    result: BOQGenerationResult,
    title: Optional[str] = Query(None),
):
    content = export_csv(result)
    filename = export_filename(title or result.metadata.source_file, "csv")
    return Response(
        content=content,
        media_type="text/csv",
        headers={"Content-Disposition": _attachment(filename)},
    )


@router.post("/export/xlsx")
async def export_boq_xlsx(
    result: BOQGenerationResult,
    title: Optional[str] = Query(None),
    currency: str = Query(config.DEFAULT_CURRENCY),
):
    content = export_xlsx(result, currency=currency)
    filename = export_filename(title or result.metadata.source_file, "xlsx")
    return Response(
        content=content,
        media_type="application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
        headers={"Content-Disposition": _attachment(filename)},
    )
