"""
CAD → BOQ conversion pipeline.

Parse (bounded by a timeout) → generate → hand back both, flagged when the
drawing data is synthetic. A timed-out parse is treated exactly like a failed
one: the synthetic drawing for the file name is substituted and generation
carries on. Unsupported file formats are the only hard failure.
"""
import asyncio
import time
import logging
from typing import Optional

from cadboq import config
from cadboq.models.boq_schema import BOQGenerationResult, ConversionResult
from cadboq.models.cad_schema import CADBOQData
from cadboq.services.boq_generator import BOQGenerator, OptionsInput, get_boq_generator
from cadboq.services.cad_parser import (
    CADFile,
    CADParserService,
    ParseOutcome,
    check_supported,
    get_cad_parser,
    synthetic_outcome,
)
from cadboq.services.perf_monitor import tracker

logger = logging.getLogger("cadboq-pipeline")


class CADToBOQPipeline:

    def __init__(
        self,
        parser: Optional[CADParserService] = None,
        generator: Optional[BOQGenerator] = None,
        parse_timeout_s: Optional[float] = None,
    ):
        self.parser = parser or get_cad_parser()
        self.generator = generator or get_boq_generator()
        self.parse_timeout_s = config.PARSE_TIMEOUT_S if parse_timeout_s is None else parse_timeout_s

    async def parse(self, file: CADFile) -> ParseOutcome:
        filename = file.filename or ""
        check_supported(filename)

        start = time.perf_counter()
        try:
            outcome = await asyncio.wait_for(
                self.parser.parse_with_outcome(file), timeout=self.parse_timeout_s
            )
        except asyncio.TimeoutError:
            logger.warning(
                f"CAD parsing of '{filename}' timed out after {self.parse_timeout_s}s, "
                f"using synthetic drawing data"
            )
            outcome = synthetic_outcome(filename, "timeout")

        duration_ms = round((time.perf_counter() - start) * 1000, 2)
        tracker.record_stage_duration("parse", duration_ms)
        return outcome

    def regenerate(self, cad_data: CADBOQData, options: OptionsInput = None) -> BOQGenerationResult:
        """Price an existing parse again, e.g. after the user changed rates."""
        start = time.perf_counter()
        result = self.generator.generate_boq(cad_data, options)
        tracker.record_stage_duration("generate", round((time.perf_counter() - start) * 1000, 2))
        return result

    async def convert(self, file: CADFile, options: OptionsInput = None) -> ConversionResult:
        outcome = await self.parse(file)
        boq = self.regenerate(outcome.cad_data, options)
        tracker.record_conversion(outcome.reason if outcome.degraded else None)

        if outcome.degraded:
            logger.info(
                f"BOQ for '{file.filename}' built from synthetic data ({outcome.reason}), "
                f"confidence {boq.metadata.confidence}"
            )

        return ConversionResult(
            cad_data=outcome.cad_data,
            boq=boq,
            degraded=outcome.degraded,
            degradation_reason=outcome.reason,
        )
