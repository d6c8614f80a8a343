"""
BOQ generation schema: options in, priced items + roll-up out.
"""
from typing import List, Literal, Optional
from pydantic import Field

from cadboq import config
from cadboq.models.cad_schema import CamelModel, CADBOQData

BOQCategory = Literal["Material", "Labor", "Equipment", "Subcontract", "Other"]


class BOQGenerationOptions(CamelModel):
    """
    Pricing configuration. Any field the caller leaves out keeps its default,
    so a partial dict is a shallow override of the baseline.
    """
    include_labor: bool = True
    include_equipment: bool = True
    include_overhead: bool = True
    labor_rate: float = config.DEFAULT_LABOR_RATE              # per hour
    equipment_rate: float = config.DEFAULT_EQUIPMENT_RATE      # per hour
    overhead_percentage: float = config.DEFAULT_OVERHEAD_PCT
    profit_margin: float = config.DEFAULT_PROFIT_MARGIN_PCT    # accepted, not applied
    currency: str = config.DEFAULT_CURRENCY


class BOQItem(CamelModel):
    id: str
    item_number: str
    description: str
    quantity: float
    unit: str
    unit_rate: float
    total_amount: float
    category: BOQCategory
    specifications: str = ""
    remarks: str = ""


class BOQSummary(CamelModel):
    material_cost: float = 0.0
    labor_cost: float = 0.0
    equipment_cost: float = 0.0
    overhead_cost: float = 0.0
    total_cost: float = 0.0
    item_count: int = 0


class BOQMetadata(CamelModel):
    source_file: str
    generated_at: str
    processing_time: int          # ms
    confidence: int = Field(..., ge=0, le=100)


class BOQGenerationResult(CamelModel):
    items: List[BOQItem] = Field(default_factory=list)
    summary: BOQSummary
    metadata: BOQMetadata


class ConversionResult(CamelModel):
    """Pipeline output: the parse that fed the BOQ, and whether it was degraded."""
    cad_data: CADBOQData
    boq: BOQGenerationResult
    degraded: bool = False
    degradation_reason: Optional[str] = None


class RegenerateRequest(CamelModel):
    cad_data: CADBOQData
    options: Optional[BOQGenerationOptions] = None
