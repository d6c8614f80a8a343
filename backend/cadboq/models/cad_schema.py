"""
CAD extraction schema.

The parser's output contract. Every model serialises with camelCase aliases
because the ERP front-end consumes these records directly; snake_case field
names are accepted on input as well.
"""
from typing import Any, Dict, List, Optional
from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class Point3D(CamelModel):
    x: float = 0.0
    y: float = 0.0
    z: float = 0.0


class MaterialDimensions(CamelModel):
    """Overall envelope of a member, in mm."""
    length: float
    width: float
    height: float


class CADMaterial(CamelModel):
    """
    A material quantity extracted (or synthesized) from a drawing.

    `type` is the rate-table key (steel | aluminum | copper | concrete | other).
    `unit` is one of ea, m, kg, l, mm, mm², mm³ and is matched
    case-insensitively when pricing.
    """
    name: str
    type: str
    grade: Optional[str] = None
    thickness: Optional[float] = None          # mm, priced for steel only
    dimensions: Optional[MaterialDimensions] = None
    quantity: float = Field(0.0, ge=0)
    unit: str = "ea"
    specifications: Optional[str] = None


class CADDimension(CamelModel):
    type: str = "linear"
    value: float
    unit: str = "mm"
    start_point: Point3D = Field(default_factory=Point3D)
    end_point: Point3D = Field(default_factory=Point3D)
    text: str = ""
    layer: str = ""


class CADBlock(CamelModel):
    name: str
    entities: List[Any] = Field(default_factory=list)
    attributes: Dict[str, str] = Field(default_factory=dict)
    insert_point: Point3D = Field(default_factory=Point3D)
    scale: Point3D = Field(default_factory=lambda: Point3D(x=1.0, y=1.0, z=1.0))
    rotation: float = 0.0


class DrawingInfo(CamelModel):
    title: str
    scale: str = "1:1"
    units: str = "mm"
    layers: List[str] = Field(default_factory=list)


class CADBOQData(CamelModel):
    """
    Complete parser output for one drawing.

    Built once per parse and frozen; the generator may consume it again when
    the user regenerates with different options.
    """
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)

    materials: List[CADMaterial] = Field(default_factory=list)
    dimensions: List[CADDimension] = Field(default_factory=list)
    blocks: List[CADBlock] = Field(default_factory=list)
    total_area: float = 0.0       # m²
    total_volume: float = 0.0     # m³
    total_length: float = 0.0     # m
    drawing_info: DrawingInfo
