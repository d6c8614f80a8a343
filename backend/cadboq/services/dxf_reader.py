"""
Minimal DXF group-code reader.

One forward pass over the (group code, value) tag stream of an ASCII DXF file.
ezdxf's low-level tag loader pairs the lines; everything above that (entity
accumulation, material attribution, totals) is done here so the extraction
rules stay explicit:

  - code 0 closes the current entity/block and may open a new one
  - entities: LINE, CIRCLE, ARC, POLYLINE, LWPOLYLINE, TEXT, DIMENSION
  - blocks:   BLOCK (name + insert point only)
  - materials come from the layer name, quantities from entity geometry

Geometry is deliberately shallow: an entity keeps only the last x/y/z it saw,
so a polyline's "length" is the distance of its last vertex from the origin,
not the sum of its segments.

Stray blank lines where a group code is expected are skipped. Any other
malformed tag stream (a non-integer group code) raises DXFStructureError,
and the parser turns that into synthetic drawing data.
"""
import io
import math
import re
import logging
from dataclasses import dataclass, field
from typing import Dict, List, Optional

from ezdxf.lldxf.tagger import ascii_tags_loader

from cadboq.models.cad_schema import (
    CADBlock,
    CADBOQData,
    CADDimension,
    CADMaterial,
    DrawingInfo,
    Point3D,
)

logger = logging.getLogger("cadboq-dxf-reader")

ENTITY_TYPES = frozenset({"LINE", "CIRCLE", "ARC", "POLYLINE", "LWPOLYLINE", "TEXT", "DIMENSION"})

# Assumed plate thickness (mm) when turning drawn area into volume
ASSUMED_THICKNESS_MM = 100.0

# Layer keyword(s) → material template. First match wins.
LAYER_MATERIALS = [
    (("steel", "structural"), {
        "name": "Structural Steel", "type": "steel", "grade": "A36",
        "specifications": "ASTM A36",
    }),
    (("concrete",), {
        "name": "Concrete", "type": "concrete", "grade": "C25",
        "specifications": "Grade C25/30",
    }),
    (("aluminum",), {
        "name": "Aluminum", "type": "aluminum", "grade": "6061-T6",
        "specifications": "Aluminum 6061-T6",
    }),
    (("copper",), {
        "name": "Copper", "type": "copper", "grade": "C110",
        "specifications": "Copper C110",
    }),
]

_LEADING_FLOAT = re.compile(r'^[+-]?(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?')


@dataclass
class DXFEntity:
    type: str
    layer: str = ""
    color: int = 0
    line_type: str = ""
    geometry: Dict[str, float] = field(default_factory=dict)
    properties: Dict[str, str] = field(default_factory=dict)


@dataclass
class _BlockDraft:
    name: str = ""
    insert_point: Point3D = field(default_factory=Point3D)


@dataclass
class DXFScan:
    entities: List[DXFEntity]
    blocks: List[CADBlock]


def parse_leading_float(value: str) -> Optional[float]:
    """Numeric prefix of ``value`` ("1500mm" → 1500.0), or None."""
    m = _LEADING_FLOAT.match(value.strip())
    return float(m.group(0)) if m else None


def _to_float(value: str) -> float:
    parsed = parse_leading_float(value)
    return parsed if parsed is not None else 0.0


def _to_int(value: str) -> int:
    parsed = parse_leading_float(value)
    return int(parsed) if parsed is not None else 0


def _apply_entity_code(entity: DXFEntity, code: int, value: str) -> None:
    if code == 8:
        entity.layer = value
    elif code == 62:
        entity.color = _to_int(value)
    elif code == 6:
        entity.line_type = value
    elif code == 10:
        entity.geometry["x"] = _to_float(value)
    elif code == 20:
        entity.geometry["y"] = _to_float(value)
    elif code == 30:
        entity.geometry["z"] = _to_float(value)
    elif code == 40:
        entity.geometry["radius"] = _to_float(value)
    elif code == 1:
        entity.properties["text"] = value


def _apply_block_code(block: _BlockDraft, code: int, value: str) -> None:
    if code == 2:
        block.name = value
    elif code == 10:
        block.insert_point.x = _to_float(value)
    elif code == 20:
        block.insert_point.y = _to_float(value)


class _BlankCodeLineSkipper:
    """
    ``readline`` source for ezdxf's tag loader that drops whitespace-only
    lines where a group code is due. Value lines pass through untouched, so
    an empty text value still pairs with its code.
    """

    def __init__(self, stream: io.StringIO):
        self._stream = stream
        self._expect_code = True
        self.skipped = 0

    def readline(self) -> str:
        line = self._stream.readline()
        if self._expect_code:
            while line and not line.strip():
                self.skipped += 1
                line = self._stream.readline()
        self._expect_code = not self._expect_code
        return line


def scan_dxf_tags(content: str) -> DXFScan:
    """Single pass over the tag stream, collecting entities and blocks."""
    entities: List[DXFEntity] = []
    blocks: List[CADBlock] = []
    entity: Optional[DXFEntity] = None
    block: Optional[_BlockDraft] = None

    def flush() -> None:
        if entity is not None:
            entities.append(entity)
        if block is not None and block.name:
            blocks.append(CADBlock(name=block.name, insert_point=block.insert_point))

    stream = _BlankCodeLineSkipper(io.StringIO(content, newline=None))
    for tag in ascii_tags_loader(stream):
        code = tag.code
        value = str(tag.value).strip()
        if code == 0:
            flush()
            entity, block = None, None
            if value == "BLOCK":
                block = _BlockDraft()
            elif value in ENTITY_TYPES:
                entity = DXFEntity(type=value)
        elif entity is not None:
            _apply_entity_code(entity, code, value)
        elif block is not None:
            _apply_block_code(block, code, value)
    flush()

    if stream.skipped:
        logger.debug(f"Skipped {stream.skipped} blank line(s) in group code position")

    return DXFScan(entities=entities, blocks=blocks)


# ── Derivations ────────────────────────────────────────────────────────────────

def polyline_length(geometry: Dict[str, float]) -> float:
    """Distance of the last-seen vertex from the origin (not true path length)."""
    return math.hypot(geometry.get("x", 0.0), geometry.get("y", 0.0))


def circle_area(geometry: Dict[str, float]) -> float:
    radius = geometry.get("radius", 0.0)
    return math.pi * radius * radius


def identify_material_from_layer(layer: str) -> Optional[Dict[str, str]]:
    layer_lower = (layer or "").lower()
    for keywords, template in LAYER_MATERIALS:
        if any(kw in layer_lower for kw in keywords):
            return dict(template)
    return None


def extract_materials(entities: List[DXFEntity]) -> List[CADMaterial]:
    """
    Polylines contribute length (mm), circles contribute area (mm²). Entities
    on unrecognised layers are dropped. Same (name, type) accumulates into one
    material, keeping the unit of the first contribution.
    """
    merged: Dict[tuple, dict] = {}
    for entity in entities:
        if entity.type in ("LWPOLYLINE", "POLYLINE"):
            amount, unit = polyline_length(entity.geometry), "mm"
        elif entity.type == "CIRCLE":
            amount, unit = circle_area(entity.geometry), "mm²"
        else:
            continue

        template = identify_material_from_layer(entity.layer)
        if template is None:
            continue

        key = (template["name"], template["type"])
        if key in merged:
            merged[key]["quantity"] += amount
        else:
            merged[key] = {**template, "quantity": amount, "unit": unit}

    return [CADMaterial(**m) for m in merged.values()]


def extract_dimensions(entities: List[DXFEntity]) -> List[CADDimension]:
    dimensions: List[CADDimension] = []
    for entity in entities:
        if entity.type != "DIMENSION":
            continue
        text = entity.properties.get("text")
        if not text:
            continue
        value = parse_leading_float(text)
        if value is None:
            continue
        dimensions.append(CADDimension(
            type="linear",
            value=value,
            unit="mm",
            start_point=Point3D(),
            end_point=Point3D(x=value),
            text=text,
            layer=entity.layer,
        ))
    return dimensions


def total_area(entities: List[DXFEntity]) -> float:
    area = 0.0
    for entity in entities:
        if entity.type == "CIRCLE":
            area += circle_area(entity.geometry)
        elif entity.type == "LWPOLYLINE":
            # plain DXF tags carry no polyline area; only pre-computed geometry does
            area += entity.geometry.get("area", 0.0)
    return area


def total_length(entities: List[DXFEntity]) -> float:
    return sum(
        polyline_length(e.geometry) for e in entities if e.type in ("LINE", "LWPOLYLINE")
    )


def unique_layers(entities: List[DXFEntity]) -> List[str]:
    return list(dict.fromkeys(e.layer for e in entities if e.layer))


def extract_cad_data(content: str, title: str) -> CADBOQData:
    """Scan DXF text and derive the full CADBOQData record."""
    scan = scan_dxf_tags(content)
    area = total_area(scan.entities)
    result = CADBOQData(
        materials=extract_materials(scan.entities),
        dimensions=extract_dimensions(scan.entities),
        blocks=scan.blocks,
        total_area=area,
        total_volume=area * ASSUMED_THICKNESS_MM,
        total_length=total_length(scan.entities),
        drawing_info=DrawingInfo(
            title=title,
            scale="1:1",
            units="mm",
            layers=unique_layers(scan.entities),
        ),
    )
    logger.debug(
        f"DXF scan '{title}': {len(scan.entities)} entities, {len(scan.blocks)} blocks, "
        f"{len(result.materials)} materials"
    )
    return result
