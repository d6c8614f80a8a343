"""
Synthetic drawing generator.

Stands in for a real drawing decoder: picks a hand-authored material set from
keywords in the file name so the converter always has something plausible to
price. Used for DWG uploads (no in-process DWG decoding) and whenever a DXF scan
or a caller-side timeout fails.

Keyword routing (lower-cased file stem, first match wins):
  structural / frame  → beams, columns, plate
  piping / pipe       → pipe runs + elbows
  tank / vessel       → shell/bottom plates + stiffener angle
  (anything else)     → generic plate, beam, channel

Four consumables (electrodes, primer, top coat) are always appended.
"""
import os
from datetime import date
from typing import List

from cadboq.models.cad_schema import (
    CADBlock,
    CADBOQData,
    CADDimension,
    CADMaterial,
    DrawingInfo,
    MaterialDimensions,
    Point3D,
)
from cadboq.services.units import round2

SYNTHETIC_LAYERS = ["STRUCTURAL", "DIMENSIONS", "TEXT", "HATCH", "TITLE_BLOCK", "ANNOTATIONS"]

# Assumed section depth when turning plan area into volume
_VOLUME_PER_AREA = 0.1


def _steel(name, grade, quantity, unit, specifications, thickness=None, dims=None) -> CADMaterial:
    return CADMaterial(
        name=name,
        type="steel",
        grade=grade,
        thickness=thickness,
        dimensions=MaterialDimensions(length=dims[0], width=dims[1], height=dims[2]) if dims else None,
        quantity=quantity,
        unit=unit,
        specifications=specifications,
    )


def _structural_set() -> List[CADMaterial]:
    return [
        _steel("Structural Steel Beam H200x100", "A36", 4, "EA",
               "ASTM A36, H200x100x8mm", thickness=8, dims=(3000, 100, 200)),
        _steel("Steel Column H300x300", "A36", 2, "EA",
               "ASTM A36, H300x300x12mm", thickness=12, dims=(2500, 300, 300)),
        _steel("Steel Plate 10mm", "A36", 3, "EA",
               "ASTM A36, 10mm thick plate", thickness=10, dims=(2000, 1000, 10)),
    ]


def _piping_set() -> List[CADMaterial]:
    return [
        _steel("Steel Pipe DN150", "A106", 8, "M",
               "ASTM A106, DN150, Schedule 40", thickness=6, dims=(6000, 150, 150)),
        _steel("Steel Pipe DN100", "A106", 12, "M",
               "ASTM A106, DN100, Schedule 40", thickness=4, dims=(6000, 100, 100)),
        _steel("Pipe Fittings 90° Elbow", "A234", 16, "EA",
               "ASTM A234, WPB, 90° Elbow DN150"),
    ]


def _tank_set() -> List[CADMaterial]:
    return [
        _steel("Steel Plate 8mm", "A36", 6, "EA",
               "ASTM A36, 8mm thick for tank shell", thickness=8, dims=(2000, 1000, 8)),
        _steel("Steel Plate 12mm", "A36", 2, "EA",
               "ASTM A36, 12mm thick for tank bottom", thickness=12, dims=(1500, 1500, 12)),
        _steel("Steel Angle L50x50x5", "A36", 8, "M",
               "ASTM A36, L50x50x5mm angle", thickness=5, dims=(2000, 50, 50)),
    ]


def _general_set() -> List[CADMaterial]:
    return [
        _steel("Steel Plate 6mm", "A36", 4, "EA",
               "ASTM A36, 6mm thick plate", thickness=6, dims=(1500, 1000, 6)),
        _steel("Steel Beam I200x100", "A36", 3, "EA",
               "ASTM A36, I200x100x8mm", thickness=8, dims=(2500, 100, 200)),
        _steel("Steel Channel C100x50", "A36", 6, "M",
               "ASTM A36, C100x50x5mm", thickness=5, dims=(2000, 50, 100)),
    ]


def _consumables() -> List[CADMaterial]:
    return [
        _steel("Welding Electrode E7018", "E7018", 15, "KG", "AWS E7018, 3.2mm diameter"),
        _steel("Welding Electrode E6013", "E6013", 8, "KG", "AWS E6013, 2.5mm diameter"),
        CADMaterial(name="Primer Paint", type="other", quantity=20, unit="L",
                    specifications="Zinc-rich primer, 1 coat"),
        CADMaterial(name="Top Coat Paint", type="other", quantity=15, unit="L",
                    specifications="Alkyd enamel, 2 coats"),
    ]


def drawing_title(filename: str) -> str:
    """File name without its last extension."""
    return os.path.splitext(filename)[0]


def select_material_set(title: str) -> List[CADMaterial]:
    name = title.lower()
    if "structural" in name or "frame" in name:
        materials = _structural_set()
    elif "piping" in name or "pipe" in name:
        materials = _piping_set()
    elif "tank" in name or "vessel" in name:
        materials = _tank_set()
    else:
        materials = _general_set()
    return materials + _consumables()


def _canned_dimensions() -> List[CADDimension]:
    return [
        CADDimension(value=3000, start_point=Point3D(), end_point=Point3D(x=3000),
                     text="3000", layer="DIMENSIONS"),
        CADDimension(value=2000, start_point=Point3D(), end_point=Point3D(y=2000),
                     text="2000", layer="DIMENSIONS"),
        CADDimension(value=1500, start_point=Point3D(), end_point=Point3D(z=1500),
                     text="1500", layer="DIMENSIONS"),
    ]


def _title_block(title: str) -> CADBlock:
    return CADBlock(
        name="TITLE_BLOCK",
        attributes={
            "DRAWING_NUMBER": title,
            "TITLE": title,
            "SCALE": "1:50",
            "DRAWN_BY": "CAD System",
            "DATE": date.today().isoformat(),
        },
    )


def generate_synthetic_drawing(filename: str) -> CADBOQData:
    """Build the keyword-driven stand-in drawing for ``filename``."""
    title = drawing_title(filename)
    materials = select_material_set(title)

    total_length = sum(
        m.dimensions.length * m.quantity for m in materials if m.dimensions
    ) / 1000
    total_area = sum(
        m.dimensions.length * m.dimensions.width * m.quantity / 1_000_000
        for m in materials
        if m.dimensions and m.unit == "EA"
    )
    total_volume = total_area * _VOLUME_PER_AREA

    return CADBOQData(
        materials=materials,
        dimensions=_canned_dimensions(),
        blocks=[_title_block(title)],
        total_area=round2(total_area),
        total_volume=round2(total_volume),
        total_length=round2(total_length),
        drawing_info=DrawingInfo(
            title=title,
            scale="1:50",
            units="mm",
            layers=list(SYNTHETIC_LAYERS),
        ),
    )
