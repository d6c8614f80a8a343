"""
conftest.py — Shared pytest fixtures for the CAD-to-BOQ backend test suite.

No network or external converter fixtures are defined here. DWG decoding uses
the synthetic decoder with zero latency so async tests stay fast.

Import-path bootstrapping:
    The ``backend/`` directory is inserted into sys.path so that all
    ``cadboq.*`` imports resolve correctly regardless of where pytest is invoked.
"""

import sys
import os
import pytest

# ---------------------------------------------------------------------------
# Ensure ``backend/`` is on the import path before any cadboq imports occur.
# ---------------------------------------------------------------------------
_BACKEND_DIR = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
if _BACKEND_DIR not in sys.path:
    sys.path.insert(0, _BACKEND_DIR)


# ---------------------------------------------------------------------------
# Service fixtures
# ---------------------------------------------------------------------------

@pytest.fixture(scope="session")
def boq_generator():
    """BOQGenerator (stateless)."""
    from cadboq.services.boq_generator import BOQGenerator
    return BOQGenerator()


@pytest.fixture(scope="session")
def instant_dwg_decoder():
    """Synthetic DWG decoder without the simulated decode delay."""
    from cadboq.services.dwg_decoder import SyntheticDWGDecoder
    return SyntheticDWGDecoder(delay_s=0)


@pytest.fixture(scope="session")
def cad_parser(instant_dwg_decoder):
    """CADParserService wired to the zero-latency synthetic DWG decoder."""
    from cadboq.services.cad_parser import CADParserService
    return CADParserService(dwg_decoder=instant_dwg_decoder)


@pytest.fixture
def pipeline(cad_parser, boq_generator):
    """CADToBOQPipeline with the default 30 s parse timeout."""
    from cadboq.services.conversion_pipeline import CADToBOQPipeline
    return CADToBOQPipeline(parser=cad_parser, generator=boq_generator)


@pytest.fixture
def reset_tracker():
    """Clear the process-wide metrics tracker before and after a test."""
    from cadboq.services.perf_monitor import tracker
    tracker.reset()
    yield tracker
    tracker.reset()


# ---------------------------------------------------------------------------
# Shared drawing data
# ---------------------------------------------------------------------------

@pytest.fixture
def steel_plate_drawing():
    """
    One A36 steel plate, 4 ea, on a 10 m² drawing with two layers.

    Complexity score = 2 (one material) + 1 (area > 5) = 3 → Low, so
    base labor hours = 10 × 0.5 × 1.0 = 5.
    """
    from cadboq.models.cad_schema import CADBOQData, CADMaterial, DrawingInfo
    return CADBOQData(
        materials=[
            CADMaterial(name="Steel Plate", type="steel", grade="A36", quantity=4, unit="ea"),
        ],
        dimensions=[],
        blocks=[],
        total_area=10,
        total_volume=1,
        total_length=5,
        drawing_info=DrawingInfo(title="test", scale="1:1", units="mm", layers=["A", "B"]),
    )


@pytest.fixture
def empty_drawing():
    """No materials, no geometry, no layers."""
    from cadboq.models.cad_schema import CADBOQData, DrawingInfo
    return CADBOQData(drawing_info=DrawingInfo(title="empty"))


def _dxf_text(*tags):
    """Render (group code, value) pairs as ASCII DXF text."""
    return "".join(f"{code}\n{value}\n" for code, value in tags)


@pytest.fixture
def sample_dxf():
    """
    A small ASCII DXF:
      - LWPOLYLINE on STEEL_BEAMS ending at (3, 4)  → 5 mm of Structural Steel
      - CIRCLE r=2 on Concrete-Footing              → 4π mm² of Concrete
      - DIMENSION with text "1500mm" on DIMS
      - LINE on GRID ending at (6, 8)               → length 10
      - TEXT on NOTES (no material)
      - BLOCK "DOOR" inserted at (1.5, 2.5)
    """
    return _dxf_text(
        (0, "SECTION"), (2, "BLOCKS"),
        (0, "BLOCK"), (8, "0"), (2, "DOOR"), (10, "1.5"), (20, "2.5"), (30, "0"),
        (0, "ENDBLK"),
        (0, "ENDSEC"),
        (0, "SECTION"), (2, "ENTITIES"),
        (0, "LWPOLYLINE"), (8, "STEEL_BEAMS"), (62, "1"), (10, "0"), (20, "0"), (10, "3"), (20, "4"),
        (0, "CIRCLE"), (8, "Concrete-Footing"), (10, "0"), (20, "0"), (40, "2"),
        (0, "DIMENSION"), (8, "DIMS"), (1, "1500mm"),
        (0, "LINE"), (8, "GRID"), (10, "6"), (20, "8"),
        (0, "TEXT"), (8, "NOTES"), (1, "General arrangement"),
        (0, "ENDSEC"),
        (0, "EOF"),
    )
