"""
BOQ Generator: prices CADBOQData into Bill of Quantities line items.

Covers:
  - Material items with rate lookup (type × unit table, grade / thickness /
    size multipliers, bulk discount)
  - Labor and equipment items sized from drawn area and a complexity class
  - Overhead as a single lump-sum line
  - Cost roll-up and a heuristic confidence score

Pure function of its inputs apart from timestamps. profit_margin is accepted on
the options but not applied to any figure.
"""
import math
import time
import logging
from datetime import datetime, timezone
from typing import Any, Dict, List, Literal, Optional, Tuple, Union

from cadboq.models.boq_schema import (
    BOQGenerationOptions,
    BOQGenerationResult,
    BOQItem,
    BOQMetadata,
    BOQSummary,
)
from cadboq.models.cad_schema import CADBOQData, CADMaterial
from cadboq.services.units import format_number, round2

logger = logging.getLogger("cadboq-generator")

Complexity = Literal["Low", "Medium", "High", "Critical"]
OptionsInput = Union[BOQGenerationOptions, Dict[str, Any], None]


# ---------------------------------------------------------------------------
# Material base rates (per unit, USD): material type → unit → rate
# ---------------------------------------------------------------------------
BASE_RATES: Dict[str, Dict[str, float]] = {
    "steel": {
        "ea": 150.0,        # structural element, per piece
        "m": 25.0,          # linear member
        "kg": 2.5,          # welding consumables
        "l": 15.0,          # coatings
        "mm": 0.08,
        "mm²": 0.00015,
        "mm³": 0.00008,
    },
    "aluminum": {
        "ea": 200.0,
        "m": 35.0,
        "kg": 4.5,
        "l": 20.0,
        "mm": 0.12,
        "mm²": 0.00025,
        "mm³": 0.00012,
    },
    "copper": {
        "ea": 300.0,
        "m": 50.0,
        "kg": 8.5,
        "l": 25.0,
        "mm": 0.18,
        "mm²": 0.00035,
        "mm³": 0.00018,
    },
    "concrete": {
        "ea": 100.0,
        "m": 15.0,
        "kg": 0.8,
        "l": 12.0,
        "mm³": 0.00008,
    },
    "other": {
        "ea": 50.0,
        "m": 10.0,
        "kg": 3.0,
        "l": 12.0,
        "mm": 0.05,
        "mm²": 0.0001,
        "mm³": 0.00005,
    },
}

# Grade → price multiplier. Exact, case-sensitive match; unknown grades are 1.0.
GRADE_MULTIPLIERS: Dict[str, float] = {
    # Steel
    "A36": 1.0,
    "A572": 1.15,
    "A992": 1.25,
    "A500": 1.1,
    "A106": 1.3,        # seamless pipe
    "A234": 1.4,        # wrought fittings
    "A516": 1.2,        # pressure vessel plate
    "A387": 1.5,        # Cr-Mo
    "A514": 1.6,
    # Welding electrodes
    "E7018": 1.0,
    "E6013": 0.8,
    "E7016": 1.1,
    "E308L": 1.3,
    "E309L": 1.4,
    # Concrete
    "C25": 1.0,
    "C30": 1.1,
    "C35": 1.2,
    "C40": 1.3,
    # Aluminum
    "6061-T6": 1.8,
    "6063-T6": 1.6,
    "5052": 1.4,
    "3003": 1.2,
    # Copper
    "C110": 2.5,
    "C101": 2.8,
    "C122": 2.3,
    # Paint systems
    "PRIMER": 1.0,
    "ENAMEL": 1.2,
    "EPOXY": 1.5,
    "POLYURETHANE": 1.8,
    "ZINC_RICH": 1.3,
}

# Steel thickness at which the thickness multiplier starts to bite (mm)
_REFERENCE_STEEL_THICKNESS_MM = 8.0

# Envelope volume above which an EA item counts as a large structural element
_LARGE_ELEMENT_VOLUME = 0.1

# Precision kept for rates that would round to zero cents
_SUB_CENT_DECIMALS = 6

# (quantity threshold, multiplier), checked in order
_BULK_DISCOUNTS: List[Tuple[float, float]] = [
    (10, 0.90),
    (5, 0.95),
]

# ---------------------------------------------------------------------------
# Complexity & hours
# ---------------------------------------------------------------------------
_AREA_TIERS: List[Tuple[float, int]] = [(50, 3), (20, 2), (5, 1)]      # m²
_VOLUME_TIERS: List[Tuple[float, int]] = [(10, 3), (5, 2), (1, 1)]     # m³
_POINTS_PER_MATERIAL = 2
_POINTS_PER_BLOCK = 1

# (minimum score, class), checked in order
_COMPLEXITY_THRESHOLDS: List[Tuple[int, Complexity]] = [
    (15, "Critical"),
    (10, "High"),
    (5, "Medium"),
]

COMPLEXITY_MULTIPLIERS: Dict[str, float] = {
    "Low": 1.0,
    "Medium": 1.5,
    "High": 2.0,
    "Critical": 3.0,
}

HOURS_PER_SQM = 0.5

# (share of base hours, rate factor, description, specifications, remarks)
_LABOR_SPLITS = [
    (0.6, 1.0, "Fabrication Labor", "Skilled fabrication work", None),
    (0.3, 1.2, "Welding Labor", "Certified welding work", "Includes preparation and finishing"),
    (0.1, 1.0, "Assembly Labor", "Assembly and installation work", "Final assembly and quality control"),
]

_EQUIPMENT_SPLITS = [
    (0.4, 1.0, "Cutting Equipment Usage", "Plasma cutting, saw cutting, etc.",
     "Equipment rental and operation"),
    (0.3, 1.5, "Welding Equipment Usage", "Welding machines, gas, consumables",
     "Includes consumables and gas"),
    (0.1, 2.0, "Lifting Equipment Usage", "Cranes, hoists, lifting accessories",
     "For material handling and assembly"),
]

# ---------------------------------------------------------------------------
# Confidence
# ---------------------------------------------------------------------------
_BASE_CONFIDENCE = 50
_MIN_LAYERS_FOR_DETAIL = 3
_MIN_ITEMS_FOR_DETAIL = 5


def resolve_options(options: OptionsInput) -> BOQGenerationOptions:
    """Shallow-merge caller options over the defaults."""
    if options is None:
        return BOQGenerationOptions()
    if isinstance(options, BOQGenerationOptions):
        return options
    return BOQGenerationOptions.model_validate(options)


def _dims_text(material: CADMaterial) -> str:
    d = material.dimensions
    return f"{format_number(d.length)}x{format_number(d.width)}x{format_number(d.height)}mm"


class BOQGenerator:
    """Stateless BOQ builder; share one instance via get_boq_generator()."""

    def generate_boq(self, cad_data: CADBOQData, options: OptionsInput = None) -> BOQGenerationResult:
        start = time.perf_counter()
        opts = resolve_options(options)

        items: List[BOQItem] = []
        counter = 1

        for material in cad_data.materials:
            items.append(self.create_material_item(material, counter))
            counter += 1

        if opts.include_labor or opts.include_equipment:
            complexity = self.assess_complexity(cad_data)
            base_hours = self.calculate_base_labor_hours(cad_data, complexity)

        if opts.include_labor:
            labor_items = self._split_hours(
                base_hours, opts.labor_rate, _LABOR_SPLITS, "Labor", counter,
                default_remarks=f"Based on {complexity} complexity assessment",
            )
            items.extend(labor_items)
            counter += len(labor_items)

        if opts.include_equipment:
            equipment_items = self._split_hours(
                base_hours, opts.equipment_rate, _EQUIPMENT_SPLITS, "Equipment", counter,
            )
            items.extend(equipment_items)
            counter += len(equipment_items)

        material_cost = sum(i.total_amount for i in items if i.category == "Material")
        labor_cost = sum(i.total_amount for i in items if i.category == "Labor")
        equipment_cost = sum(i.total_amount for i in items if i.category == "Equipment")

        overhead_cost = 0.0
        if opts.include_overhead:
            overhead_cost = (material_cost + labor_cost + equipment_cost) * (opts.overhead_percentage / 100)

        total_cost = material_cost + labor_cost + equipment_cost + overhead_cost

        if opts.include_overhead and overhead_cost > 0:
            items.append(BOQItem(
                id=f"item-{counter}",
                item_number=f"{counter}.0",
                description="Overhead and Administrative Costs",
                quantity=1,
                unit="LS",
                unit_rate=overhead_cost,
                total_amount=overhead_cost,
                category="Other",
                specifications=f"{format_number(opts.overhead_percentage)}% of direct costs",
                remarks="Calculated overhead",
            ))

        confidence = self.calculate_confidence(cad_data, items)
        processing_ms = int((time.perf_counter() - start) * 1000)

        logger.info(
            f"BOQ generated for '{cad_data.drawing_info.title}': {len(items)} items, "
            f"total {total_cost:.2f} {opts.currency}, confidence {confidence}",
            extra={"duration_ms": processing_ms, "source_file": cad_data.drawing_info.title},
        )

        return BOQGenerationResult(
            items=items,
            summary=BOQSummary(
                material_cost=material_cost,
                labor_cost=labor_cost,
                equipment_cost=equipment_cost,
                overhead_cost=overhead_cost,
                total_cost=total_cost,
                item_count=len(items),
            ),
            metadata=BOQMetadata(
                source_file=cad_data.drawing_info.title,
                generated_at=datetime.now(timezone.utc).isoformat(),
                processing_time=processing_ms,
                confidence=confidence,
            ),
        )

    # ------------------------------------------------------------------
    # Material items
    # ------------------------------------------------------------------

    def create_material_item(self, material: CADMaterial, item_number: int) -> BOQItem:
        unit_rate = self.calculate_material_rate(material)
        return BOQItem(
            id=f"item-{item_number}",
            item_number=f"{item_number}.0",
            description=self.generate_material_description(material),
            quantity=material.quantity,
            unit=material.unit,
            unit_rate=unit_rate,
            total_amount=material.quantity * unit_rate,
            category="Material",
            specifications=material.specifications or self.generate_material_specifications(material),
            remarks=f"Generated from CAD layer: {material.name}",
        )

    def calculate_material_rate(self, material: CADMaterial) -> float:
        """
        Unit rate for a material, rounded to cents (sub-cent rates to 6 places).

        base_rates[type][unit] (falling back to other[unit], then 1), then in order:
          × grade multiplier
          × max(1, thickness / 8)               steel only
          × max(1, sqrt(volume) × 2)            EA items with volume > 0.1
          × 0.9 (qty > 10) or 0.95 (qty > 5)
        """
        material_type = material.type.lower()
        unit = material.unit.lower()

        rate = (
            BASE_RATES.get(material_type, {}).get(unit)
            or BASE_RATES["other"].get(unit)
            or 1.0
        )

        if material.grade:
            rate *= self.get_grade_multiplier(material.grade)

        if material.type == "steel" and material.thickness:
            rate *= max(1.0, material.thickness / _REFERENCE_STEEL_THICKNESS_MM)

        if material.dimensions and material.unit == "EA":
            d = material.dimensions
            volume = (d.length * d.width * d.height) / 1_000_000
            if volume > _LARGE_ELEMENT_VOLUME:
                rate *= max(1.0, math.sqrt(volume) * 2)

        for threshold, multiplier in _BULK_DISCOUNTS:
            if material.quantity > threshold:
                rate *= multiplier
                break

        # per-mm² and per-mm³ rates are sub-cent; keep them rather than pricing at zero
        return round2(rate) or round(rate, _SUB_CENT_DECIMALS)

    @staticmethod
    def get_grade_multiplier(grade: str) -> float:
        return GRADE_MULTIPLIERS.get(grade, 1.0)

    @staticmethod
    def generate_material_description(material: CADMaterial) -> str:
        description = material.name
        if material.grade:
            description += f" ({material.grade})"
        if material.dimensions:
            description += f" - {_dims_text(material)}"
        if material.thickness:
            description += f" - {format_number(material.thickness)}mm thick"
        return description

    @staticmethod
    def generate_material_specifications(material: CADMaterial) -> str:
        specs: List[str] = []
        if material.grade:
            specs.append(f"Grade: {material.grade}")
        if material.specifications:
            specs.append(material.specifications)
        if material.dimensions:
            specs.append(f"Dimensions: {_dims_text(material)}")
        if material.thickness:
            specs.append(f"Thickness: {format_number(material.thickness)}mm")
        return ", ".join(specs)

    # ------------------------------------------------------------------
    # Labor & equipment
    # ------------------------------------------------------------------

    @staticmethod
    def complexity_score(cad_data: CADBOQData) -> int:
        score = len(cad_data.materials) * _POINTS_PER_MATERIAL
        for threshold, points in _AREA_TIERS:
            if cad_data.total_area > threshold:
                score += points
                break
        for threshold, points in _VOLUME_TIERS:
            if cad_data.total_volume > threshold:
                score += points
                break
        score += len(cad_data.blocks) * _POINTS_PER_BLOCK
        return score

    @staticmethod
    def classify_complexity(score: int) -> Complexity:
        for minimum, label in _COMPLEXITY_THRESHOLDS:
            if score >= minimum:
                return label
        return "Low"

    def assess_complexity(self, cad_data: CADBOQData) -> Complexity:
        return self.classify_complexity(self.complexity_score(cad_data))

    @staticmethod
    def calculate_base_labor_hours(cad_data: CADBOQData, complexity: str) -> float:
        return cad_data.total_area * HOURS_PER_SQM * COMPLEXITY_MULTIPLIERS.get(complexity, 1.0)

    @staticmethod
    def _split_hours(
        base_hours: float,
        hourly_rate: float,
        splits: list,
        category: str,
        start_number: int,
        default_remarks: Optional[str] = None,
    ) -> List[BOQItem]:
        """One HR line per split whose share of base_hours is positive."""
        items: List[BOQItem] = []
        number = start_number
        for share, rate_factor, description, specifications, remarks in splits:
            hours = base_hours * share
            if hours <= 0:
                continue
            items.append(BOQItem(
                id=f"item-{number}",
                item_number=f"{number}.0",
                description=description,
                quantity=hours,
                unit="HR",
                unit_rate=hourly_rate * rate_factor,
                total_amount=hours * hourly_rate * rate_factor,
                category=category,
                specifications=specifications,
                remarks=remarks or default_remarks or "",
            ))
            number += 1
        return items

    # ------------------------------------------------------------------
    # Confidence
    # ------------------------------------------------------------------

    @staticmethod
    def calculate_confidence(cad_data: CADBOQData, items: List[BOQItem]) -> int:
        confidence = _BASE_CONFIDENCE
        if cad_data.materials:
            confidence += 20
        if len(cad_data.drawing_info.layers) > _MIN_LAYERS_FOR_DETAIL:
            confidence += 10
        if cad_data.dimensions:
            confidence += 10
        if len(items) > _MIN_ITEMS_FOR_DETAIL:
            confidence += 10
        return min(100, confidence)


_generator: Optional[BOQGenerator] = None


def get_boq_generator() -> BOQGenerator:
    """Shared generator instance."""
    global _generator
    if _generator is None:
        _generator = BOQGenerator()
    return _generator
