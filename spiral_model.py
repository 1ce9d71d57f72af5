"""Spiral Stair data records.

Inputs are captured once per generation request into an immutable StairInput.
Everything derived from them lives on StairDerived, which is rebuilt from scratch
whenever the inputs change. Lengths are inches, angles degrees unless a field
name says radians.
"""
import math
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional

# ---------------------------------------------------------------------------
# Residential code limits (IRC R311.7)
# ---------------------------------------------------------------------------
MAX_RISER_HEIGHT = 9.5
MIN_RISER_HEIGHT = 4.0
MIN_CLEAR_WIDTH = 26.0
MIN_TREAD_DEPTH_WALKLINE = 6.75
MIN_HEADROOM = 78.0
MAX_VERTICAL_RISE_NO_LANDING = 147.0
WALKLINE_OFFSET_FROM_POLE = 12.0
HANDRAIL_CLEARANCE = 1.5

# Absolute tolerance for every threshold comparison
TOLERANCE = 1e-4

# Hard cap on riser solver increments; the last value is kept if it is reached
RISER_SOLVER_MAX_ITERATIONS = 100

MIDLANDING_SWEEP_DEGREES = 90.0
DEGENERATE_SWEEP = 1e-9

TREAD_THICKNESS = 1.5
TOP_LANDING_LENGTH = 50.0
TOP_LANDING_THICKNESS = 1.5

STANDARD_POLE_SIZES = [3.0, 3.5, 4.0, 4.5, 5.0, 5.563, 6.0, 6.625, 8.0, 8.625, 10.75, 12.75]

# Solid category -> CAD layer name
LAYERS = {
    "pole":        "Stair-Pole",
    "treads":      "Stair-Treads",
    "midlanding":  "Stair-Landing-Mid",
    "top_landing": "Stair-Landing-Top",
}
CATEGORY_ORDER = ["pole", "treads", "midlanding", "top_landing"]

DEFAULT_CONFIG = {
    "center_pole_diameter": 6.0,
    "overall_height": 120.0,
    "outside_diameter": 60.0,
    "total_rotation": 450.0,
    "handedness": "Clockwise",
}


class RuleKind(str, Enum):
    MIDLANDING_REQUIRED = "MidlandingRequired"
    RISER_HEIGHT_TOO_LARGE = "RiserHeightTooLarge"
    RISER_HEIGHT_TOO_SMALL = "RiserHeightTooSmall"
    CLEAR_WIDTH_TOO_SMALL = "ClearWidthTooSmall"
    WALKLINE_DEPTH_TOO_SMALL = "WalklineDepthTooSmall"
    HEADROOM_TOO_SMALL = "HeadroomTooSmall"

    @property
    def informational(self) -> bool:
        return self is RuleKind.MIDLANDING_REQUIRED


class SectorKind(str, Enum):
    TREAD = "Tread"
    MIDLANDING = "Midlanding"


@dataclass(frozen=True)
class StairInput:
    center_pole_diameter: float
    overall_height: float
    outside_diameter: float
    total_rotation: float
    # Display only, no calculation reads it
    handedness: str = "Clockwise"

    @classmethod
    def from_config(cls, config: dict) -> "StairInput":
        merged = {**DEFAULT_CONFIG, **{k: v for k, v in config.items() if v is not None}}
        return cls(
            center_pole_diameter=float(merged["center_pole_diameter"]),
            overall_height=float(merged["overall_height"]),
            outside_diameter=float(merged["outside_diameter"]),
            total_rotation=float(merged["total_rotation"]),
            handedness=str(merged["handedness"]),
        )

    @property
    def pole_radius(self) -> float:
        return self.center_pole_diameter / 2.0

    @property
    def outer_radius(self) -> float:
        return self.outside_diameter / 2.0


@dataclass
class StairDerived:
    """Calculated values for one StairInput.

    Populated by spiral_calc.calculate(); midlanding_position_index is filled in
    afterwards by the caller through midlanding.select_midlanding().
    """
    stair_input: StairInput
    riser_height: float = 0.0
    number_of_risers: int = 0
    number_of_treads: int = 0
    tread_angle_degrees: float = 0.0
    tread_angle_radians: float = 0.0
    clear_width: float = 0.0
    walkline_radius: float = 0.0
    tread_depth_at_walkline: float = 0.0
    headroom: Optional[float] = None
    requires_midlanding: bool = False
    midlanding_position_index: Optional[int] = None
    top_landing_width: float = 0.0
    tread_thickness: float = TREAD_THICKNESS
    top_landing_length: float = TOP_LANDING_LENGTH
    top_landing_thickness: float = TOP_LANDING_THICKNESS
    solver_capped: bool = False
    input_errors: tuple = ()

    @property
    def pole_radius(self) -> float:
        return self.stair_input.pole_radius

    @property
    def outer_radius(self) -> float:
        return self.stair_input.outer_radius

    @property
    def overall_height(self) -> float:
        return self.stair_input.overall_height

    def as_dict(self) -> dict:
        return {
            "riser_height": self.riser_height,
            "number_of_risers": self.number_of_risers,
            "number_of_treads": self.number_of_treads,
            "tread_angle_degrees": self.tread_angle_degrees,
            "tread_angle_radians": self.tread_angle_radians,
            "clear_width": self.clear_width,
            "walkline_radius": self.walkline_radius,
            "tread_depth_at_walkline": self.tread_depth_at_walkline,
            "headroom": self.headroom,
            "requires_midlanding": self.requires_midlanding,
            "midlanding_position_index": self.midlanding_position_index,
            "top_landing_width": self.top_landing_width,
            "top_landing_length": self.top_landing_length,
            "top_landing_thickness": self.top_landing_thickness,
            "tread_thickness": self.tread_thickness,
            "solver_capped": self.solver_capped,
            "input_errors": list(self.input_errors),
        }


@dataclass(frozen=True)
class ValidationIssue:
    """A single compliance finding."""
    rule: RuleKind
    message: str

    @property
    def informational(self) -> bool:
        return self.rule.informational


@dataclass(frozen=True)
class SectorDescriptor:
    """One annular sector between the pole and the outer radius."""
    index: int
    kind: SectorKind
    start_angle: float   # radians
    sweep_angle: float   # radians
    inner_radius: float
    outer_radius: float
    z_top: float
    z_bottom: float

    @property
    def end_angle(self) -> float:
        return self.start_angle + self.sweep_angle

    @property
    def thickness(self) -> float:
        return self.z_top - self.z_bottom

    @property
    def start_angle_degrees(self) -> float:
        return math.degrees(self.start_angle)

    @property
    def sweep_angle_degrees(self) -> float:
        return math.degrees(self.sweep_angle)

    def as_dict(self) -> dict:
        return {
            "index": self.index,
            "kind": self.kind.value,
            "start_angle": self.start_angle,
            "sweep_angle": self.sweep_angle,
            "start_angle_degrees": self.start_angle_degrees,
            "sweep_angle_degrees": self.sweep_angle_degrees,
            "inner_radius": self.inner_radius,
            "outer_radius": self.outer_radius,
            "z_top": self.z_top,
            "z_bottom": self.z_bottom,
        }


@dataclass(frozen=True)
class TopLandingPlacement:
    length: float
    width: float
    thickness: float
    connect_angle: float  # radians
    origin: tuple         # (x, y, z) on the pole surface at the top elevation

    @property
    def connect_angle_degrees(self) -> float:
        return math.degrees(self.connect_angle)

    @property
    def z_bottom(self) -> float:
        return self.origin[2] - self.thickness

    def as_dict(self) -> dict:
        return {
            "length": self.length,
            "width": self.width,
            "thickness": self.thickness,
            "connect_angle": self.connect_angle,
            "connect_angle_degrees": self.connect_angle_degrees,
            "origin": list(self.origin),
        }


@dataclass
class StairLayout:
    sectors: list
    top_landing: TopLandingPlacement
    diagnostics: list = field(default_factory=list)

    @property
    def connect_angle(self) -> float:
        return self.top_landing.connect_angle

    def as_dict(self) -> dict:
        return {
            "sectors": [s.as_dict() for s in self.sectors],
            "top_landing": self.top_landing.as_dict(),
            "diagnostics": list(self.diagnostics),
        }
