"""Spiral Stair calculation engine.

Derives riser count/height, tread angle, clear width, walkline depth, headroom
and top landing width from the four user inputs.

Usage:
    from spiral_calc import evaluate
    stair_input, derived, issues, compliant = evaluate({"overall_height": 120})
"""
import math

from spiral_model import (
    StairInput, StairDerived, DEFAULT_CONFIG,
    MAX_RISER_HEIGHT, TOLERANCE, RISER_SOLVER_MAX_ITERATIONS,
    HANDRAIL_CLEARANCE, WALKLINE_OFFSET_FROM_POLE,
)
from midlanding import is_required
from compliance.irc_spiral import IRCSpiralValidator


class StairInputError(ValueError):
    """The inputs cannot describe a buildable stair."""


def input_problems(stair_input: StairInput) -> list[str]:
    """Return a message for every structurally invalid input value."""
    problems = []
    if stair_input.center_pole_diameter <= 0:
        problems.append(f"Center pole diameter must be positive (got {stair_input.center_pole_diameter})")
    if stair_input.overall_height <= 0:
        problems.append(f"Overall height must be positive (got {stair_input.overall_height})")
    if stair_input.outside_diameter <= 0:
        problems.append(f"Outside diameter must be positive (got {stair_input.outside_diameter})")
    if stair_input.outside_diameter <= stair_input.center_pole_diameter:
        problems.append(
            f"Outside diameter {stair_input.outside_diameter} must exceed "
            f"center pole diameter {stair_input.center_pole_diameter}"
        )
    return problems


def solve_risers(height, max_riser_height=MAX_RISER_HEIGHT,
                 max_iterations=RISER_SOLVER_MAX_ITERATIONS):
    """Find the riser count for a floor-to-floor height.

    Starts half an inch under the limit and adds risers until the riser height
    fits. Returns (number_of_risers, riser_height, capped); capped is True when
    the iteration cap was reached and the last value was kept.
    """
    if height <= 0:
        return 0, 0.0, False

    ideal = max_riser_height - 0.5
    risers = math.ceil(height / ideal) if ideal > 0 else 1
    risers = max(risers, 1)
    riser_height = height / risers

    iterations = 0
    while riser_height > max_riser_height + TOLERANCE and iterations < max_iterations:
        risers += 1
        riser_height = height / risers
        iterations += 1

    capped = riser_height > max_riser_height + TOLERANCE
    if capped:
        print(f"[Calc] Riser solver stopped after {max_iterations} iterations: "
              f"{risers} risers at {riser_height:.4f}\" still exceed {max_riser_height}\"")
    return risers, riser_height, capped


def _tread_angle(total_rotation, number_of_treads):
    if number_of_treads > 0 and abs(total_rotation) > TOLERANCE:
        degrees = total_rotation / number_of_treads
        return degrees, degrees * (math.pi / 180.0)
    return 0.0, 0.0


def _clear_width(pole_radius, outer_radius):
    width = outer_radius - pole_radius - HANDRAIL_CLEARANCE
    return width if width > 0 else 0.0


def _walkline_depth(pole_radius, outer_radius, tread_angle_radians):
    walkline_radius = pole_radius + WALKLINE_OFFSET_FROM_POLE
    if walkline_radius >= outer_radius:
        # Walkline falls off the tread; measure at the outer edge instead
        return walkline_radius, max(outer_radius, 0.0) * abs(tread_angle_radians)
    if walkline_radius > 0 and abs(tread_angle_radians) > TOLERANCE:
        return walkline_radius, walkline_radius * abs(tread_angle_radians)
    return walkline_radius, 0.0


def _headroom(tread_angle_degrees, riser_height, number_of_treads, tread_thickness):
    if abs(tread_angle_degrees) < TOLERANCE or riser_height <= 0 or number_of_treads <= 0:
        return None
    treads_per_revolution = 360.0 / abs(tread_angle_degrees)
    rise_per_revolution = treads_per_revolution * riser_height
    return rise_per_revolution - tread_thickness


def calculate(stair_input: StairInput) -> StairDerived:
    """Derive every calculated field for stair_input.

    Invalid input produces a zeroed record carrying input_errors instead of
    raising, so later stages still run and simply lay out nothing.
    """
    problems = input_problems(stair_input)
    if problems:
        for p in problems:
            print(f"[Calc] Invalid input: {p}")
        return StairDerived(stair_input=stair_input, input_errors=tuple(problems))

    derived = StairDerived(stair_input=stair_input)
    pole_r = stair_input.pole_radius
    outer_r = stair_input.outer_radius

    risers, riser_height, capped = solve_risers(stair_input.overall_height)
    derived.number_of_risers = risers
    derived.riser_height = riser_height
    derived.number_of_treads = max(0, risers - 1)
    derived.solver_capped = capped

    derived.tread_angle_degrees, derived.tread_angle_radians = _tread_angle(
        stair_input.total_rotation, derived.number_of_treads)

    derived.clear_width = _clear_width(pole_r, outer_r)
    derived.walkline_radius, derived.tread_depth_at_walkline = _walkline_depth(
        pole_r, outer_r, derived.tread_angle_radians)
    derived.headroom = _headroom(
        derived.tread_angle_degrees, riser_height, derived.number_of_treads, derived.tread_thickness)

    landing_width = outer_r - pole_r
    derived.top_landing_width = landing_width if landing_width > 0 else 0.0

    derived.requires_midlanding = is_required(stair_input.overall_height)
    return derived


def evaluate(config=None):
    """Capture, calculate and validate in one pass.

    Returns (stair_input, derived, issues, compliant).
    """
    stair_input = StairInput.from_config(config or DEFAULT_CONFIG)
    derived = calculate(stair_input)
    issues, compliant = IRCSpiralValidator.check_staircase(derived)
    return stair_input, derived, issues, compliant


def require_valid_input(derived: StairDerived) -> None:
    """Raise StairInputError carrying every input problem recorded on derived."""
    if derived.input_errors:
        raise StairInputError("Invalid stair input: " + "; ".join(derived.input_errors))
