"""Spiral Stair layout planner.

Walks the tread sequence once and emits one SectorDescriptor per tread (or the
mid-landing that replaces one), then places the top landing at the rotation
actually accumulated by those sectors.

Angles start at +X and grow counter-clockwise; z is measured up from the lower
finished floor. The first tread's top sits one riser above the floor.
"""
import math

from spiral_model import (
    StairDerived, SectorDescriptor, SectorKind, TopLandingPlacement, StairLayout,
    MIDLANDING_SWEEP_DEGREES, DEGENERATE_SWEEP, TOLERANCE,
)
from midlanding import check_selection


def plan_layout(derived: StairDerived) -> StairLayout:
    """Lay out every sector and the top landing for a calculated stair.

    Raises:
        MidlandingSelectionError: a mid-landing is required but no valid
            tread index has been selected.
    """
    check_selection(derived)

    diagnostics = []
    sectors = []
    pole_r = derived.pole_radius
    outer_r = derived.outer_radius
    midlanding_sweep = math.radians(MIDLANDING_SWEEP_DEGREES)

    angle = 0.0
    z_top = derived.riser_height

    for i in range(derived.number_of_treads):
        is_midlanding = derived.requires_midlanding and derived.midlanding_position_index == i
        if is_midlanding:
            kind = SectorKind.MIDLANDING
            sweep = midlanding_sweep
        else:
            kind = SectorKind.TREAD
            sweep = derived.tread_angle_radians

        if abs(sweep) < DEGENERATE_SWEEP:
            msg = f"Skipping {kind.value.lower()} {i}: sweep angle {sweep:.3e} rad is degenerate"
            print(f"[Layout] {msg}")
            diagnostics.append(msg)
            # Elevation still advances; the skipped step adds no rotation
            z_top += derived.riser_height
            continue

        sectors.append(SectorDescriptor(
            index=i,
            kind=kind,
            start_angle=angle,
            sweep_angle=sweep,
            inner_radius=pole_r,
            outer_radius=outer_r,
            z_top=z_top,
            z_bottom=z_top - derived.tread_thickness,
        ))
        angle += sweep
        z_top += derived.riser_height

    top_landing = _place_top_landing(derived, angle)
    diagnostics.extend(_landing_diagnostics(derived, top_landing))

    print(f"[Layout] {len(sectors)} sectors, top landing at {top_landing.connect_angle_degrees:.2f} degrees")
    return StairLayout(sectors=sectors, top_landing=top_landing, diagnostics=diagnostics)


def _place_top_landing(derived, connect_angle):
    pole_r = derived.pole_radius
    origin = (
        pole_r * math.cos(connect_angle),
        pole_r * math.sin(connect_angle),
        derived.overall_height,
    )
    return TopLandingPlacement(
        length=derived.top_landing_length,
        width=derived.top_landing_width,
        thickness=derived.top_landing_thickness,
        connect_angle=connect_angle,
        origin=origin,
    )


def _landing_diagnostics(derived, top_landing):
    notes = []
    if top_landing.width <= 0:
        notes.append("Top landing width is zero; outside diameter does not exceed the pole")

    if derived.requires_midlanding and derived.midlanding_position_index is not None:
        requested = derived.stair_input.total_rotation
        actual = top_landing.connect_angle_degrees
        if abs(actual - requested) > TOLERANCE:
            notes.append(
                f"Final rotation {actual:.2f} degrees differs from requested total rotation "
                f"{requested:.2f} degrees because the mid-landing sweeps {MIDLANDING_SWEEP_DEGREES:.0f} "
                f"degrees instead of {derived.tread_angle_degrees:.2f}"
            )

    for note in notes:
        print(f"[Layout] {note}")
    return notes


def sector_corners(sector: SectorDescriptor):
    """Plan-view corner points of a sector.

    Returns (inner_start, outer_start, outer_end, inner_end) as (x, y) tuples.
    """
    a0, a1 = sector.start_angle, sector.end_angle
    r0, r1 = sector.inner_radius, sector.outer_radius
    return (
        (r0 * math.cos(a0), r0 * math.sin(a0)),
        (r1 * math.cos(a0), r1 * math.sin(a0)),
        (r1 * math.cos(a1), r1 * math.sin(a1)),
        (r0 * math.cos(a1), r0 * math.sin(a1)),
    )


def top_landing_corners(placement: TopLandingPlacement):
    """Plan-view corners of the top landing after rotation then translation.

    The unrotated rectangle has its inner corner at the origin, length along +X
    and width along +Y.
    """
    c = math.cos(placement.connect_angle)
    s = math.sin(placement.connect_angle)
    ox, oy, _ = placement.origin
    local = [(0.0, 0.0), (placement.length, 0.0),
             (placement.length, placement.width), (0.0, placement.width)]
    return [(ox + x * c - y * s, oy + x * s + y * c) for x, y in local]
