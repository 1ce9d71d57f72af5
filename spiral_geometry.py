"""Spiral Stair solid builder.

Turns a planned layout into build123d solids:
  - Center pole (cylinder from the lower floor to the overall height)
  - Treads and the optional mid-landing (revolved annular sectors)
  - Top landing (rectangular slab, rotated then translated onto the pole face)

Usage:
    python spiral_geometry.py [--pole 6] [--height 120] [--outside 60] [--rotation 450] [--midlanding-index 8]
"""
import argparse
from build123d import *

from spiral_model import DEFAULT_CONFIG, SectorKind, LAYERS, CATEGORY_ORDER
from spiral_calc import evaluate
from spiral_layout import plan_layout
from midlanding import select_midlanding


def build_pole(pole_radius, height):
    if pole_radius <= 0 or height <= 0:
        raise ValueError(f"Cannot build pole with radius {pole_radius} and height {height}")
    return Cylinder(radius=pole_radius, height=height,
                    align=(Align.CENTER, Align.CENTER, Align.MIN))


def build_sector(sector):
    """Solid for one SectorDescriptor, or None when it cannot be built."""
    sweep = sector.sweep_angle_degrees
    width = sector.outer_radius - sector.inner_radius
    if abs(sweep) >= 360.0 or width <= 0 or sector.thickness <= 0:
        print(f"[Geometry] Skipping {sector.kind.value} {sector.index}: "
              f"sweep={sweep:.2f} deg, width={width:.3f}, thickness={sector.thickness:.3f}")
        return None

    # Revolve counter-clockwise from the lower of the two boundary angles
    start = min(sector.start_angle_degrees, sector.start_angle_degrees + sweep)

    with BuildPart() as bp:
        # Plane.XZ: local x is radius, local y is global Z
        with BuildSketch(Plane.XZ):
            with Locations((sector.inner_radius + width / 2, -sector.thickness / 2)):
                Rectangle(width, sector.thickness)
        revolve(axis=Axis.Z, revolution_arc=abs(sweep))

    part = bp.part.rotate(Axis.Z, start)
    return part.translate((0, 0, sector.z_top))


def build_top_landing(placement):
    if placement.width <= 0 or placement.length <= 0 or placement.thickness <= 0:
        print(f"[Geometry] Skipping top landing: {placement.length} x {placement.width} x {placement.thickness}")
        return None
    # Inner corner at the origin, top face at z=0
    slab = Box(placement.length, placement.width, placement.thickness,
               align=(Align.MIN, Align.MIN, Align.MAX))
    slab = slab.rotate(Axis.Z, placement.connect_angle_degrees)
    return slab.translate(placement.origin)


def build_stair_elements(derived, layout):
    """Build every solid for a planned stair.

    Returns (elements, metadata): both dicts keyed by category, with one
    metadata entry per built part in the same order.
    """
    elements = {cat: [] for cat in CATEGORY_ORDER}
    metadata = {cat: [] for cat in CATEGORY_ORDER}

    if derived.input_errors:
        print(f"[Geometry] Nothing built, invalid input: {'; '.join(derived.input_errors)}")
        return elements, metadata

    pole = build_pole(derived.pole_radius, derived.overall_height)
    elements["pole"].append(pole)
    metadata["pole"].append({"object_type": "Pole", "layer": LAYERS["pole"],
                             "handedness": derived.stair_input.handedness})

    for sector in layout.sectors:
        solid = build_sector(sector)
        if solid is None:
            continue
        cat = "midlanding" if sector.kind == SectorKind.MIDLANDING else "treads"
        elements[cat].append(solid)
        metadata[cat].append({
            "object_type": "MidLanding" if cat == "midlanding" else "Tread",
            "layer": LAYERS[cat],
            "index": sector.index,
            "start_angle": round(sector.start_angle_degrees, 4),
            "sweep_angle": round(sector.sweep_angle_degrees, 4),
            "z_level": round(sector.z_bottom, 4),
        })

    landing = build_top_landing(layout.top_landing)
    if landing is not None:
        elements["top_landing"].append(landing)
        metadata["top_landing"].append({
            "object_type": "TopLanding",
            "layer": LAYERS["top_landing"],
            "connect_angle": round(layout.top_landing.connect_angle_degrees, 4),
            "z_level": round(layout.top_landing.z_bottom, 4),
        })

    built = sum(len(parts) for parts in elements.values())
    print(f"[Geometry] Built {built} solids ({len(elements['treads'])} treads, "
          f"{len(elements['midlanding'])} mid-landing)")
    return elements, metadata


def build_spiral_staircase(config, midlanding_index=None):
    """Full pipeline from a config dict to categorised solids."""
    stair_input, derived, issues, compliant = evaluate(config)
    if not compliant:
        print(f"[Geometry] Building non-compliant stair ({len(issues)} issues)")
    derived = select_midlanding(derived, midlanding_index)
    layout = plan_layout(derived)
    elements, _ = build_stair_elements(derived, layout)
    return elements


if __name__ == "__main__":
    parser = argparse.ArgumentParser()
    parser.add_argument("--pole", type=float, default=DEFAULT_CONFIG["center_pole_diameter"])
    parser.add_argument("--height", type=float, default=DEFAULT_CONFIG["overall_height"])
    parser.add_argument("--outside", type=float, default=DEFAULT_CONFIG["outside_diameter"])
    parser.add_argument("--rotation", type=float, default=DEFAULT_CONFIG["total_rotation"])
    parser.add_argument("--handedness", choices=["Clockwise", "CounterClockwise"],
                        default=DEFAULT_CONFIG["handedness"])
    parser.add_argument("--midlanding-index", type=int, default=None,
                        help="0-based tread index replaced by the mid-landing")
    parser.add_argument("--no-show", action="store_true", help="Skip the OCP viewer")
    args = parser.parse_args()

    config = {
        "center_pole_diameter": args.pole,
        "overall_height": args.height,
        "outside_diameter": args.outside,
        "total_rotation": args.rotation,
        "handedness": args.handedness,
    }

    elements = build_spiral_staircase(config, midlanding_index=args.midlanding_index)
    parts = [p for cat in CATEGORY_ORDER for p in elements[cat]]
    if not parts:
        parser.exit(1, "Nothing to export: check the stair inputs\n")
    stair = Compound(parts)

    bb = stair.bounding_box()
    print(f"BBox: X={bb.min.X:.1f}..{bb.max.X:.1f}, Y={bb.min.Y:.1f}..{bb.max.Y:.1f}, Z={bb.min.Z:.1f}..{bb.max.Z:.1f}")

    export_step(stair, "spiral_stair.step")
    export_stl(stair, "spiral_stair.stl")
    print("Exported: spiral_stair.step, spiral_stair.stl")

    if not args.no_show:
        from ocp_vscode import show, set_port
        set_port(3939)
        show(*parts)
