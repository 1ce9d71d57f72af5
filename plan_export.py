"""Plan-view DXF of a planned spiral stair.

One closed outline per sector (radial lines plus inner/outer arcs) on the tread
or mid-landing layer, the pole as a circle, the top landing as a rectangle,
and a tread-number label at each sector's walkline midpoint.
"""
import io
import math
import ezdxf
from ezdxf import units

from spiral_model import SectorKind, LAYERS
from spiral_layout import sector_corners, top_landing_corners

LAYER_COLORS = {
    "Stair-Pole": 8,
    "Stair-Treads": 7,
    "Stair-Landing-Mid": 3,
    "Stair-Landing-Top": 5,
    "Stair-Labels": 1,
}


def _add_sector(msp, sector, layer):
    p1, p2, p3, p4 = sector_corners(sector)
    start = math.degrees(min(sector.start_angle, sector.end_angle))
    end = math.degrees(max(sector.start_angle, sector.end_angle))
    attribs = {"layer": layer}
    msp.add_line(p1, p2, dxfattribs=attribs)
    msp.add_arc((0, 0), sector.outer_radius, start, end, dxfattribs=attribs)
    msp.add_line(p3, p4, dxfattribs=attribs)
    msp.add_arc((0, 0), sector.inner_radius, start, end, dxfattribs=attribs)


def build_plan_dxf(derived, layout, text_height=1.5):
    doc = ezdxf.new()
    doc.units = units.IN
    for name, color in LAYER_COLORS.items():
        doc.layers.add(name, color=color)
    msp = doc.modelspace()

    if derived.pole_radius > 0:
        msp.add_circle((0, 0), derived.pole_radius, dxfattribs={"layer": LAYERS["pole"]})

    label_r = derived.walkline_radius if derived.walkline_radius < derived.outer_radius else \
        (derived.pole_radius + derived.outer_radius) / 2
    for sector in layout.sectors:
        cat = "midlanding" if sector.kind == SectorKind.MIDLANDING else "treads"
        _add_sector(msp, sector, LAYERS[cat])

        mid = sector.start_angle + sector.sweep_angle / 2
        label = "ML" if cat == "midlanding" else str(sector.index + 1)
        msp.add_text(label, dxfattribs={
            "layer": "Stair-Labels",
            "height": text_height,
        }).set_placement((label_r * math.cos(mid), label_r * math.sin(mid)))

    landing = layout.top_landing
    if landing.width > 0:
        pts = top_landing_corners(landing)
        msp.add_lwpolyline(pts, close=True, dxfattribs={"layer": LAYERS["top_landing"]})

    return doc


def plan_dxf_text(derived, layout):
    buffer = io.StringIO()
    build_plan_dxf(derived, layout).write(buffer)
    return buffer.getvalue()
