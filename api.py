"""FastAPI backend for the Spiral Stair Studio.
Runs the calculation, compliance and layout engine, builds the solids with
build123d and serves self-contained GLB files, plan DXFs, STEP bundles and reports.
"""
import os
import io
import json
import struct
import base64
import itertools
import tempfile
import traceback
import zipfile
from typing import Optional
from fastapi import FastAPI, HTTPException
from fastapi.responses import Response, JSONResponse, StreamingResponse
from pydantic import BaseModel
from build123d import export_gltf, export_step, Compound

from spiral_model import (
    DEFAULT_CONFIG, STANDARD_POLE_SIZES, LAYERS, CATEGORY_ORDER,
    MAX_RISER_HEIGHT, MIN_RISER_HEIGHT, MIN_CLEAR_WIDTH, MIN_TREAD_DEPTH_WALKLINE,
    MIN_HEADROOM, MAX_VERTICAL_RISE_NO_LANDING,
)
from spiral_calc import evaluate, require_valid_input, StairInputError
from spiral_layout import plan_layout
from midlanding import select_midlanding, MidlandingSelectionError
from compliance.irc_spiral import IRCSpiralValidator
from spiral_geometry import build_stair_elements
from plan_export import plan_dxf_text
from report import format_report_text, generate_csv

app = FastAPI()

CATEGORY_STYLE = {
    "pole":        {"color": [0.35, 0.35, 0.38], "opacity": 1.0},
    "treads":      {"color": [0.72, 0.52, 0.30], "opacity": 1.0},
    "midlanding":  {"color": [0.55, 0.38, 0.20], "opacity": 1.0},
    "top_landing": {"color": [0.78, 0.60, 0.38], "opacity": 0.8},
}

# AutoCAD colour index per layer for the import script
ACAD_COLORS = {"pole": 8, "treads": 32, "midlanding": 3, "top_landing": 5}

# Binary glTF container constants
GLB_MAGIC = b"glTF"
GLB_VERSION = 2
CHUNK_JSON = 0x4E4F534A
CHUNK_BIN = 0x004E4942

# Request errors the client can fix: reported as 422
CLIENT_ERRORS = (MidlandingSelectionError, StairInputError)


class SpiralStairConfig(BaseModel):
    center_pole_diameter: float = DEFAULT_CONFIG["center_pole_diameter"]
    overall_height: float = DEFAULT_CONFIG["overall_height"]
    outside_diameter: float = DEFAULT_CONFIG["outside_diameter"]
    total_rotation: float = DEFAULT_CONFIG["total_rotation"]
    handedness: str = DEFAULT_CONFIG["handedness"]
    midlanding_index: Optional[int] = None


def _evaluate(config: SpiralStairConfig):
    """Calculate and validate; apply the mid-landing selection when one is given."""
    config_dict = config.model_dump()
    midlanding_index = config_dict.pop("midlanding_index")
    stair_input, derived, issues, compliant = evaluate(config_dict)
    if midlanding_index is not None:
        derived = select_midlanding(derived, midlanding_index)
    return derived, issues, compliant


def _plan(config: SpiralStairConfig):
    derived, issues, compliant = _evaluate(config)
    layout = plan_layout(derived)
    return derived, issues, compliant, layout


def _issues_json(issues):
    return [{"rule": i.rule.value, "message": i.message, "informational": i.informational}
            for i in issues]


@app.get("/defaults")
async def get_defaults():
    return {
        "config": DEFAULT_CONFIG,
        "standard_pole_sizes": STANDARD_POLE_SIZES,
        "limits": {
            "max_riser_height": MAX_RISER_HEIGHT,
            "min_riser_height": MIN_RISER_HEIGHT,
            "min_clear_width": MIN_CLEAR_WIDTH,
            "min_tread_depth_walkline": MIN_TREAD_DEPTH_WALKLINE,
            "min_headroom": MIN_HEADROOM,
            "max_vertical_rise_no_landing": MAX_VERTICAL_RISE_NO_LANDING,
        },
    }


@app.post("/calculate")
async def calculate_stair(config: SpiralStairConfig):
    """Derived dimensions, compliance issues and remediation hints."""
    try:
        derived, issues, compliant = _evaluate(config)
        return {
            "derived": derived.as_dict(),
            "issues": _issues_json(issues),
            "compliant": compliant,
            "requires_midlanding": derived.requires_midlanding,
            "suggestions": IRCSpiralValidator.generate_suggestions(issues),
        }
    except CLIENT_ERRORS as e:
        raise HTTPException(status_code=422, detail=str(e))
    except Exception as e:
        traceback.print_exc()
        raise HTTPException(status_code=500, detail=str(e))


@app.post("/layout")
async def layout_stair(config: SpiralStairConfig):
    """Sector descriptors and top landing placement."""
    try:
        derived, issues, compliant, layout = _plan(config)
        return {
            "derived": derived.as_dict(),
            "compliant": compliant,
            "layout": layout.as_dict(),
        }
    except CLIENT_ERRORS as e:
        raise HTTPException(status_code=422, detail=str(e))
    except Exception as e:
        traceback.print_exc()
        raise HTTPException(status_code=500, detail=str(e))


def _padded(data, fill):
    return data + fill * (-len(data) % 4)


def _category_material(cat_name):
    style = CATEGORY_STYLE[cat_name]
    material = {
        "name": LAYERS[cat_name],
        "pbrMetallicRoughness": {
            "baseColorFactor": style["color"] + [style["opacity"]],
            "metallicFactor": 0.6 if cat_name == "pole" else 0.0,
            "roughnessFactor": 0.4 if cat_name == "pole" else 0.8,
        },
    }
    if style["opacity"] < 1.0:
        material["alphaMode"] = "BLEND"
    return material


def _split_mesh_by_part(gltf_json, part_categories, part_face_counts):
    """Give every part its own mesh and node, coloured by its category.

    The exported Compound arrives as one mesh whose primitives follow the
    parts' faces in export order.
    """
    meshes = gltf_json.get("meshes")
    if not meshes or not part_categories:
        return

    categories = list(dict.fromkeys(part_categories))
    gltf_json["materials"] = [_category_material(c) for c in categories]

    primitives = meshes[0].get("primitives", [])
    ends = list(itertools.accumulate(part_face_counts))
    starts = [0] + ends[:-1]
    part_meshes = []
    for part_idx, (cat_name, start, end) in enumerate(zip(part_categories, starts, ends)):
        material = categories.index(cat_name)
        part_meshes.append({
            "name": f"{cat_name}_{part_idx}",
            "primitives": [dict(p, material=material) for p in primitives[start:end]],
        })

    gltf_json["meshes"] = part_meshes
    gltf_json["nodes"] = [{"name": m["name"], "mesh": i} for i, m in enumerate(part_meshes)]
    for scene in gltf_json.get("scenes", [])[:1]:
        scene["nodes"] = list(range(len(part_meshes)))


def pack_glb(gltf_path, part_categories=None, part_face_counts=None):
    """Bundle an exported .gltf and its external buffer into one GLB blob."""
    with open(gltf_path) as f:
        gltf_json = json.load(f)

    binary = b""
    buffers = gltf_json.get("buffers", [])
    if buffers and buffers[0].get("uri"):
        bin_path = os.path.join(os.path.dirname(gltf_path), buffers[0].pop("uri"))
        with open(bin_path, "rb") as f:
            binary = f.read()
        buffers[0]["byteLength"] = len(binary)

    if part_categories and part_face_counts:
        _split_mesh_by_part(gltf_json, part_categories, part_face_counts)

    chunks = [(CHUNK_JSON, _padded(json.dumps(gltf_json, separators=(",", ":")).encode("utf-8"), b" "))]
    if binary:
        chunks.append((CHUNK_BIN, _padded(binary, b"\x00")))

    body = b"".join(struct.pack("<II", len(data), kind) + data for kind, data in chunks)
    return struct.pack("<4sII", GLB_MAGIC, GLB_VERSION, 12 + len(body)) + body


def _part_entry(cat_name, i, part, meta, mesh_index):
    bbox = part.bounding_box()
    return {
        "name": f"{cat_name}_{i + 1}",
        "mesh_index": mesh_index,
        "volume_in3": round(part.volume, 3),
        "bbox": {
            "min": [round(v, 3) for v in (bbox.min.X, bbox.min.Y, bbox.min.Z)],
            "max": [round(v, 3) for v in (bbox.max.X, bbox.max.Y, bbox.max.Z)],
        },
        **meta,
    }


@app.post("/generate")
async def generate_stair(config: SpiralStairConfig):
    try:
        derived, issues, compliant, layout = _plan(config)
        require_valid_input(derived)

        print(f"[API] Building spiral stair: {derived.number_of_treads} treads, "
              f"{len(layout.sectors)} sectors")
        elements, metadata = build_stair_elements(derived, layout)

        all_parts = []
        part_categories = []
        manifest_categories = []
        for cat_name in CATEGORY_ORDER:
            parts = elements[cat_name]
            if not parts:
                continue
            entries = [
                _part_entry(cat_name, i, part, meta, len(all_parts) + i)
                for i, (part, meta) in enumerate(zip(parts, metadata[cat_name]))
            ]
            all_parts.extend(parts)
            part_categories.extend([cat_name] * len(parts))
            manifest_categories.append({
                "name": cat_name,
                "layer": LAYERS[cat_name],
                "color": CATEGORY_STYLE[cat_name]["color"],
                "opacity": CATEGORY_STYLE[cat_name]["opacity"],
                "parts": entries,
            })

        with tempfile.TemporaryDirectory() as tmp_dir:
            gltf_path = os.path.join(tmp_dir, "spiral_stair.gltf")
            export_gltf(Compound(all_parts), gltf_path)
            glb_bytes = pack_glb(gltf_path, part_categories, [len(p.faces()) for p in all_parts])

        return JSONResponse({
            "glb": base64.b64encode(glb_bytes).decode("ascii"),
            "manifest": {"categories": manifest_categories},
            "styles": CATEGORY_STYLE,
            "compliant": compliant,
            "issues": _issues_json(issues),
            "diagnostics": layout.diagnostics,
        })

    except CLIENT_ERRORS as e:
        raise HTTPException(status_code=422, detail=str(e))
    except Exception as e:
        traceback.print_exc()
        raise HTTPException(status_code=500, detail=str(e))


@app.post("/export/dxf")
async def export_plan_dxf(config: SpiralStairConfig):
    """Plan-view DXF with one layer per stair component."""
    try:
        derived, issues, compliant, layout = _plan(config)
        return Response(
            content=plan_dxf_text(derived, layout),
            media_type="application/dxf",
            headers={"Content-Disposition": "attachment; filename=spiral_stair_plan.dxf"},
        )
    except CLIENT_ERRORS as e:
        raise HTTPException(status_code=422, detail=str(e))
    except Exception as e:
        print(f"[API] DXF Export Error: {e}")
        raise HTTPException(status_code=500, detail=str(e))


def _import_script(categories):
    """AutoLISP command that imports each category's STEP file onto its stair layer."""
    calls = "\n".join(
        f'  (spiral:import-step "{cat}.step" "{LAYERS[cat]}" {ACAD_COLORS[cat]})'
        for cat in categories
    )
    return f""";; import_spiral_stair.lsp - generated by Spiral Stair Studio
;; APPLOAD this file from the unzipped folder, then run IMPORT-SPIRAL-STAIR.

(defun spiral:entities-after (marker / ent found)
  (setq ent (if marker (entnext marker) (entnext)))
  (while ent
    (setq found (cons ent found)
          ent (entnext ent))
  )
  found
)

(defun spiral:import-step (name layer color / file marker)
  (setq file (strcat (getvar "DWGPREFIX") name))
  (cond
    ((not (findfile file))
     (princ (strcat "\\nMissing " file)))
    (t
     (command "_.-LAYER" "_Make" layer "_Color" color layer "")
     (setq marker (entlast))
     (command "_.-IMPORT" file)
     (foreach ent (spiral:entities-after marker)
       (command "_.CHPROP" ent "" "_LA" layer "_C" "BYLAYER" ""))
    )
  )
)

(defun C:IMPORT-SPIRAL-STAIR ()
  (setvar "CMDECHO" 0)
{calls}
  (setvar "CMDECHO" 1)
  (princ "\\nSpiral stair import complete.")
  (princ)
)
"""


def _step_bytes(parts):
    with tempfile.TemporaryDirectory() as tmp_dir:
        step_path = os.path.join(tmp_dir, "part.step")
        export_step(Compound(parts), step_path)
        with open(step_path, "rb") as f:
            return f.read()


@app.post("/export/autocad")
async def export_autocad_bundle(config: SpiralStairConfig):
    """ZIP bundle with per-category STEP files, a manifest and an AutoLISP import script."""
    try:
        derived, issues, compliant, layout = _plan(config)
        require_valid_input(derived)
        elements, metadata = build_stair_elements(derived, layout)
        exported = [cat for cat in CATEGORY_ORDER if elements[cat]]

        zip_buffer = io.BytesIO()
        with zipfile.ZipFile(zip_buffer, "w", zipfile.ZIP_DEFLATED) as zip_file:
            for cat_name in exported:
                zip_file.writestr(f"{cat_name}.step", _step_bytes(elements[cat_name]))

            manifest = {
                "categories": exported,
                "layers": {cat: LAYERS[cat] for cat in exported},
                "parts": {cat: metadata[cat] for cat in exported},
                "config": config.model_dump(),
                "derived": derived.as_dict(),
                "compliant": compliant,
            }
            zip_file.writestr("manifest.json", json.dumps(manifest, indent=2))
            zip_file.writestr("import_spiral_stair.lsp", _import_script(exported))

        zip_buffer.seek(0)
        return StreamingResponse(
            zip_buffer,
            media_type="application/x-zip-compressed",
            headers={"Content-Disposition": "attachment; filename=spiral_stair_autocad.zip"},
        )

    except CLIENT_ERRORS as e:
        raise HTTPException(status_code=422, detail=str(e))
    except Exception as e:
        print(f"[API] Export Error: {e}")
        raise HTTPException(status_code=500, detail=str(e))


@app.post("/report/csv")
async def report_csv(config: SpiralStairConfig):
    try:
        derived, issues, compliant = _evaluate(config)
        return Response(
            content=generate_csv(derived, issues),
            media_type="text/csv",
            headers={"Content-Disposition": "attachment; filename=spiral_stair_report.csv"},
        )
    except CLIENT_ERRORS as e:
        raise HTTPException(status_code=422, detail=str(e))
    except Exception as e:
        traceback.print_exc()
        raise HTTPException(status_code=500, detail=str(e))


@app.post("/report/text")
async def report_text(config: SpiralStairConfig):
    try:
        derived, issues, compliant, layout = _plan(config)
        return Response(content=format_report_text(derived, issues, layout), media_type="text/plain")
    except CLIENT_ERRORS as e:
        raise HTTPException(status_code=422, detail=str(e))
    except Exception as e:
        traceback.print_exc()
        raise HTTPException(status_code=500, detail=str(e))


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
