"""API endpoint tests for the Spiral Stair Studio.

Tests all FastAPI endpoints using the TestClient for synchronous testing.
Validates response codes, content types, data integrity, and error handling.
"""
import sys
import os
import json
import struct
import base64
import zipfile
import io
import pytest
import ezdxf

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from fastapi.testclient import TestClient
from api import app


client = TestClient(app)


# ===========================================================================
# FIXTURES
# ===========================================================================

DEFAULT_STAIR_CONFIG = {
    "center_pole_diameter": 6.0,
    "overall_height": 120.0,
    "outside_diameter": 60.0,
    "total_rotation": 450.0,
    "handedness": "Clockwise",
}

COMPLIANT_STAIR_CONFIG = {**DEFAULT_STAIR_CONFIG, "outside_diameter": 70.0}

TALL_STAIR_CONFIG = {**DEFAULT_STAIR_CONFIG, "overall_height": 160.0, "midlanding_index": 8}


# ===========================================================================
# GET /defaults
# ===========================================================================

class TestDefaults:
    def test_defaults_returns_200(self):
        r = client.get("/defaults")
        assert r.status_code == 200

    def test_defaults_config(self):
        config = client.get("/defaults").json()["config"]
        for key, value in DEFAULT_STAIR_CONFIG.items():
            assert config[key] == value

    def test_defaults_pole_sizes(self):
        sizes = client.get("/defaults").json()["standard_pole_sizes"]
        assert len(sizes) > 0
        assert 6.0 in sizes

    def test_defaults_limits(self):
        limits = client.get("/defaults").json()["limits"]
        assert limits["max_riser_height"] == 9.5
        assert limits["min_clear_width"] == 26.0
        assert limits["max_vertical_rise_no_landing"] == 147.0


# ===========================================================================
# POST /calculate
# ===========================================================================

class TestCalculate:
    def test_default_stair(self):
        r = client.post("/calculate", json=DEFAULT_STAIR_CONFIG)
        assert r.status_code == 200
        data = r.json()
        assert data["derived"]["number_of_risers"] == 14
        assert data["derived"]["number_of_treads"] == 13
        assert data["compliant"] is False
        assert [i["rule"] for i in data["issues"]] == ["ClearWidthTooSmall"]
        assert "Clear Width" in data["suggestions"]

    def test_compliant_stair(self):
        data = client.post("/calculate", json=COMPLIANT_STAIR_CONFIG).json()
        assert data["compliant"] is True
        assert data["issues"] == []
        assert data["suggestions"] == ""

    def test_empty_body_uses_defaults(self):
        data = client.post("/calculate", json={}).json()
        assert data["derived"]["number_of_treads"] == 13

    def test_tall_stair_flags_midlanding(self):
        config = {k: v for k, v in TALL_STAIR_CONFIG.items() if k != "midlanding_index"}
        data = client.post("/calculate", json=config).json()
        assert data["requires_midlanding"] is True
        assert data["issues"][0]["rule"] == "MidlandingRequired"
        assert data["issues"][0]["informational"] is True

    def test_midlanding_index_recorded(self):
        data = client.post("/calculate", json=TALL_STAIR_CONFIG).json()
        assert data["derived"]["midlanding_position_index"] == 8

    def test_bad_midlanding_index_is_422(self):
        config = {**TALL_STAIR_CONFIG, "midlanding_index": 99}
        r = client.post("/calculate", json=config)
        assert r.status_code == 422
        assert "out of range" in r.json()["detail"]

    def test_invalid_dimensions_reported(self):
        config = {**DEFAULT_STAIR_CONFIG, "overall_height": 0.0}
        data = client.post("/calculate", json=config).json()
        assert data["derived"]["number_of_risers"] == 0
        assert len(data["derived"]["input_errors"]) == 1

    def test_wrong_type_rejected(self):
        r = client.post("/calculate", json={"overall_height": "tall"})
        assert r.status_code == 422


# ===========================================================================
# POST /layout
# ===========================================================================

class TestLayout:
    def test_default_layout(self):
        r = client.post("/layout", json=DEFAULT_STAIR_CONFIG)
        assert r.status_code == 200
        layout = r.json()["layout"]
        assert len(layout["sectors"]) == 13
        assert layout["top_landing"]["connect_angle_degrees"] == pytest.approx(450.0)

    def test_missing_midlanding_index_is_422(self):
        config = {k: v for k, v in TALL_STAIR_CONFIG.items() if k != "midlanding_index"}
        r = client.post("/layout", json=config)
        assert r.status_code == 422

    def test_midlanding_sector(self):
        layout = client.post("/layout", json=TALL_STAIR_CONFIG).json()["layout"]
        kinds = [s["kind"] for s in layout["sectors"]]
        assert kinds.count("Midlanding") == 1
        assert layout["sectors"][8]["kind"] == "Midlanding"
        assert layout["sectors"][8]["sweep_angle_degrees"] == pytest.approx(90.0)


# ===========================================================================
# POST /generate
# ===========================================================================

class TestGenerate:
    def test_returns_200(self):
        r = client.post("/generate", json=DEFAULT_STAIR_CONFIG)
        assert r.status_code == 200

    def test_glb_valid_magic(self):
        """Decoded GLB starts with the 'glTF' magic number."""
        r = client.post("/generate", json=DEFAULT_STAIR_CONFIG)
        glb_bytes = base64.b64decode(r.json()["glb"])
        magic = struct.unpack("<I", glb_bytes[:4])[0]
        assert magic == 0x46546C67, f"Invalid GLB magic: {hex(magic)}"
        assert struct.unpack("<I", glb_bytes[8:12])[0] == len(glb_bytes)

    def test_glb_one_mesh_per_part(self):
        """The JSON chunk holds one mesh per manifest part and one material per category."""
        data = client.post("/generate", json=DEFAULT_STAIR_CONFIG).json()
        glb_bytes = base64.b64decode(data["glb"])
        json_length, chunk_type = struct.unpack("<II", glb_bytes[12:20])
        assert chunk_type == 0x4E4F534A
        gltf = json.loads(glb_bytes[20:20 + json_length])
        part_count = sum(len(c["parts"]) for c in data["manifest"]["categories"])
        assert len(gltf["meshes"]) == part_count
        assert len(gltf["nodes"]) == part_count
        assert [m["name"] for m in gltf["materials"]] == [
            "Stair-Pole", "Stair-Treads", "Stair-Landing-Top"]

    def test_manifest_categories(self):
        cats = client.post("/generate", json=DEFAULT_STAIR_CONFIG).json()["manifest"]["categories"]
        names = [c["name"] for c in cats]
        assert names == ["pole", "treads", "top_landing"]
        counts = {c["name"]: len(c["parts"]) for c in cats}
        assert counts == {"pole": 1, "treads": 13, "top_landing": 1}

    def test_manifest_part_structure(self):
        cats = client.post("/generate", json=DEFAULT_STAIR_CONFIG).json()["manifest"]["categories"]
        for cat in cats:
            for part in cat["parts"]:
                assert part["volume_in3"] > 0, f"{part['name']} has volume {part['volume_in3']}"
                assert len(part["bbox"]["min"]) == 3
                assert len(part["bbox"]["max"]) == 3
                assert part["layer"] == cat["layer"]

    def test_mesh_indices_are_contiguous(self):
        cats = client.post("/generate", json=DEFAULT_STAIR_CONFIG).json()["manifest"]["categories"]
        indices = sorted(p["mesh_index"] for c in cats for p in c["parts"])
        assert indices == list(range(len(indices))), f"Non-contiguous mesh indices: {indices}"

    def test_midlanding_category(self):
        data = client.post("/generate", json=TALL_STAIR_CONFIG).json()
        cats = {c["name"]: c for c in data["manifest"]["categories"]}
        assert len(cats["midlanding"]["parts"]) == 1
        assert cats["midlanding"]["parts"][0]["object_type"] == "MidLanding"
        assert any("differs from requested" in d for d in data["diagnostics"])

    def test_missing_midlanding_is_422(self):
        config = {k: v for k, v in TALL_STAIR_CONFIG.items() if k != "midlanding_index"}
        r = client.post("/generate", json=config)
        assert r.status_code == 422

    @pytest.mark.parametrize("overrides", [
        {"overall_height": 0.0},
        {"outside_diameter": 5.0},
        {"center_pole_diameter": -2.0},
    ])
    def test_invalid_input_is_422(self, overrides):
        """Every kind of invalid input is a client error listing the problems."""
        r = client.post("/generate", json={**DEFAULT_STAIR_CONFIG, **overrides})
        assert r.status_code == 422
        assert r.json()["detail"].startswith("Invalid stair input:")

    def test_invalid_input_layout_degrades(self):
        r = client.post("/layout", json={**DEFAULT_STAIR_CONFIG, "outside_diameter": 5.0})
        assert r.status_code == 200
        assert r.json()["layout"]["sectors"] == []


# ===========================================================================
# EXPORTS
# ===========================================================================

class TestExportDxf:
    def test_returns_dxf(self):
        r = client.post("/export/dxf", json=DEFAULT_STAIR_CONFIG)
        assert r.status_code == 200
        assert "attachment" in r.headers["content-disposition"]
        doc = ezdxf.read(io.StringIO(r.text))
        msp = doc.modelspace()
        assert len(msp.query('CIRCLE[layer=="Stair-Pole"]')) == 1
        assert len(msp.query('ARC[layer=="Stair-Treads"]')) == 26

    def test_missing_midlanding_is_422(self):
        config = {k: v for k, v in TALL_STAIR_CONFIG.items() if k != "midlanding_index"}
        assert client.post("/export/dxf", json=config).status_code == 422


class TestExportAutocad:
    def test_zip_contents(self):
        r = client.post("/export/autocad", json=TALL_STAIR_CONFIG)
        assert r.status_code == 200
        with zipfile.ZipFile(io.BytesIO(r.content)) as zf:
            names = set(zf.namelist())
            assert {"pole.step", "treads.step", "midlanding.step", "top_landing.step",
                    "manifest.json", "import_spiral_stair.lsp"} <= names
            manifest = json.loads(zf.read("manifest.json"))
            script = zf.read("import_spiral_stair.lsp").decode("utf-8")
        assert manifest["layers"]["midlanding"] == "Stair-Landing-Mid"
        assert len(manifest["parts"]["treads"]) == 16
        assert "Stair-Treads" in script
        assert "C:IMPORT-SPIRAL-STAIR" in script

    def test_invalid_input_is_422(self):
        r = client.post("/export/autocad", json={**DEFAULT_STAIR_CONFIG, "overall_height": 0.0})
        assert r.status_code == 422
        assert "Overall height must be positive" in r.json()["detail"]

    def test_script_imports_every_exported_step(self):
        r = client.post("/export/autocad", json=DEFAULT_STAIR_CONFIG)
        with zipfile.ZipFile(io.BytesIO(r.content)) as zf:
            script = zf.read("import_spiral_stair.lsp").decode("utf-8")
            steps = [n for n in zf.namelist() if n.endswith(".step")]
        for name in steps:
            assert f'(spiral:import-step "{name}"' in script
        assert script.count("(") == script.count(")")

    def test_no_midlanding_file_when_not_needed(self):
        r = client.post("/export/autocad", json=DEFAULT_STAIR_CONFIG)
        with zipfile.ZipFile(io.BytesIO(r.content)) as zf:
            assert "midlanding.step" not in zf.namelist()


# ===========================================================================
# REPORTS
# ===========================================================================

class TestReports:
    def test_csv(self):
        r = client.post("/report/csv", json=DEFAULT_STAIR_CONFIG)
        assert r.status_code == 200
        assert "text/csv" in r.headers["content-type"]
        lines = r.text.splitlines()
        assert lines[0] == "Parameter,Value,Units"
        assert "Code Compliant,No," in r.text

    def test_text(self):
        r = client.post("/report/text", json=TALL_STAIR_CONFIG)
        assert r.status_code == 200
        assert "Midlanding Position: Replaces Tread #9" in r.text
        assert "Top Landing Connect Angle" in r.text
