"""
test_boq_routes.py — HTTP tests for the CAD-to-BOQ API via FastAPI's TestClient.

Tests cover:
  - /parse and /convert for DWG / DXF uploads (camelCase JSON out)
  - Upload rejection: unsupported format, empty file, size limit
  - Options form field validation
  - /regenerate, CSV / Excel export downloads, including non-ASCII titles
  - /health, /metrics and the request-tracing headers
"""

import json
from urllib.parse import quote

import pytest
from fastapi.testclient import TestClient

from cadboq import config
from cadboq.api.boq_routes import get_pipeline
from cadboq.main import app
from cadboq.services.conversion_pipeline import CADToBOQPipeline

_PREFIX = "/api/v1/cad-boq"


@pytest.fixture
def client(cad_parser, boq_generator, reset_tracker):
    app.dependency_overrides[get_pipeline] = lambda: CADToBOQPipeline(
        parser=cad_parser, generator=boq_generator
    )
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()


def _upload(name, content=b"0\nEOF\n"):
    return {"file": (name, content, "application/octet-stream")}


class TestParseEndpoint:

    def test_dwg(self, client):
        r = client.post(f"{_PREFIX}/parse", files=_upload("piping.dwg"))
        assert r.status_code == 200
        body = r.json()
        assert body["drawingInfo"]["title"] == "piping"
        assert body["totalLength"] == pytest.approx(120.0)
        assert "Steel Pipe DN150" in [m["name"] for m in body["materials"]]

    def test_dxf(self, client, sample_dxf):
        r = client.post(f"{_PREFIX}/parse", files=_upload("site.dxf", sample_dxf.encode()))
        assert r.status_code == 200
        body = r.json()
        assert body["drawingInfo"]["layers"][0] == "STEEL_BEAMS"
        assert body["blocks"][0]["insertPoint"] == {"x": 1.5, "y": 2.5, "z": 0.0}

    def test_unsupported_format(self, client, reset_tracker):
        r = client.post(f"{_PREFIX}/parse", files=_upload("drawing.pdf", b"%PDF-1.7"))
        assert r.status_code == 400
        assert r.json()["detail"] == "Only DWG/DXF files accepted."
        assert reset_tracker.get_metrics()["rejections_by_reason"] == {"unsupported_format": 1}

    def test_empty_file(self, client):
        r = client.post(f"{_PREFIX}/parse", files=_upload("blank.dxf", b""))
        assert r.status_code == 400

    def test_too_large(self, client, monkeypatch):
        monkeypatch.setattr(config, "MAX_UPLOAD_MB", 0.00001)     # ~10 bytes
        r = client.post(f"{_PREFIX}/parse", files=_upload("big.dxf", b"0\n" * 100))
        assert r.status_code == 413


class TestConvertEndpoint:

    def test_default_options(self, client):
        r = client.post(f"{_PREFIX}/convert", files=_upload("frame.dwg"))
        assert r.status_code == 200
        body = r.json()
        assert body["degraded"] is True
        assert body["degradationReason"] == "synthetic_dwg"
        boq = body["boq"]
        assert boq["summary"]["itemCount"] == len(boq["items"])
        assert boq["items"][0]["itemNumber"] == "1.0"
        assert {i["category"] for i in boq["items"]} >= {"Material", "Labor", "Equipment", "Other"}

    def test_options_form_field(self, client):
        options = json.dumps({"includeLabor": False, "includeEquipment": False, "includeOverhead": False})
        r = client.post(f"{_PREFIX}/convert", files=_upload("frame.dwg"), data={"options": options})
        assert r.status_code == 200
        categories = {i["category"] for i in r.json()["boq"]["items"]}
        assert categories == {"Material"}

    def test_malformed_options(self, client):
        r = client.post(f"{_PREFIX}/convert", files=_upload("frame.dwg"), data={"options": "{not json"})
        assert r.status_code == 422

    def test_malformed_dxf_still_converts(self, client):
        r = client.post(f"{_PREFIX}/convert", files=_upload("vessel.dxf", b"junk\njunk\n"))
        assert r.status_code == 200
        assert r.json()["degradationReason"] == "parse_error"


class TestRegenerateAndExport:

    def _parsed(self, client):
        return client.post(f"{_PREFIX}/parse", files=_upload("tank.dwg")).json()

    def test_regenerate_with_new_overhead(self, client):
        cad_data = self._parsed(client)
        r = client.post(f"{_PREFIX}/regenerate", json={
            "cadData": cad_data,
            "options": {"overheadPercentage": 10},
        })
        assert r.status_code == 200
        summary = r.json()["summary"]
        direct = summary["materialCost"] + summary["laborCost"] + summary["equipmentCost"]
        assert summary["overheadCost"] == pytest.approx(direct * 0.10)

    def test_regenerate_without_options(self, client):
        r = client.post(f"{_PREFIX}/regenerate", json={"cadData": self._parsed(client)})
        assert r.status_code == 200
        assert r.json()["metadata"]["sourceFile"] == "tank"

    def test_csv_export(self, client):
        boq = client.post(f"{_PREFIX}/regenerate", json={"cadData": self._parsed(client)}).json()
        r = client.post(f"{_PREFIX}/export/csv", params={"title": "Tank"}, json=boq)
        assert r.status_code == 200
        assert r.headers["content-type"].startswith("text/csv")
        assert 'filename="BOQ_Tank_' in r.headers["content-disposition"]
        lines = r.text.splitlines()
        assert lines[0].startswith('"Item No.","Description"')
        assert len(lines) == len(boq["items"]) + 1

    def test_xlsx_export(self, client):
        boq = client.post(f"{_PREFIX}/regenerate", json={"cadData": self._parsed(client)}).json()
        r = client.post(f"{_PREFIX}/export/xlsx", json=boq)
        assert r.status_code == 200
        assert r.content.startswith(b"PK")
        assert 'filename="BOQ_tank_' in r.headers["content-disposition"]

    def _converted(self, client, name):
        r = client.post(f"{_PREFIX}/convert", files=_upload(name))
        assert r.status_code == 200
        return r.json()["boq"]

    def test_csv_export_non_ascii_title(self, client):
        boq = self._converted(client, "管道图.dwg")
        assert boq["metadata"]["sourceFile"] == "管道图"
        r = client.post(f"{_PREFIX}/export/csv", json=boq)
        assert r.status_code == 200
        disposition = r.headers["content-disposition"]
        assert 'filename="BOQ_____' in disposition
        assert f"filename*=UTF-8''{quote('BOQ_管道图_')}" in disposition
        assert disposition.endswith(".csv")

    def test_xlsx_export_non_ascii_title_param(self, client):
        boq = self._converted(client, "tank.dwg")
        r = client.post(f"{_PREFIX}/export/xlsx", params={"title": 'Réservoir "A"'}, json=boq)
        assert r.status_code == 200
        assert r.content.startswith(b"PK")
        disposition = r.headers["content-disposition"]
        assert 'filename="BOQ_R_servoir _A__' in disposition
        encoded = quote('BOQ_Réservoir "A"_')
        assert f"filename*=UTF-8''{encoded}" in disposition

    def test_ascii_title_header_unchanged(self, client):
        boq = self._converted(client, "tank.dwg")
        r = client.post(f"{_PREFIX}/export/csv", json=boq)
        disposition = r.headers["content-disposition"]
        assert disposition.startswith('attachment; filename="BOQ_tank_')
        assert "filename*=UTF-8''BOQ_tank_" in disposition


class TestServiceEndpoints:

    def test_health(self, client):
        r = client.get("/health")
        assert r.status_code == 200
        assert r.json()["status"] == "active"

    def test_metrics_after_conversion(self, client):
        client.post(f"{_PREFIX}/convert", files=_upload("frame.dwg"))
        body = client.get("/metrics").json()
        assert body["conversions_processed"] == 1
        assert body["degraded_by_reason"] == {"synthetic_dwg": 1}
        assert "uptime_seconds" in body

    def test_tracing_headers(self, client):
        r = client.get("/health")
        assert r.headers["x-request-id"]
        assert float(r.headers["x-process-time"]) >= 0

    def test_caller_request_id_echoed(self, client):
        r = client.post(f"{_PREFIX}/parse", files=_upload("a.dwg"), headers={"X-Request-ID": "upload-77"})
        assert r.headers["x-request-id"] == "upload-77"
