"""Integration tests for FastAPI endpoints."""
from __future__ import annotations

import pytest
import torch
from fastapi.testclient import TestClient
from PIL import Image

from antigen_reader.config import settings
from antigen_reader.main import app
from antigen_reader.services import models


client = TestClient(app)


class StubClassifier:
    def __init__(self, distribution):
        self.distribution = distribution

    def __call__(self, tensor):
        assert tuple(tensor.shape) == (1, 256, 256, 1)
        return torch.tensor([self.distribution], dtype=torch.float64)


class BrokenClassifier:
    def __call__(self, tensor):
        raise RuntimeError("runtime exploded")


class MeanIntensityReader(torch.nn.Module):
    def forward(self, x: torch.Tensor) -> torch.Tensor:
        p = torch.mean(x, dim=[1, 2, 3]) / 255.0
        return torch.stack([1.0 - p, p], dim=-1)


@pytest.fixture
def use_classifier(monkeypatch):
    def _install(classifier):
        monkeypatch.setattr(app.state, "classifier", classifier, raising=False)

    return _install


def _upload(image_bytes: bytes, name: str = "test.png"):
    return {"image": (name, image_bytes, "image/png")}


def test_root():
    response = client.get("/")
    assert response.status_code == 200
    assert response.json() == {"message": "Server is working."}


def test_healthcheck(use_classifier):
    use_classifier(None)
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json() == {"status": "ok", "model_loaded": False}


def test_missing_file_returns_400(use_classifier):
    use_classifier(StubClassifier([0.5, 0.5]))
    response = client.post("/evaluate")
    assert response.status_code == 400
    assert response.json() == {"message": "File missing.", "status": 400, "result": None}


def test_empty_file_returns_400(use_classifier):
    use_classifier(StubClassifier([0.5, 0.5]))
    response = client.post("/evaluate", files=_upload(b""))
    assert response.status_code == 400
    assert response.json()["result"] is None


def test_model_unavailable_returns_500(use_classifier, png_bytes):
    use_classifier(None)
    response = client.post("/evaluate", files=_upload(png_bytes))
    assert response.status_code == 500
    assert response.json() == {"message": "Model failed load.", "status": 500, "result": None}


def test_successful_evaluation(use_classifier, png_bytes):
    use_classifier(StubClassifier([0.01, 0.99]))
    response = client.post("/evaluate", files=_upload(png_bytes))
    assert response.status_code == 200
    body = response.json()
    assert body["message"] == "Successfully evaluated image."
    assert body["status"] == 200
    assert body["result"]["shape"] == [1, 2]
    assert body["result"]["data"] == pytest.approx([0.01, 0.99])
    assert body["result"]["positive"] is True


def test_negative_at_exact_threshold(use_classifier, png_bytes):
    use_classifier(StubClassifier([0.05, 0.95]))
    response = client.post("/evaluate", files=_upload(png_bytes))
    assert response.status_code == 200
    assert response.json()["result"]["positive"] is False


def test_undecodable_upload_returns_opaque_500(use_classifier):
    use_classifier(StubClassifier([0.5, 0.5]))
    response = client.post("/evaluate", files=_upload(b"plain text, not pixels", "notes.txt"))
    assert response.status_code == 500
    assert response.json() == {"message": "Internal error.", "status": 500, "result": None}


def test_classifier_failure_returns_opaque_500(use_classifier, png_bytes):
    use_classifier(BrokenClassifier())
    response = client.post("/evaluate", files=_upload(png_bytes))
    assert response.status_code == 500
    assert response.json() == {"message": "Internal error.", "status": 500, "result": None}


def test_serialized_inference(use_classifier, monkeypatch, png_bytes):
    monkeypatch.setattr(settings, "serialize_inference", True)
    use_classifier(StubClassifier([0.9, 0.1]))
    response = client.post("/evaluate", files=_upload(png_bytes))
    assert response.status_code == 200
    assert response.json()["result"]["positive"] is False


def test_startup_without_model(monkeypatch, tmp_path, png_bytes):
    monkeypatch.setattr(settings, "classifier_path", str(tmp_path / "missing.pt"))
    with TestClient(app) as started:
        assert started.get("/health").json()["model_loaded"] is False
        response = started.post("/evaluate", files=_upload(png_bytes))
        assert response.json()["message"] == "Model failed load."


def test_startup_loads_model(monkeypatch, tmp_path, encode_image):
    path = tmp_path / "model.pt"
    torch.jit.script(MeanIntensityReader()).save(str(path))
    monkeypatch.setattr(settings, "classifier_path", str(path))
    white = encode_image(Image.new("RGB", (500, 300), color="white"), "JPEG")
    with TestClient(app) as started:
        assert started.get("/health").json()["model_loaded"] is True
        response = started.post("/evaluate", files=_upload(white, "white.jpg"))
        assert response.status_code == 200
        assert response.json()["result"]["positive"] is True


def test_unexpected_failure_returns_opaque_500(use_classifier, monkeypatch, png_bytes):
    def explode(*args, **kwargs):
        raise KeyError("unexpected")

    monkeypatch.setattr(models, "predict_image", explode)
    use_classifier(StubClassifier([0.5, 0.5]))
    response = client.post("/evaluate", files=_upload(png_bytes))
    assert response.status_code == 500
    assert response.headers["content-type"].startswith("application/json")
    assert response.json() == {"message": "Internal error.", "status": 500, "result": None}
