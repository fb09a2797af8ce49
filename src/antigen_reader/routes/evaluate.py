"""Endpoint for antigen test evaluation."""
import threading
from contextlib import nullcontext
from typing import Optional

from fastapi import APIRouter, File, Request, UploadFile
from fastapi.responses import JSONResponse
from starlette.concurrency import run_in_threadpool

from ..config import settings
from ..services import models
from ..services.exceptions import PipelineError
from ..utils.logger import get_logger

router = APIRouter()
logger = get_logger(__name__)

# Held around each pipeline run when the inference runtime is not thread-safe.
_inference_lock = threading.Lock()


def _envelope(message: str, status: int, result: Optional[dict] = None) -> JSONResponse:
    return JSONResponse(
        status_code=status,
        content={"message": message, "status": status, "result": result},
    )


def _run_pipeline(image_bytes: bytes, classifier) -> models.Prediction:
    guard = _inference_lock if settings.serialize_inference else nullcontext()
    with guard:
        return models.predict_image(
            image_bytes,
            classifier,
            settings.positive_threshold,
            reencode=settings.reencode_jpeg,
        )


@router.post("/evaluate")
async def evaluate_image(request: Request, image: Optional[UploadFile] = File(default=None)) -> JSONResponse:
    """Evaluate a photographed antigen test and return the verdict with class confidences."""
    image_bytes = await image.read() if image is not None else b""
    if not image_bytes:
        return _envelope("File missing.", 400)

    classifier = getattr(request.app.state, "classifier", None)
    if classifier is None:
        return _envelope("Model failed load.", 500)

    try:
        prediction = await run_in_threadpool(_run_pipeline, image_bytes, classifier)
    except PipelineError as exc:
        logger.warning(
            "Evaluation failed for {filename}: {kind}: {error}",
            filename=image.filename,
            kind=type(exc).__name__,
            error=str(exc),
        )
        return _envelope("Internal error.", 500)
    except Exception:
        logger.exception("Unexpected failure evaluating {filename}", filename=image.filename)
        return _envelope("Internal error.", 500)

    return _envelope("Successfully evaluated image.", 200, prediction.as_dict())
