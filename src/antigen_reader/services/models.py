"""Evaluation of normalised images against the antigen test classifier."""
from __future__ import annotations

from dataclasses import asdict, dataclass
from typing import Sequence

import torch

from ..utils.logger import get_logger
from . import preprocess
from .classifier import Classifier
from .exceptions import InferenceError

logger = get_logger(__name__)

# Output index of P(positive); index 0 holds P(negative).
POSITIVE_INDEX = 1
# Changing this moves the reader's sensitivity/specificity trade-off.
POSITIVE_THRESHOLD = 0.95


@dataclass(frozen=True, slots=True)
class Prediction:
    shape: tuple[int, ...]
    data: tuple[float, ...]
    positive: bool

    def as_dict(self) -> dict:
        result = asdict(self)
        result["shape"] = list(self.shape)
        result["data"] = list(self.data)
        return result


def parse_positive(data: Sequence[float], threshold: float = POSITIVE_THRESHOLD) -> bool:
    """Positive only when P(positive) strictly exceeds ``threshold``."""
    return data[POSITIVE_INDEX] > threshold


def evaluate(
    tensor: torch.Tensor,
    classifier: Classifier,
    threshold: float = POSITIVE_THRESHOLD,
) -> Prediction:
    """Run one forward pass and turn the output distribution into a verdict."""
    try:
        raw = classifier(tensor)
        output = torch.as_tensor(raw).detach().cpu()
    except Exception as exc:
        raise InferenceError(f"Classifier invocation failed: {exc}") from exc

    shape = tuple(int(dim) for dim in output.shape)
    data = tuple(float(value) for value in output.flatten().tolist())
    if len(data) <= POSITIVE_INDEX:
        raise InferenceError(
            f"Expected at least {POSITIVE_INDEX + 1} class probabilities, got shape {list(shape)}"
        )

    prediction = Prediction(shape=shape, data=data, positive=parse_positive(data, threshold))
    logger.debug("Evaluated image data={data} positive={positive}", data=data, positive=prediction.positive)
    return prediction


def predict_image(
    image_bytes: bytes,
    classifier: Classifier,
    threshold: float = POSITIVE_THRESHOLD,
    *,
    reencode: bool = True,
) -> Prediction:
    """Normalise ``image_bytes`` and evaluate it in one sequential pass.

    The input tensor lives only for the duration of this call and is released
    whether evaluation succeeds or raises.
    """
    tensor = preprocess.normalize(image_bytes, reencode=reencode)
    try:
        return evaluate(tensor, classifier, threshold)
    finally:
        del tensor
