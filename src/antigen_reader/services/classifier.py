"""Classifier capability and its TorchScript-backed implementation."""
from __future__ import annotations

from functools import lru_cache
from pathlib import Path
from typing import Any, Protocol, runtime_checkable

import torch

from ..utils.logger import get_logger
from .exceptions import ModelUnavailable

logger = get_logger(__name__)


@runtime_checkable
class Classifier(Protocol):
    """Anything that maps a ``[1, 256, 256, 1]`` tensor to a class distribution.

    The distribution is read positionally as ``[P(negative), P(positive)]`` and
    may be a tensor, an array or a plain sequence.
    """

    def __call__(self, tensor: torch.Tensor) -> Any:
        ...


@lru_cache(maxsize=1)
def get_device() -> torch.device:
    return torch.device("cuda" if torch.cuda.is_available() else "cpu")


class TorchScriptClassifier:
    def __init__(self, module: torch.jit.ScriptModule, device: torch.device) -> None:
        self.device = device
        self.module = module
        self.module.to(device)
        self.module.eval()

    def __call__(self, tensor: torch.Tensor) -> torch.Tensor:
        with torch.inference_mode():
            output = self.module(tensor.to(self.device, dtype=torch.float32))
        return output.detach().cpu()


def load_classifier(path: str | Path, device: torch.device | None = None) -> TorchScriptClassifier:
    """Load a TorchScript classifier from ``path``.

    Raises:
        ModelUnavailable: the file is missing or is not a loadable TorchScript archive.
    """
    checkpoint = Path(path)
    device = device or get_device()
    if not checkpoint.is_file():
        raise ModelUnavailable(f"Model file not found: {checkpoint}")
    try:
        module = torch.jit.load(str(checkpoint), map_location=device)
    except (RuntimeError, ValueError, OSError) as exc:
        raise ModelUnavailable(f"Failed to load model from {checkpoint}: {exc}") from exc
    logger.info("Loaded classifier from {path} on {device}", path=str(checkpoint), device=str(device))
    return TorchScriptClassifier(module, device)
