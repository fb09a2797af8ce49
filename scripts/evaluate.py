"""Evaluate the antigen reader on a labelled folder of test photographs."""
from __future__ import annotations

import argparse
import json
from pathlib import Path
from typing import Iterator, List, Tuple

from antigen_reader.config import settings
from antigen_reader.services.classifier import load_classifier
from antigen_reader.services.exceptions import PipelineError
from antigen_reader.services.models import predict_image
from antigen_reader.utils import logger
from antigen_reader.utils.metrics import screening_report

LABEL_DIRS = {"negative": False, "positive": True}


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Score the antigen reader against labelled images")
    parser.add_argument("--data-dir", default="data/eval", help="Directory with positive/ and negative/ sub-folders")
    parser.add_argument("--model", default=settings.classifier_path, help="TorchScript model to evaluate")
    parser.add_argument("--threshold", type=float, default=settings.positive_threshold, help="Positive-class probability threshold")
    parser.add_argument("--no-reencode", action="store_true", help="Skip the JPEG round trip during normalisation")
    parser.add_argument("--output", default="reports/metrics.json", help="Where to write the metrics report")
    return parser.parse_args()


def iter_labelled_images(data_dir: Path) -> Iterator[Tuple[Path, bool]]:
    for name, label in LABEL_DIRS.items():
        folder = data_dir / name
        if not folder.is_dir():
            continue
        for path in sorted(folder.iterdir()):
            if path.is_file():
                yield path, label


def collect_verdicts(
    data_dir: Path, classifier, threshold: float, reencode: bool = True
) -> Tuple[List[bool], List[bool]]:
    """Return ground-truth labels and verdicts, skipping images the pipeline rejects."""
    log = logger.get_logger(__name__)
    y_true: List[bool] = []
    y_pred: List[bool] = []
    for path, label in iter_labelled_images(data_dir):
        try:
            prediction = predict_image(path.read_bytes(), classifier, threshold, reencode=reencode)
        except PipelineError as exc:
            log.warning("Skipping {path}: {error}", path=str(path), error=str(exc))
            continue
        y_true.append(label)
        y_pred.append(prediction.positive)
    return y_true, y_pred


def main() -> None:
    args = parse_args()
    log = logger.get_logger(__name__)
    classifier = load_classifier(args.model)

    y_true, y_pred = collect_verdicts(
        Path(args.data_dir), classifier, args.threshold, reencode=not args.no_reencode
    )

    if not y_true:
        raise SystemExit(f"No readable images found under {args.data_dir}")

    metrics = screening_report(y_true, y_pred)
    output_path = Path(args.output)
    output_path.parent.mkdir(parents=True, exist_ok=True)
    output_path.write_text(json.dumps(metrics, indent=2))
    log.info("Evaluated {count} images: {metrics}", count=len(y_true), metrics=metrics)


if __name__ == "__main__":
    main()
