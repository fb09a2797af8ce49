"""Screening metrics for offline evaluation of the antigen reader."""
from __future__ import annotations

from typing import Dict, Iterable

from sklearn.metrics import accuracy_score, confusion_matrix, f1_score


def screening_report(y_true: Iterable[bool], y_pred: Iterable[bool]) -> Dict[str, float]:
    """Summarise binary verdicts against ground truth.

    Sensitivity is the recall of the positive class, specificity the recall of
    the negative class. Either is reported as 0.0 when its class is absent.
    """
    y_true = [int(bool(value)) for value in y_true]
    y_pred = [int(bool(value)) for value in y_pred]
    if not y_true:
        raise ValueError("Cannot build a screening report from zero samples")
    tn, fp, fn, tp = confusion_matrix(y_true, y_pred, labels=[0, 1]).ravel()
    return {
        "accuracy": float(accuracy_score(y_true, y_pred)),
        "macro_f1": float(f1_score(y_true, y_pred, average="macro", labels=[0, 1], zero_division=0)),
        "sensitivity": float(tp / (tp + fn)) if tp + fn else 0.0,
        "specificity": float(tn / (tn + fp)) if tn + fp else 0.0,
        "true_positive": int(tp),
        "false_positive": int(fp),
        "true_negative": int(tn),
        "false_negative": int(fn),
    }
