"""Static evaluation report served by ``GET /api/metrics``.

The confusion matrix is hand-authored demo data (rows are true labels, columns
predicted labels); per-class precision/recall/F1 and the macro averages are
derived from it on each call.
"""

from typing import Any, Dict, List

from .taxonomy import DEFAULT_TAXONOMY

LABELS: List[str] = list(DEFAULT_TAXONOMY)

CONFUSION_MATRIX: List[List[int]] = [
    [112, 3, 0, 5, 0, 0, 0, 2, 3],  # Groceries
    [2, 138, 0, 3, 0, 1, 0, 0, 6],  # Dining
    [0, 0, 141, 0, 0, 0, 2, 0, 2],  # Fuel
    [4, 2, 0, 126, 0, 3, 0, 0, 5],  # Shopping
    [0, 0, 0, 0, 128, 0, 0, 1, 6],  # Bills
    [0, 1, 0, 2, 0, 139, 1, 0, 2],  # Entertainment
    [0, 0, 3, 0, 0, 2, 117, 0, 8],  # Transport
    [1, 0, 0, 0, 2, 0, 0, 118, 9],  # Healthcare
    [5, 4, 1, 6, 3, 2, 3, 2, 94],  # Other
]

LATENCY_MS = 30
THROUGHPUT_PER_SECOND = 33


def _ratio(num: float, den: float) -> float:
    return num / den if den else 0.0


def per_class_metrics(labels: List[str], matrix: List[List[int]]) -> List[Dict[str, Any]]:
    out = []
    for idx, label in enumerate(labels):
        row = matrix[idx]
        tp = row[idx]
        fn = sum(row) - tp
        fp = sum(r[idx] for r in matrix) - tp
        precision = _ratio(tp, tp + fp)
        recall = _ratio(tp, tp + fn)
        f1 = _ratio(2 * precision * recall, precision + recall)
        out.append(
            {
                "category": label,
                "precision": round(precision, 3),
                "recall": round(recall, 3),
                "f1": round(f1, 3),
                "support": sum(row),
            }
        )
    return out


def build_metrics_report(feedback_count: int) -> Dict[str, Any]:
    per_class = per_class_metrics(LABELS, CONFUSION_MATRIX)
    n = len(LABELS)
    total = sum(sum(row) for row in CONFUSION_MATRIX)
    correct = sum(CONFUSION_MATRIX[i][i] for i in range(n))
    return {
        "macro_f1": round(sum(m["f1"] for m in per_class) / n, 3),
        "macro_precision": round(sum(m["precision"] for m in per_class) / n, 3),
        "macro_recall": round(sum(m["recall"] for m in per_class) / n, 3),
        "accuracy": round(_ratio(correct, total), 3),
        "samples_processed": total,
        "feedback_count": feedback_count,
        "per_class_f1": {m["category"]: m["f1"] for m in per_class},
        "per_class_metrics": per_class,
        "confusion_matrix": {"labels": LABELS, "matrix": CONFUSION_MATRIX},
        "latency_ms": LATENCY_MS,
        "throughput_per_second": THROUGHPUT_PER_SECOND,
    }
