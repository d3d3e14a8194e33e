"""
Diagnostic charts for a finished pipeline run.
"""

from __future__ import annotations

import sys
from pathlib import Path
from typing import List

import numpy as np


def _maybe_import_matplotlib():
    try:
        import matplotlib

        matplotlib.use("Agg")
        import matplotlib.pyplot as plt
        return plt
    except ImportError as e:
        print(f"[WARN] matplotlib not available: {e}", file=sys.stderr)
        return None


def save_plots(result, out_dir: Path) -> List[Path]:
    """Write PNG charts for ``result`` (a ``PipelineResult``) into ``out_dir``."""
    out_dir = Path(out_dir)
    out_dir.mkdir(parents=True, exist_ok=True)
    plt = _maybe_import_matplotlib()
    if plt is None:
        print("[INFO] Skipping plots; matplotlib not installed.", file=sys.stderr)
        return []

    written: List[Path] = []

    def finish(fname: str) -> None:
        plt.tight_layout()
        path = out_dir / fname
        plt.savefig(path, dpi=160)
        plt.close()
        written.append(path)
        print(f"[OK] Saved plot: {path}")

    fitted = result.regression.fitted
    plt.figure()
    plt.plot(fitted["year"], fitted["observed"], marker="o", label="observed")
    plt.plot(fitted["year"], fitted["fitted"], linestyle="--", label="linear trend")
    plt.title(f"{result.config.flow} value per year")
    plt.xlabel("Year"); plt.ylabel("Million USD")
    plt.legend()
    finish("yearly_totals.png")

    top = result.top_categories
    plt.figure(figsize=(8, 0.45 * len(top) + 1.5))
    plt.barh(top["category"].fillna(top["category_code"])[::-1], top["total_value"][::-1])
    plt.title(f"Top categories by total {result.config.flow.lower()} value")
    plt.xlabel("Million USD")
    finish("top_categories.png")

    percent = result.changes.percent
    clipped = percent.clip(lower=-1.0, upper=1.0).to_numpy(dtype=float)
    plt.figure(figsize=(10, 0.12 * len(percent) + 2))
    image = plt.imshow(np.ma.masked_invalid(clipped), aspect="auto", cmap="RdYlGn", vmin=-1, vmax=1)
    plt.colorbar(image, label="Percent change (clipped to +/-100%)")
    plt.xticks(range(len(percent.columns)), percent.columns, rotation=90)
    plt.yticks([])
    plt.title("Year-over-year percent change by category")
    plt.xlabel("Year"); plt.ylabel("Category")
    finish("percent_change_heatmap.png")

    confusion = result.classification.confusion
    plt.figure()
    plt.imshow(confusion.to_numpy(), cmap="Blues")
    for (i, j), count in np.ndenumerate(confusion.to_numpy()):
        plt.text(j, i, str(count), ha="center", va="center")
    plt.xticks(range(len(confusion.columns)), confusion.columns)
    plt.yticks(range(len(confusion.index)), confusion.index)
    plt.title("Direction classifier confusion matrix")
    plt.xlabel("Predicted"); plt.ylabel("Observed")
    finish("confusion_matrix.png")

    importances = result.classification.feature_importances
    if importances:
        names = list(importances)[:15]
        plt.figure()
        plt.barh(names[::-1], [importances[name] for name in names][::-1])
        plt.title("Feature importances")
        plt.xlabel("Normalised importance")
        finish("feature_importances.png")

    return written
