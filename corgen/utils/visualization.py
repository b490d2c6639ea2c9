"""
Visualization utilities for CorGen.

Plots a target correlation matrix next to the empirical correlation of
generated columns, which makes the copula's attenuation of correlations
between non-normal margins visible.
"""

from typing import List, Optional

import numpy as np
import pandas as pd

__all__ = ["plot_correlation_comparison"]


def plot_correlation_comparison(
    data: pd.DataFrame,
    columns: List[str],
    target: np.ndarray,
    title: Optional[str] = None,
):
    """Draw target and empirical correlation heatmaps side by side.

    Args:
        data: Table containing the generated columns.
        columns: Columns whose empirical Pearson correlation is shown.
        target: Target correlation matrix (``len(columns)`` square).
        title: Optional figure title.

    Returns:
        The matplotlib ``Figure``.

    Raises:
        ImportError: If ``matplotlib`` is not installed.
        ValueError: If *target* does not match the number of columns.
    """
    try:
        import matplotlib.pyplot as plt
    except ImportError:
        raise ImportError("matplotlib required for plotting: pip install matplotlib") from None

    target = np.asarray(target, dtype=np.float64)
    if target.shape != (len(columns), len(columns)):
        raise ValueError(f"Target shape {target.shape} doesn't match {len(columns)} columns")

    empirical = data[columns].astype(float).corr().to_numpy()

    fig, axes = plt.subplots(1, 2, figsize=(11, 5))
    for ax, matrix, label in zip(axes, (target, empirical), ("Target", "Empirical")):
        image = ax.imshow(matrix, vmin=-1, vmax=1, cmap="RdBu_r")
        ax.set_title(label)
        ax.set_xticks(range(len(columns)))
        ax.set_yticks(range(len(columns)))
        ax.set_xticklabels(columns, rotation=45, ha="right")
        ax.set_yticklabels(columns)
        for i in range(len(columns)):
            for j in range(len(columns)):
                ax.text(j, i, f"{matrix[i, j]:.2f}", ha="center", va="center", fontsize=8)

    fig.colorbar(image, ax=axes, shrink=0.8)
    if title:
        fig.suptitle(title)
    return fig
