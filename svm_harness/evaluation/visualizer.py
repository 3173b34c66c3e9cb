"""
Grid search visualization.

Renders the cross-validation accuracy of every (C, gamma) grid point as a
heatmap so the promising region of the search space is easy to spot.
"""

import logging
from pathlib import Path
from typing import Optional

import matplotlib
matplotlib.use('Agg')
import matplotlib.pyplot as plt
import numpy as np

logger = logging.getLogger(__name__)


def plot_grid_heatmap(result, output_path: str, title: str = 'Cross-validation accuracy (%)') -> Optional[Path]:
    """
    Plot grid search accuracies as a C x gamma heatmap.

    Only the points of the first (coarse) grid level are drawn; refined
    levels are listed in the JSON report instead.

    Args:
        result: GridSearchResult to plot
        output_path: Destination PNG file
        title: Figure title

    Returns:
        Path to the saved figure, or None if plotting failed
    """
    points = result.all_results[:result.grid_size]
    c_values = sorted({p.C for p in points})
    gamma_values = sorted({p.gamma for p in points})

    accuracy = np.full((len(c_values), len(gamma_values)), np.nan)
    for point in points:
        accuracy[c_values.index(point.C), gamma_values.index(point.gamma)] = point.accuracy_pct

    output_path = Path(output_path)
    try:
        output_path.parent.mkdir(parents=True, exist_ok=True)

        fig, ax = plt.subplots(figsize=(1.2 * len(gamma_values) + 3, 0.8 * len(c_values) + 2))
        image = ax.imshow(accuracy, cmap='viridis', origin='lower', aspect='auto')
        fig.colorbar(image, ax=ax, label='Accuracy (%)')

        for i in range(len(c_values)):
            for j in range(len(gamma_values)):
                ax.text(j, i, f"{accuracy[i, j]:.1f}", ha='center', va='center', color='white', fontsize=8)

        ax.set_xticks(range(len(gamma_values)))
        ax.set_xticklabels([f"{g:.3g}" for g in gamma_values], rotation=45)
        ax.set_yticks(range(len(c_values)))
        ax.set_yticklabels([f"{c:.3g}" for c in c_values])
        ax.set_xlabel('gamma')
        ax.set_ylabel('C')
        ax.set_title(title)

        plt.tight_layout()
        plt.savefig(output_path, dpi=150)
        plt.close(fig)
    except Exception as e:
        logger.error(f"Failed to create grid search heatmap: {e}")
        plt.close('all')
        return None

    logger.info(f"Saved grid search heatmap to {output_path}")
    return output_path
