# ---------------------------------------------------------------------------
# segmented_trend.plots — Observed series with fitted and counterfactual trends
# ---------------------------------------------------------------------------
from __future__ import annotations

import logging
from pathlib import Path

import matplotlib.pyplot as plt
import numpy as np
from matplotlib.ticker import StrMethodFormatter

from .analysis import TrendLines, derive_trend_lines
from .config import (
    ANNOTATION_COLOR,
    COUNTERFACTUAL_COLOR,
    CUTOVER_COLOR,
    FITTED_COLOR,
    GAP_COLOR,
    OBSERVED_COLOR,
)
from .narrative import format_pvalue
from .regression import FittedModel
from .series import ObservationSet

logger = logging.getLogger(__name__)

DEFAULT_TITLE = (
    "Time series of the number of episodes of hospitalization in Portugal "
    "from 2010 to 2018"
)


def plot_intervention(
    observations: ObservationSet,
    model: FittedModel,
    trend_lines: TrendLines | None = None,
    path: str | Path | None = None,
    title: str = DEFAULT_TITLE,
    ylabel: str = "Number of episodes",
    ax=None,
):
    """Observed series, cutover marker, fitted and counterfactual trends.

    The shaded band spans the post-intervention periods between the
    fitted values at the last pre-intervention period and the first
    post-intervention period; the red label is the robust p-value of the
    trend-change coefficient.

    Returns the matplotlib ``Figure``.  When *path* is given the figure
    is saved there (and closed, unless the caller supplied *ax*).
    """
    if trend_lines is None:
        trend_lines = derive_trend_lines(observations, model)

    x = np.arange(len(observations))
    labels = list(observations.labels)
    post = trend_lines.post_mask

    own_figure = ax is None
    if own_figure:
        fig, ax = plt.subplots(figsize=(12, 8))
    else:
        fig = ax.figure

    # --- Observed data ---
    ax.scatter(x, trend_lines.observed, s=14, color="black", zorder=4, label="Observed")
    ax.plot(x, trend_lines.observed, color=OBSERVED_COLOR, lw=0.8, zorder=3)

    # --- Trend lines ---
    ax.plot(
        x[post], trend_lines.fitted[post], color=FITTED_COLOR, lw=1.6,
        ls=(0, (7, 3)), label="Fitted trend (post-intervention)",
    )
    ax.plot(
        x[~post], trend_lines.counterfactual[~post], color=COUNTERFACTUAL_COLOR,
        lw=1.6, ls=(0, (7, 3)), label="Baseline trend",
    )
    if post.any():
        tail = np.flatnonzero(post)
        tail = np.concatenate([[tail[0] - 1], tail]) if tail[0] > 0 else tail
        ax.plot(
            x[tail], trend_lines.counterfactual[tail], color=COUNTERFACTUAL_COLOR,
            lw=1.0, ls=":", alpha=0.7, label="Counterfactual trend",
        )

    # --- Cutover marker, gap and p-value ---
    if post.any() and not post.all():
        first = int(post.argmax())
        ax.axvline(first, color=CUTOVER_COLOR, ls=":", lw=1.8, label="Intervention")

        lo, hi = sorted((trend_lines.fitted[first], trend_lines.fitted[first - 1]))
        ax.fill_between(
            [first, x[-1]], lo, hi, color=GAP_COLOR, alpha=0.5, lw=0, zorder=1,
        )
        ax.text(
            min(first + 1, x[-1]),
            (lo + hi) / 2,
            format_pvalue(float(model.p_values[3])),
            color=ANNOTATION_COLOR,
            rotation=-25,
            ha="left",
            va="center",
        )

    # --- Aesthetics ---
    ax.set_xticks(x)
    ax.set_xticklabels(labels, rotation=90, fontsize=9)
    ax.set_xlim(-0.5, x[-1] + 0.5)
    ax.set_ylim(bottom=0)
    ax.yaxis.set_major_formatter(StrMethodFormatter("{x:,.0f}"))
    ax.set_xlabel("Year", fontsize=14)
    ax.set_ylabel(ylabel, fontsize=14)
    ax.set_title(title, fontsize=16)
    ax.grid(True, color="0.9", lw=0.5)
    ax.legend(fontsize=9, loc="upper left")

    if path is not None:
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        fig.tight_layout()
        fig.savefig(path, dpi=300, bbox_inches="tight")
        logger.info("Saved: %s", path)
        if own_figure:
            plt.close(fig)

    return fig
