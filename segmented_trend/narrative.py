"""
segmented_trend.narrative
~~~~~~~~~~~~~~~~~~~~~~~~~
Turn a fitted segmented regression into printable tables and a
plain-English description of the intervention effect.

Two calling paths are supported for the narrative:

  Path 1 – precomputed:
      get_intervention_narrative(model=model, trend_lines=lines,
                                 metric="number of episodes")

  Path 2 – raw data (fitting happens internally):
      get_intervention_narrative(observations=obs, metric="number of episodes")
"""

from __future__ import annotations

import math
from typing import Optional

from .config import SIGNIFICANCE_LEVEL

# ------------------------------------------------------------------
# Constants
# ------------------------------------------------------------------

_MILLNAMES = ["", " K", " M", " B", " T"]

_SIGNIF_CODES = [(0.001, "***"), (0.01, "**"), (0.05, "*"), (0.1, ".")]

_RULE = "-" * 72


# ------------------------------------------------------------------
# Formatting helpers
# ------------------------------------------------------------------


def millify(n: float) -> str:
    """Format a large number into a human-readable string with suffix.

    Examples
    --------
    >>> millify(1_500_000)
    '1.50 M'
    >>> millify(750)
    '750.00'
    """
    n = float(n)
    idx = max(
        0,
        min(
            len(_MILLNAMES) - 1,
            int(math.floor(0 if n == 0 else math.log10(abs(n)) / 3)),
        ),
    )
    return f"{n / 10 ** (3 * idx):.2f}{_MILLNAMES[idx]}"


def format_pvalue(p: float, digits: int = 3) -> str:
    """Fixed-notation p-value with a floor at ``10**-digits``.

    Examples
    --------
    >>> format_pvalue(0.04567)
    '0.046'
    >>> format_pvalue(1e-9)
    '< 0.001'
    """
    if math.isnan(p):
        return "NA"
    floor = 10.0**-digits
    if p < floor:
        return f"< {floor:.{digits}f}"
    return f"{p:.{digits}f}"


def significance_stars(p: float) -> str:
    for cutoff, code in _SIGNIF_CODES:
        if p < cutoff:
            return code
    return ""


def _coefficient_rows(rows: list[dict]) -> list[str]:
    lines = [
        f"{'':<14}{'Estimate':>12}{'Std. Error':>12}{'t value':>10}{'Pr(>|t|)':>11}"
    ]
    for row in rows:
        lines.append(
            f"{row['term']:<14}"
            f"{row['estimate']:>12.3f}"
            f"{row['std_error']:>12.3f}"
            f"{row['t_value']:>10.3f}"
            f"{format_pvalue(row['p_value']):>11} "
            f"{significance_stars(row['p_value'])}"
        )
    lines.append("---")
    lines.append("Signif. codes:  0 '***' 0.001 '**' 0.01 '*' 0.05 '.' 0.1 ' ' 1")
    return lines


# ------------------------------------------------------------------
# Tables
# ------------------------------------------------------------------


def format_model_summary(model) -> str:
    """Prais-Winsten model summary: coefficients with classical errors,
    rho, iteration count and fit statistics."""
    status = "converged" if model.converged else "did NOT converge"
    lines = [
        _RULE,
        "Prais-Winsten estimation (AR(1) errors)",
        _RULE,
        "Coefficients:",
        *_coefficient_rows(model.summary_table()),
        "",
        f"Residual standard error: {model.sigma:.3f} on {model.df_resid} degrees of freedom",
        f"Multiple R-squared: {model.r_squared:.4f},  Adjusted R-squared: {model.adj_r_squared:.4f}",
        "",
        f"AR(1) coefficient rho: {model.rho:.4f}  ({status} after {model.iterations} iteration(s))",
        f"Durbin-Watson statistic (original): {model.durbin_watson_original:.3f}",
        f"Durbin-Watson statistic (transformed): {model.durbin_watson_transformed:.3f}",
        _RULE,
    ]
    return "\n".join(lines)


def format_robust_table(model) -> str:
    """t tests of coefficients using the HC0 robust covariance."""
    lines = [
        "t test of coefficients (HC0 robust covariance):",
        "",
        *_coefficient_rows(model.robust_table()),
    ]
    return "\n".join(lines)


# ------------------------------------------------------------------
# Narrative generation
# ------------------------------------------------------------------


def get_intervention_narrative(
    model=None,
    trend_lines=None,
    metric: str = "number of episodes",
    alpha: float = SIGNIFICANCE_LEVEL,
    observations=None,
    regressor=None,
) -> str:
    """Generate a plain-English description of the intervention effect.

    Parameters
    ----------
    model : FittedModel, optional
        Precomputed model.  Required for Path 1.
    trend_lines : TrendLines, optional
        Trend lines derived from *model*.  Required for Path 1.
    metric : str
        Human-readable metric label used in the generated text.
    alpha : float
        Significance level for describing a coefficient as significant.
    observations : ObservationSet, optional
        Raw observations.  Required for Path 2.
    regressor : PraisWinstenRegressor, optional
        Engine used for Path 2.

    Returns
    -------
    str

    Raises
    ------
    ValueError
        If neither (model + trend_lines) nor observations are provided.
    """
    # --- Path 2: raw data supplied → fit first ---
    if observations is not None:
        from .analysis import InterventionAnalysis

        analysis = InterventionAnalysis(observations, regressor=regressor)
        model = analysis.fit()
        trend_lines = analysis.get_trend_lines()

    elif model is None or trend_lines is None:
        raise ValueError(
            "Provide either observations for raw data, "
            "or (model, trend_lines) for precomputed results."
        )

    return _build_narrative(model, trend_lines, metric, alpha)


def _describe_test(p: float, alpha: float) -> str:
    verdict = "statistically significant" if p < alpha else "not statistically significant"
    return f"p = {format_pvalue(p)}, {verdict}"


def _build_narrative(model, trend_lines, metric: str, alpha: float) -> str:
    """Core narrative logic shared by both calling paths."""
    labels = trend_lines.labels
    post = trend_lines.post_mask
    slope = float(model.coefficients[1])
    level_change = float(model.coefficients[2])
    slope_change = float(model.coefficients[3])

    pre_direction = "increased" if slope >= 0 else "decreased"
    sentences: list[str] = []

    if not post.any() or post.all():
        return (
            f"The {metric} {pre_direction} by about {millify(abs(slope))} "
            f"per period; no pre/post comparison is possible."
        )

    first_post = int(post.argmax())
    sentences.append(
        f"From {labels[0]} to {labels[first_post - 1]}, the {metric} "
        f"{pre_direction} by about {millify(abs(slope))} per period."
    )

    level_dir = "rose" if level_change >= 0 else "fell"
    sentences.append(
        f"At {labels[first_post]} the level {level_dir} by "
        f"{millify(abs(level_change))} ({_describe_test(model.p_values[2], alpha)})."
    )

    post_slope = slope + slope_change
    post_direction = "an upward" if post_slope >= 0 else "a downward"
    sentences.append(
        f"The trend changed by {slope_change:+,.1f} per period "
        f"({_describe_test(model.p_values[3], alpha)}), "
        f"leaving {post_direction} trend of {post_slope:+,.1f} per period."
    )

    gap = float(trend_lines.impact_gap[-1])
    counterfactual = float(trend_lines.counterfactual[-1])
    position = "above" if gap >= 0 else "below"
    pct = (gap / counterfactual) * 100 if counterfactual != 0 else 0.0
    sentences.append(
        f"By {labels[-1]} the fitted {metric} was {millify(abs(gap))} "
        f"({pct:+.2f}%) {position} the counterfactual trend."
    )

    return " ".join(sentences)
