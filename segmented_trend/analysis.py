"""
segmented_trend.analysis
~~~~~~~~~~~~~~~~~~~~~~~~
High-level facade that fits the segmented regression and derives the
fitted and counterfactual trend lines used for reporting and plotting.
"""

from __future__ import annotations

from dataclasses import dataclass

import numpy as np

from .errors import InvalidConfiguration
from .regression import FittedModel, PraisWinstenRegressor
from .series import ObservationSet, read_only_array


@dataclass(frozen=True, eq=False)
class TrendLines:
    """Observed series plus the two trend lines implied by a fitted model.

    ``fitted`` uses all four coefficients; ``counterfactual`` uses only
    the intercept and baseline slope, i.e. the trajectory had the
    intervention never happened.  Both cover every period.
    """

    period: np.ndarray
    labels: tuple
    observed: np.ndarray
    fitted: np.ndarray
    counterfactual: np.ndarray
    post_mask: np.ndarray

    @property
    def fitted_post(self) -> np.ndarray:
        """Fitted trend restricted to post-intervention periods."""
        return self.fitted[self.post_mask]

    @property
    def impact_gap(self) -> np.ndarray:
        """Fitted minus counterfactual over the post-intervention periods."""
        return self.fitted[self.post_mask] - self.counterfactual[self.post_mask]


def derive_trend_lines(observations: ObservationSet, model: FittedModel) -> TrendLines:
    """Evaluate the fitted and counterfactual trends at every period.

    Pure post-processing of already-estimated coefficients.

    Raises
    ------
    InvalidConfiguration
        If the model was fitted on a series of a different length.
    """
    if model.n_obs != len(observations):
        raise InvalidConfiguration(
            f"model was fitted on {model.n_obs} observations, "
            f"series has {len(observations)}"
        )
    b0, b1, b2, b3 = (float(b) for b in model.coefficients[:4])
    time = observations.period.astype(float)
    counterfactual = b0 + b1 * time
    fitted = counterfactual + b2 * observations.flag + b3 * observations.post_time
    return TrendLines(
        period=observations.period,
        labels=observations.labels,
        observed=observations.outcome,
        fitted=read_only_array(fitted),
        counterfactual=read_only_array(counterfactual),
        post_mask=read_only_array(observations.flag == 1, dtype=bool),
    )


class InterventionAnalysis:
    """Estimate the effect of an intervention on a univariate series.

    Parameters
    ----------
    observations : ObservationSet
        Generated or externally supplied observations.
    regressor : PraisWinstenRegressor, optional
        Custom engine instance.  A default :class:`PraisWinstenRegressor`
        is used when not provided.

    Examples
    --------
    >>> from segmented_trend import InterventionAnalysis, generate_series
    >>> analysis = InterventionAnalysis(generate_series())
    >>> result = analysis.extract_full_suite()
    >>> sorted(result)
    ['model', 'narrative', 'robust_table', 'trend_lines']
    """

    def __init__(
        self,
        observations: ObservationSet,
        regressor: PraisWinstenRegressor | None = None,
    ) -> None:
        self.observations = observations
        self.regressor = regressor if regressor is not None else PraisWinstenRegressor()
        self._model: FittedModel | None = None

    # ------------------------------------------------------------------
    # Individual results
    # ------------------------------------------------------------------

    def fit(self) -> FittedModel:
        """Fit once and cache the model."""
        if self._model is None:
            self._model = self.regressor.fit(self.observations)
        return self._model

    def get_trend_lines(self) -> TrendLines:
        return derive_trend_lines(self.observations, self.fit())

    def cumulative_effect(self) -> float:
        """Sum of fitted minus counterfactual over the post period."""
        return float(np.sum(self.get_trend_lines().impact_gap))

    def relative_effect(self) -> float:
        """Impact at the final period as a fraction of the counterfactual.

        Returns *NaN* when there is no post period or the counterfactual
        is zero there.
        """
        lines = self.get_trend_lines()
        if not lines.post_mask.any() or lines.counterfactual[-1] == 0:
            return float("nan")
        return float(lines.impact_gap[-1] / lines.counterfactual[-1])

    # ------------------------------------------------------------------
    # Convenience bundle
    # ------------------------------------------------------------------

    def extract_full_suite(self, metric: str = "number of episodes") -> dict:
        """Return all results as a single dictionary.

        Keys
        ----
        model : FittedModel
        robust_table : list[dict]
            See :meth:`FittedModel.robust_table`.
        trend_lines : TrendLines
        narrative : str
        """
        from .narrative import get_intervention_narrative

        model = self.fit()
        trend_lines = self.get_trend_lines()
        return {
            "model": model,
            "robust_table": model.robust_table(),
            "trend_lines": trend_lines,
            "narrative": get_intervention_narrative(
                model=model, trend_lines=trend_lines, metric=metric
            ),
        }
