"""
segmented_trend.regression
~~~~~~~~~~~~~~~~~~~~~~~~~~
Segmented regression with first-order autocorrelation correction using
the iterative Prais-Winsten procedure, plus HC0 heteroscedasticity-robust
coefficient tests.

The model is::

    y = b0 + b1*time + b2*intervention + b3*time_after + e,
    e_t = rho * e_{t-1} + u_t
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from typing import Optional

import numpy as np
from scipy import stats

from .config import MAX_ITERATIONS, RHO_TOLERANCE
from .errors import FitFailure, InsufficientData, InvalidConfiguration
from .series import ObservationSet, read_only_array

logger = logging.getLogger(__name__)


@dataclass(frozen=True, eq=False)
class FittedModel:
    """Result of :meth:`PraisWinstenRegressor.fit`.

    Coefficients, classical standard errors and R² come from the final
    regression on Prais-Winsten transformed data.  ``t_values`` and
    ``p_values`` use the HC0 robust covariance; the classical versions
    are kept for the model summary.
    """

    names: tuple
    coefficients: np.ndarray
    std_errors: np.ndarray
    classical_t_values: np.ndarray
    classical_p_values: np.ndarray
    robust_std_errors: np.ndarray
    t_values: np.ndarray
    p_values: np.ndarray
    rho: float
    iterations: int
    converged: bool
    rho_history: tuple
    n_obs: int
    df_resid: int
    sigma: float
    r_squared: float
    adj_r_squared: float
    durbin_watson_original: float
    durbin_watson_transformed: float
    transformed_design: np.ndarray

    def coefficient(self, name: str) -> float:
        """Return the estimate for the regressor called *name*."""
        try:
            return float(self.coefficients[self.names.index(name)])
        except ValueError:
            raise KeyError(f"unknown regressor {name!r}; expected one of {self.names}") from None

    def robust_table(self) -> list[dict]:
        """One row per coefficient: estimate, robust SE, t and p-value."""
        return [
            {
                "term": name,
                "estimate": float(self.coefficients[i]),
                "std_error": float(self.robust_std_errors[i]),
                "t_value": float(self.t_values[i]),
                "p_value": float(self.p_values[i]),
            }
            for i, name in enumerate(self.names)
        ]

    def summary_table(self) -> list[dict]:
        """Like :meth:`robust_table` but with the classical (model-based) errors."""
        return [
            {
                "term": name,
                "estimate": float(self.coefficients[i]),
                "std_error": float(self.std_errors[i]),
                "t_value": float(self.classical_t_values[i]),
                "p_value": float(self.classical_p_values[i]),
            }
            for i, name in enumerate(self.names)
        ]


class PraisWinstenRegressor:
    """Fit a segmented regression with AR(1) errors.

    Parameters
    ----------
    tol : float
        Convergence tolerance on successive rho estimates (default 1e-6).
    max_iter : int
        Maximum number of rho re-estimation rounds (default 50).
    """

    def __init__(
        self, tol: float = RHO_TOLERANCE, max_iter: int = MAX_ITERATIONS
    ) -> None:
        if not tol > 0:
            raise InvalidConfiguration(f"tol must be positive, got {tol}")
        if max_iter < 1:
            raise InvalidConfiguration(f"max_iter must be at least 1, got {max_iter}")
        self.tol = tol
        self.max_iter = max_iter

    # ------------------------------------------------------------------
    # Static helpers
    # ------------------------------------------------------------------

    @staticmethod
    def ols(X: np.ndarray, y: np.ndarray) -> tuple[np.ndarray, np.ndarray, np.ndarray]:
        """Ordinary least squares.

        Returns
        -------
        tuple
            ``(beta, residuals, inv(X'X))``.

        Raises
        ------
        FitFailure
            If *X* does not have full column rank.
        """
        rank = np.linalg.matrix_rank(X)
        if rank < X.shape[1]:
            raise FitFailure(
                f"design matrix is singular (rank {rank} < {X.shape[1]} columns); "
                "check that the intervention flag varies and is not collinear "
                "with post-intervention time"
            )
        try:
            xtx_inv = np.linalg.inv(X.T @ X)
        except np.linalg.LinAlgError as exc:
            raise FitFailure(f"cannot invert X'X: {exc}") from exc
        beta = xtx_inv @ (X.T @ y)
        return beta, y - X @ beta, xtx_inv

    @staticmethod
    def estimate_rho(residuals: np.ndarray, atol: float = 0.0) -> float:
        """Lag-1 autocorrelation ``sum(e_t e_{t-1}) / sum(e_{t-1}^2)``.

        Returns 0 when the lagged sum of squares is at or below *atol*
        (an exact fit leaves nothing to correlate).
        """
        e = np.asarray(residuals, dtype=float)
        denominator = float(np.sum(e[:-1] ** 2))
        if denominator <= atol:
            return 0.0
        return float(np.sum(e[1:] * e[:-1]) / denominator)

    @staticmethod
    def prais_transform(
        X: np.ndarray, y: np.ndarray, rho: float
    ) -> tuple[np.ndarray, np.ndarray]:
        """Quasi-difference *X* and *y*, keeping the first observation.

        Row 1 is scaled by ``sqrt(1 - rho^2)``; every later row becomes
        ``x_t - rho * x_{t-1}``.  The intercept column is transformed
        like any other regressor.
        """
        if not abs(rho) < 1:
            raise FitFailure(f"autocorrelation estimate rho={rho} is not inside (-1, 1)")
        scale = math.sqrt(1.0 - rho**2)
        X_star = np.empty_like(X, dtype=float)
        y_star = np.empty_like(y, dtype=float)
        X_star[0] = scale * X[0]
        y_star[0] = scale * y[0]
        X_star[1:] = X[1:] - rho * X[:-1]
        y_star[1:] = y[1:] - rho * y[:-1]
        return X_star, y_star

    @staticmethod
    def hc0_covariance(X: np.ndarray, residuals: np.ndarray) -> np.ndarray:
        """White's HC0 sandwich ``(X'X)^-1 X' diag(e^2) X (X'X)^-1``."""
        bread = np.linalg.inv(X.T @ X)
        meat = (X * residuals[:, None] ** 2).T @ X
        return bread @ meat @ bread

    @staticmethod
    def durbin_watson(residuals: np.ndarray) -> float:
        """Durbin-Watson statistic; near 2 means no lag-1 autocorrelation."""
        e = np.asarray(residuals, dtype=float)
        ssr = float(np.sum(e**2))
        if ssr == 0:
            return float("nan")
        return float(np.sum(np.diff(e) ** 2) / ssr)

    # ------------------------------------------------------------------
    # Internal utilities
    # ------------------------------------------------------------------

    @staticmethod
    def _check_rho(rho: float, iteration: int) -> float:
        if not math.isfinite(rho):
            raise FitFailure(f"autocorrelation estimate diverged at iteration {iteration}")
        if abs(rho) >= 1:
            raise FitFailure(
                f"autocorrelation estimate rho={rho:.6f} at iteration {iteration} "
                "is not inside (-1, 1); the series looks non-stationary"
            )
        return rho

    @staticmethod
    def _t_test(beta: np.ndarray, cov: np.ndarray, df: int) -> tuple[np.ndarray, ...]:
        se = np.sqrt(np.clip(np.diag(cov), 0.0, None))
        # A zero standard error tests nothing when the estimate is also
        # zero (t = 0, p = 1); a non-zero estimate is infinitely precise.
        t_values = np.where(beta == 0, 0.0, np.copysign(np.inf, beta))
        np.divide(beta, se, out=t_values, where=se > 0)
        p_values = 2.0 * stats.t.sf(np.abs(t_values), df)
        return (
            read_only_array(se),
            read_only_array(t_values),
            read_only_array(np.clip(p_values, 0.0, 1.0)),
        )

    def _iterate_rho(
        self, X: np.ndarray, y: np.ndarray, atol: float
    ) -> tuple[float, int, bool, list[float]]:
        """Cochrane-Orcutt style fixed point on rho, Prais-Winsten transform."""
        _, residuals, _ = self.ols(X, y)
        rho = self._check_rho(self.estimate_rho(residuals, atol), 0)
        history = [rho]
        logger.debug("iteration 0: rho=%.8f (OLS residuals)", rho)

        for iteration in range(1, self.max_iter + 1):
            X_star, y_star = self.prais_transform(X, y, rho)
            beta, _, _ = self.ols(X_star, y_star)
            # rho is always re-estimated from residuals on the original scale
            new_rho = self._check_rho(
                self.estimate_rho(y - X @ beta, atol), iteration
            )
            history.append(new_rho)
            logger.debug("iteration %d: rho=%.8f", iteration, new_rho)
            if abs(new_rho - rho) < self.tol:
                return new_rho, iteration, True, history
            rho = new_rho

        logger.warning(
            "rho did not converge within %d iterations (last change %.3g, tol %.3g)",
            self.max_iter,
            abs(history[-1] - history[-2]),
            self.tol,
        )
        return rho, self.max_iter, False, history

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def fit(
        self,
        observations: ObservationSet,
        names: Optional[tuple] = None,
    ) -> FittedModel:
        """Estimate the segmented regression on *observations*.

        Parameters
        ----------
        observations : ObservationSet
            Generated or externally supplied series.
        names : tuple[str, ...], optional
            Coefficient names; defaults to the observation set's
            regressor names.

        Returns
        -------
        FittedModel

        Raises
        ------
        InsufficientData
            If there are not more observations than parameters.
        FitFailure
            If the design is singular or rho leaves (-1, 1).
        """
        X = observations.design_matrix()
        y = np.asarray(observations.outcome, dtype=float)
        n, k = X.shape
        names = tuple(names or observations.regressor_names)

        if n <= k:
            raise InsufficientData(
                f"{n} observations for {k} parameters; need at least {k + 1}"
            )

        # Residual mass below this is floating-point noise from an exact fit.
        atol = n * (1e-10 * max(1.0, float(np.max(np.abs(y))))) ** 2
        rho, iterations, converged, history = self._iterate_rho(X, y, atol)

        X_star, y_star = self.prais_transform(X, y, rho)
        beta, u_star, xtx_inv = self.ols(X_star, y_star)
        df = n - k

        ssr = float(u_star @ u_star)
        sigma2 = ssr / df
        se, t_cl, p_cl = self._t_test(beta, sigma2 * xtx_inv, df)
        robust_se, t_rob, p_rob = self._t_test(
            beta, self.hc0_covariance(X_star, u_star), df
        )

        sst = float(np.sum((y_star - y_star.mean()) ** 2))
        if sst > 0:
            r_squared = 1.0 - ssr / sst
        else:
            # constant transformed response: an exact fit explains all of it
            r_squared = 1.0 if ssr == 0 else 0.0
        adj_r_squared = 1.0 - (1.0 - r_squared) * (n - 1) / df

        logger.info(
            "Prais-Winsten fit: rho=%.4f after %d iteration(s)%s",
            rho,
            iterations,
            "" if converged else " (not converged)",
        )

        return FittedModel(
            names=names,
            coefficients=read_only_array(beta),
            std_errors=se,
            classical_t_values=t_cl,
            classical_p_values=p_cl,
            robust_std_errors=robust_se,
            t_values=t_rob,
            p_values=p_rob,
            rho=float(rho),
            iterations=iterations,
            converged=converged,
            rho_history=tuple(history),
            n_obs=n,
            df_resid=df,
            sigma=math.sqrt(sigma2),
            r_squared=r_squared,
            adj_r_squared=adj_r_squared,
            durbin_watson_original=self.durbin_watson(y - X @ beta),
            durbin_watson_transformed=self.durbin_watson(u_star),
            transformed_design=read_only_array(X_star),
        )
