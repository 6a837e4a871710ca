# ---------------------------------------------------------------------------
# segmented_trend.config — Simulation defaults and project constants
# ---------------------------------------------------------------------------
from __future__ import annotations

import math
import numbers
from dataclasses import dataclass
from pathlib import Path

from .errors import InvalidConfiguration

# ---------------------------------------------------------------------------
# Paths
# ---------------------------------------------------------------------------

OUTPUT_DIR = Path("output")
PLOT_FILENAME = "hospitalization_trends.png"

# ---------------------------------------------------------------------------
# Simulation defaults (quarterly series, 2010.1 – 2018.4)
# ---------------------------------------------------------------------------

START_YEAR = 2010
END_YEAR = 2018
PERIODS_PER_YEAR = 4
CUTOVER = 29  # 2017.1

BASE_START = 10_000.0
BASE_END = 30_000.0
MAX_EFFECT = -5_000.0
NOISE_SD = 1_000.0
SEED = 123

# ---------------------------------------------------------------------------
# Estimation defaults
# ---------------------------------------------------------------------------

RHO_TOLERANCE = 1e-6
MAX_ITERATIONS = 50
SIGNIFICANCE_LEVEL = 0.05

# Plot colours
OBSERVED_COLOR = "#838b8b"  # azure4
CUTOVER_COLOR = "indianred"
FITTED_COLOR = "#00008b"  # blue4
COUNTERFACTUAL_COLOR = "#4876ff"  # royalblue1
GAP_COLOR = "lightgreen"
ANNOTATION_COLOR = "red"


# ---------------------------------------------------------------------------
# Generator parameters
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class SimulationConfig:
    """Parameters for :func:`segmented_trend.series.generate_series`.

    Parameters
    ----------
    start_year, end_year : int
        Inclusive year span; one period per quarter (or per
        ``periods_per_year``).
    periods_per_year : int
        Sub-periods per year (4 for quarterly data).
    cutover : int
        1-based period at which the intervention takes effect.
    base_start, base_end : float
        End points of the linear base trend.
    max_effect : float
        Intervention effect reached at the final period (negative for a
        decline).  The effect ramps linearly from 0 at *cutover*.
    noise_sd : float
        Standard deviation of the additive Gaussian noise.
    seed : int
        Seed for a fresh :func:`numpy.random.default_rng` when no
        generator is supplied.
    """

    start_year: int = START_YEAR
    end_year: int = END_YEAR
    periods_per_year: int = PERIODS_PER_YEAR
    cutover: int = CUTOVER
    base_start: float = BASE_START
    base_end: float = BASE_END
    max_effect: float = MAX_EFFECT
    noise_sd: float = NOISE_SD
    seed: int = SEED

    @property
    def n_periods(self) -> int:
        return (self.end_year - self.start_year + 1) * self.periods_per_year

    def validate(self) -> None:
        """Raise :class:`InvalidConfiguration` for out-of-range parameters."""
        if self.periods_per_year < 1:
            raise InvalidConfiguration(
                f"periods_per_year must be positive, got {self.periods_per_year}"
            )
        if self.n_periods < 2:
            raise InvalidConfiguration(
                f"series needs at least 2 periods, got {self.n_periods} "
                f"({self.start_year}–{self.end_year})"
            )
        if isinstance(self.cutover, bool) or not isinstance(self.cutover, numbers.Integral):
            raise InvalidConfiguration(
                f"cutover must be an integer period index, got {self.cutover!r}"
            )
        if not 1 <= self.cutover <= self.n_periods:
            raise InvalidConfiguration(
                f"cutover {self.cutover} outside series bounds 1..{self.n_periods}"
            )
        if not math.isfinite(self.noise_sd) or self.noise_sd <= 0:
            raise InvalidConfiguration(
                f"noise_sd must be a positive finite number, got {self.noise_sd}"
            )
        for name in ("base_start", "base_end", "max_effect"):
            if not math.isfinite(getattr(self, name)):
                raise InvalidConfiguration(f"{name} must be finite")
