"""
segmented_trend.series
~~~~~~~~~~~~~~~~~~~~~~
Observation sets for interrupted time-series analysis and a seeded
generator for simulated quarterly hospitalization counts.

An :class:`ObservationSet` can come from :func:`generate_series` or from
externally supplied columns; the regression engine treats both the same.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Sequence

import numpy as np

from .config import SimulationConfig
from .errors import InvalidConfiguration

REGRESSOR_NAMES = ("(Intercept)", "time", "intervention", "time_after")


# ------------------------------------------------------------------
# Period labels
# ------------------------------------------------------------------


def quarter_labels(
    start_year: int, end_year: int, periods_per_year: int = 4
) -> list[str]:
    """Return chronological ``"<year>.<period>"`` labels.

    Examples
    --------
    >>> quarter_labels(2010, 2010)
    ['2010.1', '2010.2', '2010.3', '2010.4']
    """
    return [
        f"{year}.{sub}"
        for year in range(start_year, end_year + 1)
        for sub in range(1, periods_per_year + 1)
    ]


def read_only_array(values, dtype=float) -> np.ndarray:
    """Copy *values* into a new array that cannot be written to."""
    arr = np.array(values, dtype=dtype)
    arr.setflags(write=False)
    return arr


def check_cutover(cutover, n: int) -> int:
    """Return *cutover* as an int, or raise if it is not a period in ``1..n``."""
    if isinstance(cutover, bool) or not isinstance(cutover, (int, np.integer)):
        raise InvalidConfiguration(
            f"cutover must be an integer period index, got {cutover!r}"
        )
    if not 1 <= cutover <= n:
        raise InvalidConfiguration(f"cutover {cutover} outside series bounds 1..{n}")
    return int(cutover)


# ------------------------------------------------------------------
# Observation set
# ------------------------------------------------------------------


@dataclass(frozen=True, eq=False)
class ObservationSet:
    """Immutable table of observations, one row per period.

    Attributes
    ----------
    labels : tuple[str, ...]
        Display labels in chronological order (e.g. ``"2010.1"``).
    period : np.ndarray
        1-based period index.
    outcome : np.ndarray
        Non-negative outcome counts.
    flag : np.ndarray
        Intervention indicator (0 before the cutover, 1 at/after).
    post_time : np.ndarray
        Elapsed post-intervention periods (0 before, 1, 2, ... after).
    cutover : int
        Period index at which the intervention takes effect.
    """

    labels: tuple
    period: np.ndarray
    outcome: np.ndarray
    flag: np.ndarray
    post_time: np.ndarray
    cutover: int

    # ------------------------------------------------------------------
    # Constructors
    # ------------------------------------------------------------------

    @classmethod
    def from_counts(
        cls,
        outcome: Sequence[float],
        cutover: int,
        labels: Optional[Sequence[str]] = None,
    ) -> "ObservationSet":
        """Build an observation set from outcome counts and a cutover.

        Period indices run ``1..N`` in data order; the intervention flag
        and post-intervention time are derived from *cutover*.

        Raises
        ------
        InvalidConfiguration
            If *cutover* lies outside ``1..N``, *labels* has the wrong
            length, or any count is negative or non-finite.
        """
        y = np.asarray(outcome, dtype=float)
        if y.ndim != 1:
            raise InvalidConfiguration("outcome must be one-dimensional")
        n = len(y)
        cutover = check_cutover(cutover, n)
        if labels is None:
            labels = [str(i) for i in range(1, n + 1)]
        period = np.arange(1, n + 1)
        flag = (period >= cutover).astype(int)
        post_time = np.where(flag == 1, period - cutover + 1, 0)
        return cls.from_columns(labels, y, period, flag, post_time, cutover=cutover)

    @classmethod
    def from_columns(
        cls,
        labels: Sequence[str],
        outcome: Sequence[float],
        period: Sequence[int],
        flag: Sequence[int],
        post_time: Sequence[int],
        cutover: Optional[int] = None,
    ) -> "ObservationSet":
        """Wrap externally supplied columns without re-deriving them.

        When *cutover* is omitted it is taken as the first flagged
        period (or ``N + 1`` when nothing is flagged).

        Raises
        ------
        InvalidConfiguration
            If the columns differ in length, counts are negative or
            non-finite, or *flag* / *post_time* disagree with the
            cutover (``flag = 1`` exactly when ``period >= cutover``,
            ``post_time = period - cutover + 1`` when flagged, else 0).
        """
        columns = {
            "labels": list(labels),
            "outcome": np.asarray(outcome, dtype=float),
            "period": np.asarray(period, dtype=int),
            "flag": np.asarray(flag, dtype=int),
            "post_time": np.asarray(post_time, dtype=int),
        }
        lengths = {name: len(col) for name, col in columns.items()}
        if len(set(lengths.values())) != 1:
            raise InvalidConfiguration(f"column lengths differ: {lengths}")

        y = columns["outcome"]
        if not np.all(np.isfinite(y)):
            raise InvalidConfiguration("outcome contains non-finite values")
        if np.any(y < 0):
            raise InvalidConfiguration("outcome counts must be non-negative")
        if not np.all(np.isin(columns["flag"], (0, 1))):
            raise InvalidConfiguration("intervention flag must be 0 or 1")

        period = columns["period"]
        if cutover is None:
            flagged = period[columns["flag"] == 1]
            cutover = int(flagged.min()) if len(flagged) else len(y) + 1
        elif isinstance(cutover, bool) or not isinstance(cutover, (int, np.integer)):
            raise InvalidConfiguration(
                f"cutover must be an integer period index, got {cutover!r}"
            )

        expected_flag = (period >= cutover).astype(int)
        if not np.array_equal(columns["flag"], expected_flag):
            raise InvalidConfiguration(
                f"intervention flag does not match cutover {cutover}"
            )
        expected_post = np.where(expected_flag == 1, period - cutover + 1, 0)
        if not np.array_equal(columns["post_time"], expected_post):
            raise InvalidConfiguration(
                f"post-intervention time does not match cutover {cutover}"
            )

        return cls(
            labels=tuple(str(label) for label in columns["labels"]),
            period=read_only_array(columns["period"], int),
            outcome=read_only_array(y, float),
            flag=read_only_array(columns["flag"], int),
            post_time=read_only_array(columns["post_time"], int),
            cutover=int(cutover),
        )

    # ------------------------------------------------------------------
    # Accessors
    # ------------------------------------------------------------------

    def __len__(self) -> int:
        return len(self.outcome)

    @property
    def n_pre(self) -> int:
        return int(np.sum(self.flag == 0))

    @property
    def n_post(self) -> int:
        return int(np.sum(self.flag == 1))

    @property
    def regressor_names(self) -> tuple:
        return REGRESSOR_NAMES

    def design_matrix(self) -> np.ndarray:
        """Return the N×4 matrix ``[1, time, intervention, time_after]``."""
        return np.column_stack(
            [
                np.ones(len(self)),
                self.period.astype(float),
                self.flag.astype(float),
                self.post_time.astype(float),
            ]
        )

    def to_records(self) -> list[dict]:
        """One dict per period, in data order."""
        return [
            {
                "label": self.labels[i],
                "period": int(self.period[i]),
                "outcome": float(self.outcome[i]),
                "flag": int(self.flag[i]),
                "post_time": int(self.post_time[i]),
            }
            for i in range(len(self))
        ]


# ------------------------------------------------------------------
# Simulation
# ------------------------------------------------------------------


def generate_series(
    config: SimulationConfig = SimulationConfig(),
    rng: Optional[np.random.Generator] = None,
) -> ObservationSet:
    """Simulate a quarterly count series with a delayed, ramping decline.

    outcome = round(base trend + intervention effect + noise)

    The base trend runs linearly from ``base_start`` to ``base_end``.
    The intervention effect is zero before the cutover, then ramps
    linearly from 0 at the cutover period to ``max_effect`` at the last
    period.  Noise is drawn from *rng*, or from a fresh generator seeded
    with ``config.seed``.

    Parameters
    ----------
    config : SimulationConfig
        Generator parameters; validated before any random draw.
    rng : numpy.random.Generator, optional
        Explicit generator.  The caller owns its state.

    Returns
    -------
    ObservationSet
    """
    config.validate()
    if rng is None:
        rng = np.random.default_rng(config.seed)

    n = config.n_periods
    base_trend = np.linspace(config.base_start, config.base_end, n)
    effect = np.concatenate(
        [
            np.zeros(config.cutover - 1),
            np.linspace(0.0, config.max_effect, n - config.cutover + 1),
        ]
    )
    noise = rng.normal(0.0, config.noise_sd, n)
    outcome = np.round(base_trend + effect + noise)

    labels = quarter_labels(
        config.start_year, config.end_year, config.periods_per_year
    )
    return ObservationSet.from_counts(outcome, config.cutover, labels=labels)
