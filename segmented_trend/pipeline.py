"""
segmented_trend.pipeline
~~~~~~~~~~~~~~~~~~~~~~~~
Run the full interrupted time-series analysis: generate, fit, report
and plot.

Usage:
    python -m segmented_trend [--seed 123] [--output-dir output] [--no-plot]
"""
from __future__ import annotations

import argparse
import logging
import sys
from dataclasses import dataclass, replace
from pathlib import Path
from typing import Optional, Sequence

from .analysis import InterventionAnalysis, TrendLines
from .config import OUTPUT_DIR, PLOT_FILENAME, SimulationConfig
from .errors import SegmentedTrendError
from .narrative import format_model_summary, format_robust_table, get_intervention_narrative
from .regression import FittedModel, PraisWinstenRegressor
from .series import ObservationSet, generate_series

logger = logging.getLogger(__name__)


@dataclass(frozen=True, eq=False)
class AnalysisResult:
    """Everything one run produces."""

    observations: ObservationSet
    model: FittedModel
    trend_lines: TrendLines
    summary: str
    robust_table: str
    narrative: str
    plot_path: Optional[Path] = None


def run_analysis(
    config: SimulationConfig = SimulationConfig(),
    observations: Optional[ObservationSet] = None,
    regressor: Optional[PraisWinstenRegressor] = None,
    output_dir: Optional[Path] = None,
    plot: bool = True,
    metric: str = "number of episodes",
) -> AnalysisResult:
    """Generate (or accept) a series, fit it, build the reports and plot.

    Any :class:`SegmentedTrendError` propagates before the chart is
    drawn, so a failed fit never leaves a partial plot behind.
    """
    # 1. Data ------------------------------------------------------------------
    if observations is None:
        observations = generate_series(config)
        logger.info(
            "Generated %d periods (cutover %d, seed %d)",
            len(observations),
            config.cutover,
            config.seed,
        )

    # 2. Fit -------------------------------------------------------------------
    analysis = InterventionAnalysis(observations, regressor=regressor)
    model = analysis.fit()
    trend_lines = analysis.get_trend_lines()

    # 3. Report ----------------------------------------------------------------
    summary = format_model_summary(model)
    robust = format_robust_table(model)
    narrative = get_intervention_narrative(
        model=model, trend_lines=trend_lines, metric=metric
    )

    # 4. Plot ------------------------------------------------------------------
    plot_path = None
    if plot:
        from .plots import plot_intervention

        plot_path = Path(output_dir if output_dir is not None else OUTPUT_DIR) / PLOT_FILENAME
        plot_intervention(observations, model, trend_lines=trend_lines, path=plot_path)

    return AnalysisResult(
        observations=observations,
        model=model,
        trend_lines=trend_lines,
        summary=summary,
        robust_table=robust,
        narrative=narrative,
        plot_path=plot_path,
    )


def _build_parser() -> argparse.ArgumentParser:
    defaults = SimulationConfig()
    parser = argparse.ArgumentParser(
        prog="segmented-trend",
        description="Prais-Winsten segmented regression on a simulated quarterly series.",
    )
    parser.add_argument("--seed", type=int, default=defaults.seed)
    parser.add_argument("--cutover", type=int, default=defaults.cutover,
                        help="1-based period at which the intervention starts")
    parser.add_argument("--max-effect", type=float, default=defaults.max_effect)
    parser.add_argument("--noise-sd", type=float, default=defaults.noise_sd)
    parser.add_argument("--output-dir", type=Path, default=OUTPUT_DIR)
    parser.add_argument("--no-plot", action="store_true")
    verbosity = parser.add_mutually_exclusive_group()
    verbosity.add_argument("-v", "--verbose", action="store_true")
    verbosity.add_argument("-q", "--quiet", action="store_true")
    return parser


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = _build_parser().parse_args(argv)

    level = logging.DEBUG if args.verbose else logging.WARNING if args.quiet else logging.INFO
    logging.basicConfig(level=level, format="%(levelname)s %(name)s: %(message)s")

    config = replace(
        SimulationConfig(),
        seed=args.seed,
        cutover=args.cutover,
        max_effect=args.max_effect,
        noise_sd=args.noise_sd,
    )

    try:
        result = run_analysis(
            config, output_dir=args.output_dir, plot=not args.no_plot
        )
    except SegmentedTrendError as exc:
        logger.error("%s: %s", type(exc).__name__, exc)
        return 1

    print("Model Summary:")
    print(result.summary)
    print()
    print("Robust Coefficient Tests:")
    print(result.robust_table)
    print()
    print(result.narrative)
    if result.plot_path is not None:
        print(f"\nPlot saved to {result.plot_path}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
