"""
segmented_trend
~~~~~~~~~~~~~~~
Interrupted time-series analysis: segmented regression with Prais-Winsten
AR(1) correction, HC0 robust coefficient tests, plain-English reporting
and a before/after trend chart.

Two calling paths are supported:

Path 1 – full run (simulated quarterly series, defaults 2010.1–2018.4):

    from segmented_trend import run_analysis

    result = run_analysis(output_dir="output")
    print(result.robust_table)

Path 2 – your own series (create an InterventionAnalysis with your chosen
regressor):

    from segmented_trend import InterventionAnalysis, ObservationSet, PraisWinstenRegressor

    obs = ObservationSet.from_counts(counts, cutover=29, labels=quarters)
    analysis = InterventionAnalysis(obs, regressor=PraisWinstenRegressor(tol=1e-8))
    suite = analysis.extract_full_suite()
"""

from .analysis import InterventionAnalysis, TrendLines, derive_trend_lines
from .config import SimulationConfig
from .errors import (
    FitFailure,
    InsufficientData,
    InvalidConfiguration,
    SegmentedTrendError,
)
from .narrative import (
    format_model_summary,
    format_pvalue,
    format_robust_table,
    get_intervention_narrative,
    millify,
)
from .pipeline import AnalysisResult, run_analysis
from .regression import FittedModel, PraisWinstenRegressor
from .series import ObservationSet, generate_series, quarter_labels

__all__ = [
    "AnalysisResult",
    "FitFailure",
    "FittedModel",
    "InsufficientData",
    "InterventionAnalysis",
    "InvalidConfiguration",
    "ObservationSet",
    "PraisWinstenRegressor",
    "SegmentedTrendError",
    "SimulationConfig",
    "TrendLines",
    "derive_trend_lines",
    "format_model_summary",
    "format_pvalue",
    "format_robust_table",
    "generate_series",
    "get_intervention_narrative",
    "millify",
    "quarter_labels",
    "run_analysis",
]

__version__ = "0.1.0"
