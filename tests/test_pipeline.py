"""End-to-end tests for segmented_trend.pipeline."""

from dataclasses import replace

import numpy as np
import pytest

from segmented_trend.config import PLOT_FILENAME
from segmented_trend.errors import FitFailure, InsufficientData
from segmented_trend.pipeline import main, run_analysis
from segmented_trend.series import ObservationSet


class TestRunAnalysis:
    def test_default_run(self, default_config, tmp_path):
        result = run_analysis(default_config, output_dir=tmp_path)
        assert result.model.converged
        assert result.model.coefficient("time_after") < 0
        assert result.model.p_values[3] < 0.05
        assert result.plot_path == tmp_path / PLOT_FILENAME
        assert result.plot_path.exists()
        assert "Prais-Winsten" in result.summary
        assert "HC0" in result.robust_table

    def test_no_plot(self, default_config, tmp_path):
        result = run_analysis(default_config, output_dir=tmp_path, plot=False)
        assert result.plot_path is None
        assert not any(tmp_path.iterdir())

    def test_external_series(self, simulated, tmp_path):
        external = ObservationSet.from_columns(
            simulated.labels, simulated.outcome, simulated.period,
            simulated.flag, simulated.post_time,
        )
        a = run_analysis(observations=simulated, plot=False)
        b = run_analysis(observations=external, plot=False)
        np.testing.assert_array_equal(a.model.coefficients, b.model.coefficients)

    def test_fit_failure_leaves_no_plot(self, default_config, tmp_path):
        with pytest.raises(FitFailure):
            run_analysis(replace(default_config, cutover=1), output_dir=tmp_path)
        assert not (tmp_path / PLOT_FILENAME).exists()

    def test_insufficient_data(self, tmp_path):
        obs = ObservationSet.from_counts([10, 11, 9], 2)
        with pytest.raises(InsufficientData):
            run_analysis(observations=obs, output_dir=tmp_path)


class TestMain:
    def test_prints_reports(self, tmp_path, capsys):
        assert main(["--output-dir", str(tmp_path), "--quiet"]) == 0
        out = capsys.readouterr().out
        assert "Model Summary:" in out
        assert "Robust Coefficient Tests:" in out
        assert (tmp_path / PLOT_FILENAME).exists()

    def test_no_plot_flag(self, tmp_path, capsys):
        assert main(["--output-dir", str(tmp_path), "--no-plot", "--quiet"]) == 0
        assert not (tmp_path / PLOT_FILENAME).exists()

    def test_invalid_configuration_exit_code(self, tmp_path):
        assert main(["--noise-sd", "-1", "--output-dir", str(tmp_path), "--quiet"]) == 1

    def test_singular_design_exit_code(self, tmp_path):
        assert main(["--cutover", "1", "--output-dir", str(tmp_path), "--quiet"]) == 1
        assert not (tmp_path / PLOT_FILENAME).exists()
