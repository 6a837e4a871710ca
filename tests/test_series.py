"""Unit tests for segmented_trend.series."""

from dataclasses import replace

import numpy as np
import pytest

from segmented_trend.config import SimulationConfig
from segmented_trend.errors import InvalidConfiguration
from segmented_trend.series import ObservationSet, generate_series, quarter_labels


# ---------------------------------------------------------------------------
# quarter_labels
# ---------------------------------------------------------------------------

class TestQuarterLabels:
    def test_full_span(self):
        labels = quarter_labels(2010, 2018)
        assert len(labels) == 36
        assert labels[0] == "2010.1"
        assert labels[28] == "2017.1"
        assert labels[-1] == "2018.4"

    def test_chronological_order(self):
        labels = quarter_labels(2010, 2012)
        keys = [tuple(int(p) for p in label.split(".")) for label in labels]
        assert keys == sorted(keys)

    def test_custom_periods_per_year(self):
        assert quarter_labels(2020, 2020, periods_per_year=2) == ["2020.1", "2020.2"]


# ---------------------------------------------------------------------------
# ObservationSet
# ---------------------------------------------------------------------------

class TestObservationSet:
    @pytest.mark.parametrize("cutover", [1, 2, 5, 10])
    def test_flag_invariant(self, cutover):
        obs = ObservationSet.from_counts(np.arange(10, 20), cutover)
        for i in range(len(obs)):
            flagged = obs.period[i] >= cutover
            assert obs.flag[i] == int(flagged)
            expected_post = obs.period[i] - cutover + 1 if flagged else 0
            assert obs.post_time[i] == expected_post

    def test_period_is_one_based(self):
        obs = ObservationSet.from_counts([5, 6, 7, 8], 3)
        assert obs.period.tolist() == [1, 2, 3, 4]
        assert obs.post_time.tolist() == [0, 0, 1, 2]

    def test_pre_post_counts(self, simulated):
        assert simulated.n_pre == 28
        assert simulated.n_post == 8

    def test_design_matrix_columns(self):
        obs = ObservationSet.from_counts([5, 6, 7, 8], 3)
        X = obs.design_matrix()
        assert X.shape == (4, 4)
        np.testing.assert_array_equal(X[:, 0], 1.0)
        np.testing.assert_array_equal(X[:, 1], [1, 2, 3, 4])
        np.testing.assert_array_equal(X[:, 2], [0, 0, 1, 1])
        np.testing.assert_array_equal(X[:, 3], [0, 0, 1, 2])

    def test_arrays_are_read_only(self, simulated):
        with pytest.raises(ValueError):
            simulated.outcome[0] = 0.0

    @pytest.mark.parametrize("cutover", [0, -1, 11])
    def test_cutover_out_of_bounds(self, cutover):
        with pytest.raises(InvalidConfiguration):
            ObservationSet.from_counts(np.arange(10), cutover)

    def test_label_length_mismatch(self):
        with pytest.raises(InvalidConfiguration):
            ObservationSet.from_counts([1, 2, 3], 2, labels=["a", "b"])

    def test_negative_counts_rejected(self):
        with pytest.raises(InvalidConfiguration):
            ObservationSet.from_counts([1, -2, 3], 2)

    def test_from_columns_matches_from_counts(self):
        derived = ObservationSet.from_counts([10, 11, 12, 13, 14], 4)
        external = ObservationSet.from_columns(
            derived.labels, derived.outcome, derived.period,
            derived.flag, derived.post_time,
        )
        assert external.cutover == 4
        np.testing.assert_array_equal(external.design_matrix(), derived.design_matrix())

    def test_from_columns_length_mismatch(self):
        with pytest.raises(InvalidConfiguration):
            ObservationSet.from_columns(
                ["a", "b", "c"], [1, 2, 3], [1, 2, 3], [0, 1], [0, 1, 2]
            )

    def test_from_columns_rejects_non_binary_flag(self):
        with pytest.raises(InvalidConfiguration):
            ObservationSet.from_columns(["a", "b"], [1, 2], [1, 2], [0, 2], [0, 1])

    def test_from_columns_rejects_columns_inconsistent_with_cutover(self):
        with pytest.raises(InvalidConfiguration, match="does not match cutover 6"):
            ObservationSet.from_columns(
                [str(i) for i in range(1, 9)], [10] * 8, list(range(1, 9)),
                [0, 0, 1, 1, 1, 1, 1, 1], [0, 0, 7, 9, 0, 2, 2, 2], cutover=6,
            )

    def test_from_columns_flag_must_match_explicit_cutover(self):
        with pytest.raises(InvalidConfiguration, match="intervention flag"):
            ObservationSet.from_columns(
                ["a", "b", "c", "d"], [1, 2, 3, 4], [1, 2, 3, 4],
                [0, 0, 1, 1], [0, 0, 1, 2], cutover=2,
            )

    def test_from_columns_post_time_must_count_from_first_flag(self):
        with pytest.raises(InvalidConfiguration):
            ObservationSet.from_columns(
                ["a", "b", "c", "d"], [1, 2, 3, 4], [1, 2, 3, 4],
                [0, 0, 1, 1], [0, 0, 2, 3],
            )

    def test_from_columns_accepts_consistent_cutover(self):
        obs = ObservationSet.from_columns(
            ["a", "b", "c", "d"], [1, 2, 3, 4], [1, 2, 3, 4],
            [0, 0, 1, 1], [0, 0, 1, 2], cutover=3,
        )
        assert obs.cutover == 3
        assert obs.n_post == 2

    @pytest.mark.parametrize("cutover", [2.5, 3.0, "3", True])
    def test_non_integer_cutover_rejected(self, cutover):
        with pytest.raises(InvalidConfiguration, match="integer"):
            ObservationSet.from_counts(np.arange(10), cutover)

    def test_numpy_integer_cutover_accepted(self):
        obs = ObservationSet.from_counts(np.arange(10), np.int64(4))
        assert obs.cutover == 4
        assert isinstance(obs.cutover, int)

    def test_to_records(self):
        records = ObservationSet.from_counts([7, 8], 2, labels=["q1", "q2"]).to_records()
        assert records[1] == {
            "label": "q2", "period": 2, "outcome": 8.0, "flag": 1, "post_time": 1,
        }


# ---------------------------------------------------------------------------
# generate_series
# ---------------------------------------------------------------------------

class TestGenerateSeries:
    def test_length_and_labels(self, simulated):
        assert len(simulated) == 36
        assert simulated.labels[0] == "2010.1"
        assert simulated.cutover == 29

    def test_deterministic_for_same_seed(self, default_config):
        a = generate_series(default_config)
        b = generate_series(default_config)
        assert a.outcome.tobytes() == b.outcome.tobytes()

    def test_explicit_generator_matches_seed(self, default_config):
        a = generate_series(default_config)
        b = generate_series(default_config, rng=np.random.default_rng(default_config.seed))
        np.testing.assert_array_equal(a.outcome, b.outcome)

    def test_different_seed_differs(self, default_config):
        a = generate_series(default_config)
        b = generate_series(replace(default_config, seed=default_config.seed + 1))
        assert not np.array_equal(a.outcome, b.outcome)

    def test_outcomes_are_integers(self, simulated):
        np.testing.assert_array_equal(simulated.outcome, np.round(simulated.outcome))

    def test_components(self, default_config):
        """Outcome minus base trend minus ramp is exactly the seeded noise, rounded."""
        obs = generate_series(default_config)
        n = default_config.n_periods
        base = np.linspace(10_000, 30_000, n)
        ramp = np.concatenate([np.zeros(28), np.linspace(0, -5_000, 8)])
        noise = np.random.default_rng(default_config.seed).normal(0, 1_000, n)
        np.testing.assert_array_equal(obs.outcome, np.round(base + ramp + noise))

    def test_ramp_starts_at_zero_and_reaches_max_effect(self):
        config = SimulationConfig(noise_sd=1e-9)
        obs = generate_series(config)
        base = np.linspace(10_000, 30_000, 36)
        effect = obs.outcome - np.round(base)
        assert np.all(effect[:29] == 0)
        assert effect[-1] == pytest.approx(-5_000, abs=1)

    @pytest.mark.parametrize(
        "overrides",
        [
            {"noise_sd": 0.0},
            {"noise_sd": -1.0},
            {"noise_sd": float("nan")},
            {"cutover": 0},
            {"cutover": 37},
            {"cutover": 28.5},
            {"start_year": 2018, "end_year": 2017},
        ],
    )
    def test_invalid_parameters(self, default_config, overrides):
        with pytest.raises(InvalidConfiguration):
            generate_series(replace(default_config, **overrides))

    def test_validation_precedes_draws(self, default_config):
        rng = np.random.default_rng(0)
        state = rng.bit_generator.state
        with pytest.raises(InvalidConfiguration):
            generate_series(replace(default_config, noise_sd=-5.0), rng=rng)
        assert rng.bit_generator.state == state
