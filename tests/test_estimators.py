"""
Tests for the within-subject CV estimators.

Covers:
- Root mean square method (point estimate, t interval, undefined interval)
- Logarithmic method
- Whole-dataset method
- Dispatch, method parsing and confidence level handling
- Properties shared by all methods (non-negativity, ordering, widening)
"""

import math

import numpy as np
import pytest
from scipy.stats import t as student_t

from wscv.core.errors import (
    InvalidInputError,
    InvalidMethodError,
    InvalidResultError,
)
from wscv.stats.schemes.duplicates.core import (
    PairedSubjectStatistics,
    paired_statistics,
)
from wscv.stats.schemes.duplicates.estimators import (
    CVEstimator,
    CVMethod,
    CVResult,
    estimate,
    logarithmic_cv,
    root_mean_cv,
    whole_dataset_cv,
)

MEANS = [10.5, 14.75, 23.75, 30.5, 21.5, 14.5]
DIFFS = [-1, 0.5, 2.5, -1, 1, -1]


def _root_mean_reference(first, second, level):
    x, y = np.asarray(first, float), np.asarray(second, float)
    m, d = (x + y) / 2, x - y
    r = (d**2 / 2) / m**2
    n = len(r)
    crit = student_t.ppf(1 - (1 - level) / 2, n - 1)
    se = np.std(r, ddof=1) / math.sqrt(n)
    mean_r = r.mean()
    return (
        math.sqrt(mean_r) * 100,
        math.sqrt(mean_r - crit * se) * 100,
        math.sqrt(mean_r + crit * se) * 100,
    )


def _log_reference(first, second, level):
    lx, ly = np.log(first), np.log(second)
    n = len(lx)
    sw = math.sqrt(np.mean((lx - ly) ** 2 / 2))
    se = sw / math.sqrt(2 * n)
    crit = student_t.ppf(1 - (1 - level) / 2, n - 1)
    return (
        (math.exp(sw) - 1) * 100,
        (math.exp(sw - crit * se) - 1) * 100,
        (math.exp(sw + crit * se) - 1) * 100,
    )


# ============================================================================
# Root mean square method
# ============================================================================

class TestRootMean:
    """Tests for the root mean square estimator."""

    def test_matches_formula(self, duplicates, example_stats):
        """Point estimate and limits follow the published formulas."""
        cv, lo, hi = _root_mean_reference(*duplicates, 0.90)
        res = estimate(example_stats, CVMethod.ROOT_MEAN, 0.90)
        assert res.point_estimate_percent == pytest.approx(cv, rel=1e-12)
        assert res.lower_ci_percent == pytest.approx(lo, rel=1e-12)
        assert res.upper_ci_percent == pytest.approx(hi, rel=1e-12)

    def test_known_value(self, example_stats):
        """Six-subject example: CV is about 4.94%."""
        res = root_mean_cv(example_stats, 0.90)
        assert res.point_estimate_percent == pytest.approx(4.9408, abs=1e-3)

    def test_critical_value_uses_confidence_level(self, example_stats):
        """90% interval with 6 subjects uses t(0.95, df=5)."""
        res = root_mean_cv(example_stats, 0.90)
        assert res.critical_value == pytest.approx(student_t.ppf(0.95, 5))
        assert res.critical_value == pytest.approx(2.015, abs=1e-3)

    def test_95_percent_critical_value(self, example_stats):
        """95% interval uses t(0.975, df=5), not the 90% quantile."""
        res = root_mean_cv(example_stats, 0.95)
        assert res.critical_value == pytest.approx(2.5706, abs=1e-4)

    def test_interval_brackets_estimate(self, example_stats):
        """lower < CV < upper."""
        res = root_mean_cv(example_stats, 0.90)
        assert res.lower_ci_percent < res.point_estimate_percent < res.upper_ci_percent

    def test_negative_lower_bound_raises(self, example_stats):
        """At 99% the squared-CV lower limit drops below zero."""
        with pytest.raises(InvalidResultError):
            root_mean_cv(example_stats, 0.99)

    def test_zero_mean_raises(self):
        """A zero subject mean is rejected, not divided by."""
        stats = PairedSubjectStatistics(
            subject_count=3,
            per_subject_mean=[10.0, 0.0, 12.0],
            per_subject_difference=[1.0, 0.5, -1.0],
        )
        with pytest.raises(InvalidInputError):
            estimate(stats, CVMethod.ROOT_MEAN, 0.95)

    def test_works_from_means_and_differences_only(self):
        """Raw pairs are not needed for the root mean method."""
        stats = PairedSubjectStatistics(
            subject_count=6, per_subject_mean=MEANS, per_subject_difference=DIFFS
        )
        res = estimate(stats, "root_mean", 0.90)
        assert res.point_estimate_percent == pytest.approx(4.9408, abs=1e-3)


# ============================================================================
# Logarithmic method
# ============================================================================

class TestLogarithmic:
    """Tests for the logarithmic estimator."""

    def test_matches_formula(self, duplicates, example_stats):
        """Point estimate and limits follow the published formulas."""
        cv, lo, hi = _log_reference(*duplicates, 0.90)
        res = logarithmic_cv(example_stats, 0.90)
        assert res.point_estimate_percent == pytest.approx(cv, rel=1e-12)
        assert res.lower_ci_percent == pytest.approx(lo, rel=1e-12)
        assert res.upper_ci_percent == pytest.approx(hi, rel=1e-12)

    def test_known_value(self, example_stats):
        """Six-subject example: CV is about 5.07%."""
        res = logarithmic_cv(example_stats, 0.95)
        assert res.point_estimate_percent == pytest.approx(5.068, abs=2e-3)

    def test_interval_brackets_estimate(self, example_stats):
        res = logarithmic_cv(example_stats, 0.95)
        assert res.lower_ci_percent < res.point_estimate_percent < res.upper_ci_percent

    def test_requires_raw_pairs(self):
        """Means and differences alone cannot give log differences."""
        stats = PairedSubjectStatistics(
            subject_count=6, per_subject_mean=MEANS, per_subject_difference=DIFFS
        )
        with pytest.raises(InvalidInputError):
            estimate(stats, CVMethod.LOGARITHMIC, 0.95)

    @pytest.mark.parametrize("bad", [0.0, -2.0])
    def test_non_positive_measurement_raises(self, bad):
        stats = paired_statistics([10.0, bad, 12.0], [11.0, 3.0, 12.5])
        with pytest.raises(InvalidInputError):
            estimate(stats, CVMethod.LOGARITHMIC, 0.95)

    def test_scale_invariant(self, duplicates):
        """Multiplying every measurement by a constant leaves the CV unchanged."""
        first, second = duplicates
        base = estimate(paired_statistics(first, second), "logarithmic", 0.95)
        scaled = estimate(
            paired_statistics([v * 7.5 for v in first], [v * 7.5 for v in second]),
            "logarithmic",
            0.95,
        )
        assert scaled.point_estimate_percent == pytest.approx(
            base.point_estimate_percent, rel=1e-9
        )


# ============================================================================
# Whole-dataset method
# ============================================================================

class TestWholeDataset:
    """Tests for the whole-dataset estimator."""

    def test_matches_formula(self):
        """sqrt(sum(d^2) / 2n) / mean(means)."""
        stats = PairedSubjectStatistics(
            subject_count=6, per_subject_mean=MEANS, per_subject_difference=DIFFS
        )
        expected = (
            math.sqrt(sum(d * d for d in DIFFS) / (2 * 6)) / (sum(MEANS) / 6) * 100
        )
        res = estimate(stats, CVMethod.WHOLE_DATASET)
        assert res.point_estimate_percent == pytest.approx(expected, rel=1e-12)
        assert res.point_estimate_percent == pytest.approx(4.8593, abs=1e-3)

    def test_never_returns_interval(self, example_stats):
        res = whole_dataset_cv(example_stats)
        assert res.lower_ci_percent is None
        assert res.upper_ci_percent is None
        assert res.confidence_level is None
        assert not res.has_interval

    def test_confidence_level_ignored(self, example_stats):
        """Any level, even an invalid one, is ignored."""
        a = estimate(example_stats, "whole_dataset")
        b = estimate(example_stats, "whole_dataset", confidence_level=1.5)
        assert a == b

    def test_zero_grand_mean_raises(self):
        stats = PairedSubjectStatistics(
            subject_count=2,
            per_subject_mean=[-1.0, 1.0],
            per_subject_difference=[0.2, 0.2],
        )
        with pytest.raises(InvalidInputError):
            estimate(stats, CVMethod.WHOLE_DATASET)

    def test_logs_not_recommended_warning(self, example_stats, caplog):
        with caplog.at_level("WARNING"):
            whole_dataset_cv(example_stats)
        assert "not recommended" in caplog.text


# ============================================================================
# Dispatch and configuration
# ============================================================================

class TestDispatch:
    """Method parsing and confidence level validation."""

    def test_method_enum_values(self):
        assert CVMethod.ROOT_MEAN == "root_mean"
        assert CVMethod.LOGARITHMIC == "logarithmic"
        assert CVMethod.WHOLE_DATASET == "whole_dataset"

    def test_parse_accepts_strings(self):
        assert CVMethod.parse("logarithmic") is CVMethod.LOGARITHMIC
        assert CVMethod.parse(CVMethod.ROOT_MEAN) is CVMethod.ROOT_MEAN

    def test_unknown_method_raises(self, example_stats):
        with pytest.raises(InvalidMethodError):
            estimate(example_stats, "anova", 0.95)

    @pytest.mark.parametrize("method", [CVMethod.ROOT_MEAN, CVMethod.LOGARITHMIC])
    @pytest.mark.parametrize("level", [0.0, 1.0, -0.1, 1.2, float("nan")])
    def test_out_of_range_level_raises(self, example_stats, method, level):
        with pytest.raises(InvalidMethodError):
            estimate(example_stats, method, level)

    @pytest.mark.parametrize("method", [CVMethod.ROOT_MEAN, CVMethod.LOGARITHMIC])
    def test_missing_level_raises(self, example_stats, method):
        with pytest.raises(InvalidMethodError):
            estimate(example_stats, method)

    def test_non_statistics_input_raises(self):
        with pytest.raises(InvalidInputError):
            estimate({"means": MEANS}, "root_mean", 0.95)

    def test_errors_are_value_errors(self, example_stats):
        with pytest.raises(ValueError):
            estimate(example_stats, "root_mean", 1.0)

    def test_estimator_validates_at_construction(self):
        with pytest.raises(InvalidMethodError):
            CVEstimator(CVMethod.ROOT_MEAN, confidence_level=None)
        with pytest.raises(InvalidMethodError):
            CVEstimator("geometric", confidence_level=0.95)
        assert CVEstimator("whole_dataset", confidence_level=None).method is (
            CVMethod.WHOLE_DATASET
        )

    def test_estimator_call_matches_estimate(self, example_stats):
        est = CVEstimator(CVMethod.LOGARITHMIC, 0.90)
        assert est(example_stats) == estimate(example_stats, "logarithmic", 0.90)


# ============================================================================
# Properties common to all methods
# ============================================================================

class TestProperties:
    """Invariants that hold across estimators."""

    @pytest.mark.parametrize("method", list(CVMethod))
    def test_point_estimate_non_negative(self, example_stats, method):
        res = estimate(example_stats, method, 0.90)
        assert res.point_estimate_percent >= 0

    @pytest.mark.parametrize("method", list(CVMethod))
    def test_identical_inputs_identical_outputs(self, example_stats, method):
        a = estimate(example_stats, method, 0.90)
        b = estimate(example_stats, method, 0.90)
        assert a == b

    @pytest.mark.parametrize("method", [CVMethod.ROOT_MEAN, CVMethod.LOGARITHMIC])
    def test_higher_level_widens_interval(self, example_stats, method):
        narrow = estimate(example_stats, method, 0.85)
        wide = estimate(example_stats, method, 0.95)
        assert wide.lower_ci_percent < narrow.lower_ci_percent
        assert wide.upper_ci_percent > narrow.upper_ci_percent
        assert wide.point_estimate_percent == narrow.point_estimate_percent

    @pytest.mark.parametrize("method", list(CVMethod))
    def test_zero_differences_give_zero_cv(self, method):
        stats = paired_statistics([5.0, 8.0, 13.0], [5.0, 8.0, 13.0])
        res = estimate(stats, method, 0.95)
        assert res.point_estimate_percent == 0.0
        if res.has_interval:
            assert res.lower_ci_percent == 0.0
            assert res.upper_ci_percent == 0.0

    @pytest.mark.parametrize("method", [CVMethod.LOGARITHMIC, CVMethod.WHOLE_DATASET])
    def test_two_subjects(self, method):
        """n = 2 gives one degree of freedom and no division error."""
        stats = paired_statistics([10.0, 20.0], [11.0, 19.0])
        res = estimate(stats, method, 0.95)
        assert math.isfinite(res.point_estimate_percent)
        assert res.subject_count == 2

    def test_two_subjects_root_mean(self):
        """Root mean with n = 2 either gives an interval or reports it undefined."""
        stats = paired_statistics([10.0, 20.0], [11.0, 19.5])
        try:
            res = estimate(stats, CVMethod.ROOT_MEAN, 0.50)
        except InvalidResultError:
            return
        assert res.critical_value == pytest.approx(student_t.ppf(0.75, 1))
        assert res.lower_ci_percent <= res.point_estimate_percent

    def test_equal_normalised_cv_gives_degenerate_interval(self):
        """When every subject has the same squared CV, SE is zero."""
        stats = paired_statistics([10.0, 20.0, 40.0], [11.0, 22.0, 44.0])
        res = estimate(stats, CVMethod.ROOT_MEAN, 0.95)
        assert res.lower_ci_percent == pytest.approx(res.point_estimate_percent)
        assert res.upper_ci_percent == pytest.approx(res.point_estimate_percent)


class TestResultPayload:
    """CVResult <-> ledger payload."""

    def test_payload_round_trip(self, example_stats):
        res = estimate(example_stats, CVMethod.LOGARITHMIC, 0.90)
        assert CVResult.from_payload(res.to_payload()) == res

    def test_payload_keys(self, example_stats):
        payload = estimate(example_stats, CVMethod.WHOLE_DATASET).to_payload()
        assert payload["method"] == "whole_dataset"
        assert payload["lower_ci_percent"] is None
        assert payload["n"] == 6


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
