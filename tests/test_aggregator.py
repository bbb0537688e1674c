import random

import pytest

from a11y_harness.application.aggregator import (
    DEFAULT_AUTOMATABLE,
    DenominatorSuccessRate,
    DensitySuccessRate,
    ResultAggregator,
    build_policy,
)
from a11y_harness.domain.entities import ReportStatus, ToolSuccess
from helpers import failure, success


def test_empty_results_is_error_with_no_metrics():
    report = ResultAggregator().aggregate([], repository="acme/site")

    assert report.status is ReportStatus.ERROR
    assert report.urls_analyzed == 0
    assert report.urls_succeeded == 0
    assert report.error_count is None
    assert report.warning_count is None
    assert report.level_a is None
    assert report.success_rate is None
    assert report.mean_score is None


def test_all_failures_is_error_with_no_metrics():
    results = [failure("https://x.com"), failure("https://x.com/a", reason="timeout")]
    report = ResultAggregator().aggregate(results, repository="acme/site", homepage="https://x.com", tool="axe")

    assert report.status is ReportStatus.ERROR
    assert report.urls_analyzed == 2
    assert report.urls_succeeded == 0
    for field in (
        "error_count", "warning_count", "notice_count",
        "level_a", "level_aa", "level_aaa", "level_unknown",
        "success_rate", "mean_score", "error_mean", "warning_mean",
        "categories", "total_criteria", "automatable_criteria",
    ):
        assert getattr(report, field) is None, field
    assert report.tool == "axe"
    assert report.homepage == "https://x.com"
    assert report.url_results == tuple(results)


def test_sums_successes_and_counts_failures():
    results = [
        success("https://x.com", errors=3, warnings=1, level_a=2, level_aa=1),
        failure("https://x.com/login"),
        success("https://x.com/about", errors=5, warnings=0, level_aa=4, level_unknown=1),
    ]
    report = ResultAggregator(DensitySuccessRate()).aggregate(results, repository="acme/site")

    assert report.status is ReportStatus.SUCCESS
    assert report.urls_analyzed == 3
    assert report.urls_succeeded == 2
    assert report.error_count == 8
    assert report.warning_count == 1
    assert (report.level_a, report.level_aa, report.level_aaa, report.level_unknown) == (2, 5, 0, 1)
    assert report.success_rate == pytest.approx(1 - 8 / 9)


def test_zero_violations_is_full_density_rate():
    report = ResultAggregator().aggregate([success(errors=0, warnings=0)])

    assert report.status is ReportStatus.SUCCESS
    assert report.error_count == 0
    assert report.success_rate == 1.0


def test_result_does_not_depend_on_order():
    results = [
        success(f"https://x.com/{i}", errors=i, warnings=i % 3, level_a=i // 2, level_aa=i - i // 2)
        for i in range(8)
    ] + [failure("https://x.com/broken")]
    aggregator = ResultAggregator()
    expected = aggregator.aggregate(results)

    rng = random.Random(7)
    for _ in range(5):
        shuffled = results[:]
        rng.shuffle(shuffled)
        report = aggregator.aggregate(shuffled)
        assert report.error_count == expected.error_count
        assert report.warning_count == expected.warning_count
        assert report.level_a == expected.level_a
        assert report.level_aa == expected.level_aa
        assert report.success_rate == expected.success_rate
        assert report.urls_succeeded == expected.urls_succeeded


@pytest.mark.parametrize("errors,warnings", [(0, 0), (1, 0), (0, 1), (3, 7), (100, 1)])
def test_density_rate_stays_within_unit_interval(errors, warnings):
    rate = DensitySuccessRate().rate(errors, warnings)

    assert 0.0 <= rate <= 1.0


def test_denominator_rate_uses_automatable_criteria():
    policy = DenominatorSuccessRate()

    assert DEFAULT_AUTOMATABLE == 34
    assert policy.rate(0, 10) == 1.0
    assert policy.rate(17, 0) == pytest.approx(0.5)


def test_denominator_rate_is_not_clamped():
    policy = DenominatorSuccessRate(26)

    assert policy.rate(30, 0) == pytest.approx(-0.1538, abs=1e-4)


def test_denominator_rejects_non_positive_criteria():
    with pytest.raises(ValueError):
        DenominatorSuccessRate(0)


def test_build_policy_by_name():
    assert isinstance(build_policy("density"), DensitySuccessRate)
    policy = build_policy("denominator", 50)
    assert isinstance(policy, DenominatorSuccessRate)
    assert policy.automatable_criteria == 50

    with pytest.raises(ValueError):
        build_policy("median")


def test_mean_score_ignores_results_without_score():
    results = [
        ToolSuccess(url="https://x.com", error_count=1, warning_count=0, level_unknown=1, score=0.8),
        ToolSuccess(url="https://x.com/a", error_count=0, warning_count=2, score=0.6),
        ToolSuccess(url="https://x.com/b", error_count=0, warning_count=0),
    ]
    report = ResultAggregator().aggregate(results)

    assert report.mean_score == pytest.approx(0.7)


def test_mean_score_is_none_when_no_tool_scores():
    report = ResultAggregator().aggregate([success(errors=2)])

    assert report.mean_score is None


def test_category_counts_and_means_per_successful_url():
    results = [
        ToolSuccess(url="https://x.com", error_count=4, warning_count=1, level_unknown=4,
                    categories={"error": 3, "contrast": 1, "alert": 1, "feature": 2, "aria": 5}),
        ToolSuccess(url="https://x.com/a", error_count=2, warning_count=3, level_unknown=2,
                    categories={"error": 2, "alert": 3, "structure": 7}),
        failure("https://x.com/b"),
    ]
    report = ResultAggregator().aggregate(results)

    assert report.categories == {"error": 5, "contrast": 1, "alert": 4, "feature": 2, "aria": 5, "structure": 7}
    assert report.error_mean == pytest.approx(3.0)
    assert report.warning_mean == pytest.approx(2.0)


def test_categories_absent_for_engines_without_them():
    report = ResultAggregator().aggregate([success(errors=1)])

    assert report.categories is None


def test_denominator_policy_reports_its_criteria():
    report = ResultAggregator(DenominatorSuccessRate(30)).aggregate([success(errors=3)])

    assert (report.total_criteria, report.automatable_criteria) == (78, 30)
    assert report.success_rate == pytest.approx(0.9)


def test_density_policy_reports_no_criteria():
    report = ResultAggregator().aggregate([success(errors=3)])

    assert report.total_criteria is None
    assert report.automatable_criteria is None
