"""
Tests for the ranking breakdown.
"""

from tabulator.features.competitions.types import Judge
from tabulator.features.rankings import compute_breakdown


class TestBreakdown:
    """Scenario: Judge1 A=(8,9) B=(7,7); Judge2 A=(7,9) B=(7,8)."""

    def test_judge_scores_and_ranks(self, contestants_ab, two_judges, scenario_scores, two_criteria_config):
        breakdown = compute_breakdown(contestants_ab, two_judges, scenario_scores, "seg", two_criteria_config)

        assert breakdown.judge_scores == {"j1": {"A": 17.0, "B": 14.0}, "j2": {"A": 16.0, "B": 15.0}}
        assert breakdown.judge_rankings == {"j1": {"A": 1, "B": 2}, "j2": {"A": 1, "B": 2}}

    def test_totals_and_averages(self, contestants_ab, two_judges, scenario_scores, two_criteria_config):
        breakdown = compute_breakdown(contestants_ab, two_judges, scenario_scores, "seg", two_criteria_config)

        assert breakdown.total_scores == {"A": 33.0, "B": 29.0}
        assert breakdown.avg_scores == {"A": 16.5, "B": 14.5}

    def test_criteria_averages(self, contestants_ab, two_judges, scenario_scores, two_criteria_config):
        breakdown = compute_breakdown(contestants_ab, two_judges, scenario_scores, "seg", two_criteria_config)

        assert breakdown.criteria_averages == {
            "A": {"c1": 7.5, "c2": 9.0},
            "B": {"c1": 7.0, "c2": 7.5},
        }

    def test_rankings_match_calculator(self, contestants_ab, two_judges, scenario_scores, two_criteria_config):
        breakdown = compute_breakdown(contestants_ab, two_judges, scenario_scores, "seg", two_criteria_config)

        assert breakdown.rankings["A"].rank == 1
        assert breakdown.rankings["B"].aggregate_score == 14.5

    def test_judge_without_scores_not_averaged(self, contestants_ab, two_judges, scenario_scores, two_criteria_config):
        """A judge who scored nothing counts 0 in their own column only."""
        judges = two_judges + [Judge(id="j3", name="Late")]

        breakdown = compute_breakdown(contestants_ab, judges, scenario_scores, "seg", two_criteria_config)

        assert breakdown.judge_scores["j3"] == {"A": 0.0, "B": 0.0}
        assert breakdown.avg_scores == {"A": 16.5, "B": 14.5}

    def test_unknown_segment(self, contestants_ab, two_judges, scenario_scores, two_criteria_config):
        breakdown = compute_breakdown(contestants_ab, two_judges, scenario_scores, "nope", two_criteria_config)

        assert breakdown.rankings == {}
        assert breakdown.judge_scores == {}

    def test_malformed_judge_entry_counts_as_unscored(self, contestants_ab, two_judges, scenario_scores, two_criteria_config):
        scenario_scores["seg"]["B"]["j2"] = 15

        breakdown = compute_breakdown(contestants_ab, two_judges, scenario_scores, "seg", two_criteria_config)

        assert breakdown.judge_scores["j2"]["B"] == 0
        assert breakdown.total_scores["B"] == 14.0
        assert breakdown.rankings["B"].aggregate_score == 14.0
