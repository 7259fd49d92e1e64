from __future__ import annotations

import pytest

from core.match_scorer import (
    DEFAULT_WEIGHTS,
    Comparison,
    ScoringWeights,
    containment_coverage,
    fuzzy_rule,
    round_half_up,
    score_match,
    word_similarity,
)
from core.models import MatchCategory


@pytest.mark.parametrize("title", ["Dev Planning", "İçerik Planlama", "x", "Fix login bug"])
def test_identical_strings_score_exact(title: str) -> None:
    verdict = score_match(title, title)
    assert verdict is not None
    assert verdict.score == 100
    assert verdict.category is MatchCategory.EXACT
    assert verdict.reasons == ("Exact match",)


def test_case_and_punctuation_still_exact() -> None:
    verdict = score_match("dev planning", "Dev Planning!")
    assert verdict is not None
    assert verdict.category is MatchCategory.EXACT


def test_turkish_folding_scores_case_insensitive() -> None:
    verdict = score_match("icerik planlama", "İçerik Planlama")
    assert verdict is not None
    assert verdict.score == 95
    assert verdict.category is MatchCategory.CASE_INSENSITIVE
    assert verdict.reasons == ("Turkish character normalized match",)


def test_single_typo_is_capped() -> None:
    verdict = score_match("dev planing", "Dev Planning")
    assert verdict is not None
    assert verdict.category is MatchCategory.TYPO_CORRECTED
    assert verdict.score == 90
    assert verdict.reasons == ("Typo correction (1 character different)",)


def test_double_typo_uses_lower_cap() -> None:
    verdict = score_match("plaxxing", "planning")
    assert verdict is not None
    assert verdict.category is MatchCategory.TYPO_CORRECTED
    assert verdict.score == 75
    assert verdict.reasons == ("Typo correction (2 characters different)",)


def test_typo_rule_skips_short_strings() -> None:
    verdict = score_match("abc", "abd")
    assert verdict is not None
    # Only the word-level typo pass applies to three-letter strings.
    assert verdict.category is MatchCategory.FUZZY
    assert verdict.score == 42


def test_lower_edit_distance_never_scores_lower() -> None:
    exact = score_match("planning", "planning")
    one_off = score_match("planning", "planing")
    two_off = score_match("planning", "plaxxing")
    assert exact is not None and one_off is not None and two_off is not None
    assert exact.score >= one_off.score >= two_off.score
    assert one_off.score == 88


def test_partial_match_uses_word_coverage() -> None:
    verdict = score_match("İçerik", "İçerik Planlama")
    assert verdict is not None
    assert verdict.category is MatchCategory.PARTIAL
    assert verdict.score == 43
    assert verdict.reasons == ("Partial text match (50% coverage)",)


def test_partial_match_below_exclude_is_dropped() -> None:
    assert score_match("bug", "Fix the very long login flow bug") is None


def test_partial_match_respects_exclude_threshold() -> None:
    verdict = score_match("İçerik", "İçerik Planlama", exclude_threshold=50)
    assert verdict is not None
    assert verdict.category is MatchCategory.FUZZY
    assert verdict.score == 35


def test_containment_coverage() -> None:
    assert containment_coverage("invoice template", "invoice template demo") == pytest.approx(16 / 21)
    assert containment_coverage("icerik", "icerik planlama") == pytest.approx(0.5)
    assert containment_coverage("", "") == 0.0


def test_word_similarity_counts_each_word_once() -> None:
    # "report" may only be claimed by one of the two title words.
    assert word_similarity("report report", "report summary") == pytest.approx(0.5)
    assert word_similarity("weekly report", "report weekly") == pytest.approx(1.0)
    assert word_similarity("a b", "a b") == 0.0


def test_word_similarity_mixes_containment_and_typos() -> None:
    similarity = word_similarity("budget reports draft", "budget report drafting")
    # budget exact (1.0) + report contained in reports (0.8) + draft in drafting (0.8)
    assert similarity == pytest.approx(2.6 / 3)


def test_fuzzy_rule_scores_word_overlap() -> None:
    verdict = fuzzy_rule(Comparison.build("weekly sales report", "sales report weekly"), DEFAULT_WEIGHTS, 40)
    assert verdict is not None
    assert verdict.category is MatchCategory.FUZZY
    assert verdict.score == 70
    assert verdict.reasons == ("Word similarity (100% word overlap)",)


def test_unrelated_strings_do_not_match() -> None:
    assert score_match("xyz", "Dev Planning") is None
    assert score_match("xyz", "Code Review") is None


def test_custom_weights_override_caps() -> None:
    weights = ScoringWeights(single_typo_cap=85)
    verdict = score_match("dev planing", "Dev Planning", weights=weights)
    assert verdict is not None
    assert verdict.score == 85


def test_round_half_up() -> None:
    assert round_half_up(42.5) == 43
    assert round_half_up(61.8) == 62
    assert round_half_up(0.49) == 0


def test_word_run_coverage_applies_to_short_prefixes() -> None:
    verdict = score_match("api", "api docs")
    assert verdict is not None
    assert verdict.category is MatchCategory.PARTIAL
    assert verdict.score == 43
    assert verdict.reasons == ("Partial text match (50% coverage)",)
    # Three title words leave a single word below the floor.
    assert score_match("api", "api gateway refactor") is None
