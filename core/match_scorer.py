"""Score how well a spoken task phrase matches a stored task title.

Matching is a cascade of independent rules ordered from strict to loose. Each
rule is a pure function that either claims the pair with a score or passes;
``score_match`` returns the first claim. Scores live on a 0-100 scale so the
resolution policy can apply fixed confidence bands to them.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Callable, Optional, Sequence, Set, Tuple

from core.edit_distance import levenshtein
from core.models import MatchCategory
from core.text_utils import normalize_text, normalize_turkish


@dataclass(frozen=True)
class ScoringWeights:
    """Scores, caps and gates used by the rule cascade."""

    exact_score: int = 100
    case_insensitive_score: int = 95
    single_typo_cap: int = 90
    double_typo_cap: int = 80
    max_typo_distance: int = 2
    # Whole-string typo rules only apply when the longer string exceeds this.
    min_typo_length: int = 3
    partial_max: int = 85
    fuzzy_max: int = 70
    fuzzy_min_similarity: float = 0.5
    # Word containment only counts for words longer than this.
    word_containment_min_length: int = 3
    word_typo_max_distance: int = 2
    word_typo_max_ratio: float = 0.4
    word_exact_weight: float = 1.0
    word_containment_weight: float = 0.8
    word_typo_weight: float = 0.6


DEFAULT_WEIGHTS = ScoringWeights()


@dataclass(frozen=True)
class ScoredMatch:
    score: int
    category: MatchCategory
    reasons: Tuple[str, ...]


@dataclass(frozen=True)
class Comparison:
    """Both sides of a comparison in every normalized form the rules need."""

    search_raw: str
    title_raw: str
    search: str
    title: str
    search_tr: str
    title_tr: str

    @classmethod
    def build(cls, search_term: str, title: str) -> "Comparison":
        search_term = search_term or ""
        title = title or ""
        return cls(
            search_raw=search_term,
            title_raw=title,
            search=normalize_text(search_term),
            title=normalize_text(title),
            search_tr=normalize_turkish(search_term),
            title_tr=normalize_turkish(title),
        )


Rule = Callable[[Comparison, ScoringWeights, int], Optional[ScoredMatch]]


def round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def _plural(count: int, word: str) -> str:
    return f"{count} {word}" if count == 1 else f"{count} {word}s"


# --- Rules ------------------------------------------------------------------
def exact_rule(cmp: Comparison, weights: ScoringWeights, exclude: int) -> Optional[ScoredMatch]:
    if cmp.search != cmp.title:
        return None
    if not cmp.search and cmp.search_raw.strip() != cmp.title_raw.strip():
        return None
    return ScoredMatch(weights.exact_score, MatchCategory.EXACT, ("Exact match",))


def case_insensitive_rule(cmp: Comparison, weights: ScoringWeights, exclude: int) -> Optional[ScoredMatch]:
    if cmp.title_raw.lower().strip() != cmp.search_raw.lower().strip():
        return None
    return ScoredMatch(
        weights.case_insensitive_score,
        MatchCategory.CASE_INSENSITIVE,
        ("Case-insensitive exact match",),
    )


def turkish_equality_rule(cmp: Comparison, weights: ScoringWeights, exclude: int) -> Optional[ScoredMatch]:
    if not cmp.search_tr or cmp.search_tr != cmp.title_tr:
        return None
    return ScoredMatch(
        weights.case_insensitive_score,
        MatchCategory.CASE_INSENSITIVE,
        ("Turkish character normalized match",),
    )


def _typo_score(search: str, title: str, weights: ScoringWeights) -> Optional[Tuple[int, int]]:
    max_len = max(len(search), len(title))
    if max_len <= weights.min_typo_length:
        return None
    # A length gap beyond the allowed distance can never qualify.
    if abs(len(search) - len(title)) > weights.max_typo_distance:
        return None
    distance = levenshtein(search, title)
    if distance > weights.max_typo_distance:
        return None
    similarity = (max_len - distance) / max_len * 100
    cap = weights.single_typo_cap if distance == 1 else weights.double_typo_cap
    return min(cap, round_half_up(similarity)), distance


def typo_rule(cmp: Comparison, weights: ScoringWeights, exclude: int) -> Optional[ScoredMatch]:
    scored = _typo_score(cmp.search, cmp.title, weights)
    if scored is None:
        return None
    score, distance = scored
    return ScoredMatch(
        score,
        MatchCategory.TYPO_CORRECTED,
        (f"Typo correction ({_plural(distance, 'character')} different)",),
    )


def turkish_typo_rule(cmp: Comparison, weights: ScoringWeights, exclude: int) -> Optional[ScoredMatch]:
    scored = _typo_score(cmp.search_tr, cmp.title_tr, weights)
    if scored is None:
        return None
    score, distance = scored
    return ScoredMatch(
        score,
        MatchCategory.TYPO_CORRECTED,
        (f"Turkish typo correction ({_plural(distance, 'character')} different)",),
    )


def _contains_word_run(haystack: Sequence[str], needle: Sequence[str]) -> bool:
    size = len(needle)
    return any(list(haystack[start : start + size]) == list(needle) for start in range(len(haystack) - size + 1))


def containment_coverage(first: str, second: str) -> float:
    """Share of the longer string covered by the shorter one.

    When the shorter string is a run of whole words inside the longer one the
    word ratio is used if it beats the character ratio, so a one-word phrase
    naming the first of two title words is not buried under character counts.
    """

    shorter, longer = sorted((first, second), key=len)
    if not longer:
        return 0.0
    coverage = len(shorter) / len(longer)
    short_words = shorter.split()
    long_words = longer.split()
    if short_words and _contains_word_run(long_words, short_words):
        coverage = max(coverage, len(short_words) / len(long_words))
    return coverage


def partial_rule(cmp: Comparison, weights: ScoringWeights, exclude: int) -> Optional[ScoredMatch]:
    variants = (
        (cmp.search, cmp.title, "Partial text match"),
        (cmp.search_tr, cmp.title_tr, "Turkish-normalized partial text match"),
    )
    for search, title, label in variants:
        if not search or not title:
            continue
        if search not in title and title not in search:
            continue
        coverage = containment_coverage(search, title)
        score = round_half_up(coverage * weights.partial_max)
        if score >= exclude:
            return ScoredMatch(
                score,
                MatchCategory.PARTIAL,
                (f"{label} ({round_half_up(coverage * 100)}% coverage)",),
            )
    return None


def word_similarity(first: str, second: str, weights: ScoringWeights = DEFAULT_WEIGHTS) -> float:
    """Word-overlap similarity between two normalized strings.

    Single-character tokens are ignored. Exact word matches are claimed
    first, then one-way containment, then small typos; every word on either
    side is consumed by at most one match. The sum of match weights is divided
    by the larger word count.
    """

    words1 = [word for word in first.split() if len(word) > 1]
    words2 = [word for word in second.split() if len(word) > 1]
    if not words1 or not words2:
        return 0.0

    used1: Set[int] = set()
    used2: Set[int] = set()
    total = 0.0

    def _claim(predicate: Callable[[str, str], bool], weight: float) -> float:
        gained = 0.0
        for i, word1 in enumerate(words1):
            if i in used1:
                continue
            for j, word2 in enumerate(words2):
                if j in used2:
                    continue
                if predicate(word1, word2):
                    used1.add(i)
                    used2.add(j)
                    gained += weight
                    break
        return gained

    min_len = weights.word_containment_min_length

    def _contains(word1: str, word2: str) -> bool:
        return (len(word1) > min_len and word1 in word2) or (len(word2) > min_len and word2 in word1)

    def _typo(word1: str, word2: str) -> bool:
        if len(word1) <= 2 or len(word2) <= 2:
            return False
        if abs(len(word1) - len(word2)) > weights.word_typo_max_distance:
            return False
        distance = levenshtein(word1, word2)
        longest = max(len(word1), len(word2))
        return distance <= weights.word_typo_max_distance and distance / longest <= weights.word_typo_max_ratio

    total += _claim(lambda a, b: a == b, weights.word_exact_weight)
    total += _claim(_contains, weights.word_containment_weight)
    total += _claim(_typo, weights.word_typo_weight)

    return total / max(len(words1), len(words2))


def fuzzy_rule(cmp: Comparison, weights: ScoringWeights, exclude: int) -> Optional[ScoredMatch]:
    similarity = max(
        word_similarity(cmp.search, cmp.title, weights),
        word_similarity(cmp.search_tr, cmp.title_tr, weights),
    )
    if similarity < weights.fuzzy_min_similarity:
        return None
    return ScoredMatch(
        round_half_up(similarity * weights.fuzzy_max),
        MatchCategory.FUZZY,
        (f"Word similarity ({round_half_up(similarity * 100)}% word overlap)",),
    )


RULES: Tuple[Rule, ...] = (
    exact_rule,
    case_insensitive_rule,
    turkish_equality_rule,
    typo_rule,
    turkish_typo_rule,
    partial_rule,
    fuzzy_rule,
)


def score_match(
    search_term: str,
    title: str,
    *,
    exclude_threshold: int = 40,
    weights: ScoringWeights = DEFAULT_WEIGHTS,
    rules: Sequence[Rule] = RULES,
) -> Optional[ScoredMatch]:
    """Return the first rule's verdict for ``search_term`` vs ``title``.

    ``None`` means no rule considered the pair worth showing.
    """

    comparison = Comparison.build(search_term, title)
    for rule in rules:
        verdict = rule(comparison, weights, exclude_threshold)
        if verdict is not None:
            return verdict
    return None


__all__ = [
    "Comparison",
    "DEFAULT_WEIGHTS",
    "RULES",
    "ScoredMatch",
    "ScoringWeights",
    "case_insensitive_rule",
    "containment_coverage",
    "exact_rule",
    "fuzzy_rule",
    "partial_rule",
    "round_half_up",
    "score_match",
    "turkish_equality_rule",
    "turkish_typo_rule",
    "typo_rule",
    "word_similarity",
]
