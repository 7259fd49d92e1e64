"""Find the tasks a spoken "<task> in <project>" phrase most likely refers to."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Iterable, List, Optional, Sequence

from core.match_scorer import DEFAULT_WEIGHTS, ScoringWeights, score_match
from core.models import MatchResult, Project, SearchResultSet, TaskWithProjectName
from core.resolution_policy import DEFAULT_THRESHOLDS, ConfidenceThresholds
from core.text_utils import normalize_text, normalize_turkish

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TaskIdentification:
    project_name: str
    task_name: str

    def to_dict(self) -> dict:
        return {"projectName": self.project_name, "taskName": self.task_name}


def _same_project(project_name: str, guess: str) -> bool:
    return normalize_text(project_name) == normalize_text(guess)


def _contains_either_way(project_name: str, guess: str) -> bool:
    # Folded forms so "içerik" and "İçerik" compare equal despite str.lower.
    name = normalize_turkish(project_name)
    wanted = normalize_turkish(guess)
    if not name or not wanted:
        return False
    return wanted in name or name in wanted


def project_name_matches(project_name: str, guess: str) -> bool:
    """Normalized equality, or Turkish-folded containment either way."""

    if not guess or not guess.strip():
        return False
    return _same_project(project_name, guess) or _contains_either_way(project_name, guess)


def find_best_project(guess: Optional[str], projects: Sequence[Project]) -> Optional[Project]:
    """Resolve a project-name guess with the search filter's rules.

    An exact (normalized) name wins over a containment hit; with neither the
    first project is used.
    """

    if not projects:
        return None
    if guess and guess.strip():
        for project in projects:
            if _same_project(project.name, guess):
                return project
        for project in projects:
            if _contains_either_way(project.name, guess):
                return project
        logger.debug("Project guess %r matched nothing; using %r", guess, projects[0].name)
    return projects[0]


def search_tasks(
    tasks: Iterable[TaskWithProjectName],
    identification: TaskIdentification,
    *,
    thresholds: ConfidenceThresholds = DEFAULT_THRESHOLDS,
    weights: ScoringWeights = DEFAULT_WEIGHTS,
) -> SearchResultSet:
    """Score every task of the matching project(s) against the task phrase."""

    pool = [task for task in tasks if project_name_matches(task.project_name, identification.project_name)]
    if not pool:
        logger.debug("No project matched %r", identification.project_name)
        return SearchResultSet()

    scored: List[MatchResult] = []
    for task in pool:
        verdict = score_match(
            identification.task_name,
            task.title,
            exclude_threshold=thresholds.exclude,
            weights=weights,
        )
        if verdict is None or verdict.score < thresholds.exclude:
            continue
        scored.append(
            MatchResult(
                task=task,
                project_name=task.project_name,
                confidence=verdict.score,
                category=verdict.category,
                reasons=verdict.reasons,
            )
        )

    # sorted() is stable, so ties keep snapshot order.
    ranked = tuple(sorted(scored, key=lambda match: match.confidence, reverse=True)[: thresholds.max_results])
    confident = ranked[0] if ranked and ranked[0].confidence >= thresholds.auto_accept else None
    needs_disambiguation = confident is None and len(ranked) >= 2 and ranked[0].confidence < thresholds.auto_accept

    logger.debug(
        "Search %r in %r: %d candidates, %d kept",
        identification.task_name,
        identification.project_name,
        len(pool),
        len(ranked),
    )
    return SearchResultSet(matches=ranked, confident_match=confident, needs_disambiguation=needs_disambiguation)


__all__ = ["TaskIdentification", "find_best_project", "project_name_matches", "search_tasks"]
