from __future__ import annotations

from typing import List

from core.models import MatchCategory, Project, TaskStatus, TaskWithProjectName
from core.resolution_policy import ConfidenceThresholds, best_match, needs_confirmation
from core.task_search import TaskIdentification, find_best_project, project_name_matches, search_tasks


def _tasks(project_name: str, *titles: str) -> List[TaskWithProjectName]:
    return [
        TaskWithProjectName(id=f"{project_name}-{index}", project_id="p1", title=title, project_name=project_name)
        for index, title in enumerate(titles, start=1)
    ]


def test_project_name_matches() -> None:
    assert project_name_matches("Web Sitesi", "web sitesi")
    assert project_name_matches("Web Sitesi Yenileme", "web sitesi")
    assert project_name_matches("Web", "Web Sitesi")
    assert not project_name_matches("Web Sitesi", "")
    assert not project_name_matches("Mobil", "Web")


def test_find_best_project_prefers_exact_then_containment() -> None:
    projects = [Project(id="1", name="Genel"), Project(id="2", name="Web Sitesi"), Project(id="3", name="Web")]
    assert find_best_project("web", projects).id == "3"
    assert find_best_project("sitesi", projects).id == "2"
    assert find_best_project("bilinmeyen", projects).id == "1"
    assert find_best_project(None, projects).id == "1"
    assert find_best_project("web", []) is None


def test_typo_search_finds_dev_planning() -> None:
    tasks = _tasks("Engineering", "Dev Planning", "Development Setup")
    results = search_tasks(tasks, TaskIdentification("Engineering", "dev planing"))

    assert results.top is not None
    assert results.top.task.title == "Dev Planning"
    assert results.top.category is MatchCategory.TYPO_CORRECTED
    assert results.top.confidence >= 80
    best = best_match(results)
    if results.top.confidence >= 90:
        assert best is results.top
        assert not needs_confirmation(results)
    else:
        assert needs_confirmation(results)


def test_turkish_partial_search() -> None:
    tasks = _tasks("Pazarlama", "İçerik Planlama", "Code Review")
    results = search_tasks(tasks, TaskIdentification("Pazarlama", "İçerik"))

    assert [match.task.title for match in results.matches] == ["İçerik Planlama"]
    assert results.top.confidence >= 40
    assert results.top.category in (MatchCategory.PARTIAL, MatchCategory.FUZZY)


def test_unrelated_term_yields_nothing() -> None:
    tasks = _tasks("Engineering", "Dev Planning", "Code Review", "Release Notes")
    results = search_tasks(tasks, TaskIdentification("Engineering", "xyz"))

    assert results.is_empty
    assert results.confident_match is None
    assert not results.needs_disambiguation
    assert best_match(results) is None
    assert not needs_confirmation(results)


def test_search_filters_by_project() -> None:
    tasks = _tasks("Engineering", "Dev Planning") + _tasks("Marketing", "Dev Planning")
    results = search_tasks(tasks, TaskIdentification("marketing", "Dev Planning"))

    assert [match.task.id for match in results.matches] == ["Marketing-1"]
    assert results.confident_match is results.top


def test_search_results_are_ranked_and_deterministic() -> None:
    tasks = _tasks("Finance", "invoice template draft", "invoice template demo", "Payroll")
    identification = TaskIdentification("Finance", "invoice template")

    first = search_tasks(tasks, identification)
    second = search_tasks(tasks, identification)

    assert first == second
    assert [match.confidence for match in first.matches] == [65, 62]
    assert [match.task.title for match in first.matches] == ["invoice template demo", "invoice template draft"]
    assert first.needs_disambiguation
    assert all(match.confidence >= 40 for match in first.matches)


def test_search_truncates_to_max_results() -> None:
    tasks = _tasks("Ops", *[f"Weekly report {index}" for index in range(8)])
    results = search_tasks(
        tasks,
        TaskIdentification("Ops", "weekly report"),
        thresholds=ConfidenceThresholds(max_results=3),
    )
    assert len(results.matches) == 3


def test_search_keeps_done_tasks_as_candidates() -> None:
    tasks = [
        TaskWithProjectName(
            id="t1",
            project_id="p1",
            title="Deploy",
            status=TaskStatus.DONE,
            project_name="Ops",
        )
    ]
    results = search_tasks(tasks, TaskIdentification("Ops", "deploy"))
    assert results.top.task.status is TaskStatus.DONE


def test_project_guess_matching_ignores_spacing_and_turkish_case() -> None:
    projects = [Project(id="g", name="Genel"), Project(id="w", name="Web Sitesi"), Project(id="i", name="İçerik")]

    assert find_best_project("web  sitesi", projects).id == "w"
    assert find_best_project("içerik", projects).id == "i"
    assert find_best_project("ICERIK", projects).id == "i"
    assert project_name_matches("İçerik Planlama", "içerik")
    assert project_name_matches("Web Sitesi", "web  sitesi")


def test_create_and_search_agree_on_project_guesses() -> None:
    projects = [Project(id="g", name="Genel"), Project(id="i", name="İçerik")]
    tasks = [TaskWithProjectName(id="t", project_id="i", title="Blog", project_name="İçerik")]

    results = search_tasks(tasks, TaskIdentification("içerik", "Blog"))

    assert [match.task.id for match in results.matches] == ["t"]
    assert find_best_project("içerik", projects).id == results.top.task.project_id


def test_one_word_prefix_reaches_disambiguation() -> None:
    # Whole-word coverage lifts "api" over the exclusion floor for two-word titles.
    tasks = _tasks("Backend", "api docs", "api tests", "api gateway refactor")
    results = search_tasks(tasks, TaskIdentification("Backend", "api"))

    assert [match.task.title for match in results.matches] == ["api docs", "api tests"]
    assert [match.confidence for match in results.matches] == [43, 43]
    assert all(match.category is MatchCategory.PARTIAL for match in results.matches)
    assert results.needs_disambiguation
    assert best_match(results) is None
