from __future__ import annotations

import asyncio
import json
from pathlib import Path
from typing import Iterator

import pytest

from app import main
from core.errors import NotFoundError
from core.resolution_policy import DEFAULT_THRESHOLDS
from core.task_agent import AgentStatus, CommandFailed, CompleteSucceeded, TaskAgent
from stores.task_store import JsonTaskStore


class StubOracle:
    def __init__(self, *responses: str) -> None:
        self.responses = list(responses)

    async def interpret(self, transcript: str, current_date_iso: str, project_names) -> str:
        return self.responses.pop(0)


def _answers(monkeypatch: pytest.MonkeyPatch, *values: str) -> None:
    queue: Iterator[str] = iter(values)
    monkeypatch.setattr("builtins.input", lambda prompt="": next(queue))


def _store_with_tasks(tmp_path: Path) -> JsonTaskStore:
    store = JsonTaskStore(tmp_path / "tasks.json")
    project = store.create_project("Finans")
    for title in ("invoice template draft", "invoice template demo", "Weekly report 1"):
        asyncio.run(store.create_task({"project_id": project.id, "title": title}))
    return store


def _complete(task_name: str) -> str:
    return json.dumps(
        {"commandType": "COMPLETE", "taskIdentification": {"projectName": "Finans", "taskName": task_name}}
    )


def test_build_agent_reads_configuration(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    policy_path = tmp_path / "policy.yml"
    policy_path.write_text("thresholds:\n  auto_accept: 95\n", encoding="utf-8")
    monkeypatch.setenv("RESOLUTION_POLICY_PATH", str(policy_path))
    monkeypatch.setenv("TASK_STORE_PATH", str(tmp_path / "tasks.json"))

    agent = main.build_agent(oracle=StubOracle())

    assert agent.thresholds.auto_accept == 95
    assert main.build_store().storage_path == tmp_path / "tasks.json"


def test_missing_policy_falls_back_to_defaults(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("RESOLUTION_POLICY_PATH", str(tmp_path / "missing.yml"))
    assert main.load_thresholds() == DEFAULT_THRESHOLDS


def test_describe_result_messages() -> None:
    assert main.describe_result(None) == "İstek iptal edildi."
    complete = CompleteSucceeded(task_id="t1", title="Rapor", project_name="Finans")
    assert main.describe_result(complete) == '"Rapor" (Finans) tamamlandı olarak işaretlendi.'
    failure = CommandFailed(NotFoundError("Görev bulunamadı", details={"suggestion": "Yeni görev?"}).to_agent_error())
    assert main.describe_result(failure).endswith("\nYeni görev?")


def test_cli_selects_candidate_by_number(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    store = _store_with_tasks(tmp_path)
    agent = TaskAgent(StubOracle(_complete("invoice template")), store)
    _answers(monkeypatch, "2")

    pending = asyncio.run(agent.analyze("invoice template bitti", store.list_projects(), store.list_tasks()))
    result = asyncio.run(main._settle_confirmation(agent, pending))

    assert isinstance(result, CompleteSucceeded)
    assert result.title == "invoice template draft"


def test_cli_rejects_then_cancels(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    store = _store_with_tasks(tmp_path)
    agent = TaskAgent(StubOracle(_complete("weekly report")), store)
    _answers(monkeypatch, "h", "")

    pending = asyncio.run(agent.analyze("weekly report bitti", store.list_projects(), store.list_tasks()))
    result = asyncio.run(main._settle_confirmation(agent, pending))

    assert result is None
    assert agent.status is AgentStatus.IDLE


def test_run_cli_handles_project_commands(tmp_path: Path, monkeypatch: pytest.MonkeyPatch, capsys) -> None:
    store = JsonTaskStore(tmp_path / "tasks.json")
    agent = TaskAgent(StubOracle(), store)
    _answers(monkeypatch, ":add-project Finans", ":projects", "quit")

    asyncio.run(main.run_cli(agent, store))

    output = capsys.readouterr().out
    assert "Proje eklendi: Finans" in output
    assert "- Finans" in output
    assert "Goodbye!" in output
