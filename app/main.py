"""Assemble the task agent and run the interactive CLI loop."""

from __future__ import annotations

import asyncio
import logging
from typing import Optional

from app.config import (
    get_command_log_path,
    get_log_backup_count,
    get_log_level,
    get_log_max_bytes,
    get_log_redaction_patterns,
    get_openai_api_key,
    get_oracle_max_tokens,
    get_oracle_model,
    get_oracle_temperature,
    get_resolution_policy_path,
    get_task_store_path,
    is_command_log_enabled,
    is_log_redaction_enabled,
)
from core.command_log import CommandLogger
from core.command_oracle import CommandOracle, OpenAICommandOracle
from core.resolution_policy import DEFAULT_THRESHOLDS, ConfidenceThresholds, load_resolution_policy
from core.task_agent import (
    AgentResult,
    CommandFailed,
    CompleteSucceeded,
    CreateSucceeded,
    NeedsConfirmation,
    TaskAgent,
    TaskRepository,
    UpdateSucceeded,
)
from stores.task_store import JsonTaskStore

logger = logging.getLogger(__name__)

_LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def configure_logging(level: Optional[str] = None) -> None:
    logging.basicConfig(level=level or get_log_level(), format=_LOG_FORMAT)


# -- Agent construction --------------------------------------------------------
def load_thresholds() -> ConfidenceThresholds:
    path = get_resolution_policy_path()
    if not path.exists():
        logger.warning("Resolution policy %s not found; using built-in thresholds", path)
        return DEFAULT_THRESHOLDS
    return load_resolution_policy(path)


def build_store() -> JsonTaskStore:
    return JsonTaskStore(get_task_store_path())


def build_agent(
    *,
    repository: Optional[TaskRepository] = None,
    oracle: Optional[CommandOracle] = None,
) -> TaskAgent:
    """Wire the agent for the CLI and the web API.

    WHAT: instantiate the oracle, repository, thresholds and command log.
    WHY: both entry points must share identical wiring so behavior stays
    reproducible across environments.
    HOW: pull runtime configuration from ``app.config`` helpers; callers may
    pass their own repository or oracle.
    """

    command_logger = CommandLogger(
        log_path=get_command_log_path(),
        enabled=is_command_log_enabled(),
        redact=is_log_redaction_enabled(),
        patterns=get_log_redaction_patterns(),
        max_bytes=get_log_max_bytes(),
        backup_count=get_log_backup_count(),
    )
    oracle = oracle or OpenAICommandOracle(
        api_key=get_openai_api_key(),
        model=get_oracle_model(),
        max_tokens=get_oracle_max_tokens(),
        temperature=get_oracle_temperature(),
    )
    return TaskAgent(
        oracle,
        repository or build_store(),
        thresholds=load_thresholds(),
        command_logger=command_logger,
    )


def describe_result(result: Optional[AgentResult]) -> str:
    """One-line summary of an agent result for terminal output."""

    if result is None:
        return "İstek iptal edildi."
    if isinstance(result, CreateSucceeded):
        request = result.request
        return (
            f'"{request.title}" görevi {request.project_name} projesine eklendi '
            f"(son tarih {request.deadline.date().isoformat()})."
        )
    if isinstance(result, UpdateSucceeded):
        changed = ", ".join(result.changed_fields) or "-"
        return f'"{result.title}" ({result.project_name}) güncellendi: {changed}.'
    if isinstance(result, CompleteSucceeded):
        return f'"{result.title}" ({result.project_name}) tamamlandı olarak işaretlendi.'
    if isinstance(result, NeedsConfirmation):
        return result.message
    if isinstance(result, CommandFailed):
        error = result.error
        suggestion = error.details.get("suggestion") if error.details else None
        text = f"{error.user_message} ({error.message})"
        return f"{text}\n{suggestion}" if suggestion else text
    return str(result)


# -- Interactive CLI loop ------------------------------------------------------
async def _settle_confirmation(agent: TaskAgent, result: Optional[AgentResult]) -> Optional[AgentResult]:
    """Prompt until the pending confirmation is resolved or abandoned."""

    while isinstance(result, NeedsConfirmation):
        context = result.confirmation
        print(result.message)
        if context.needs_confirmation and context.top_match is not None:
            answer = input("Onay (e/h/iptal): ").strip().lower()
            if answer in {"e", "evet", "y", "yes"}:
                result = await agent.confirm_task_match(context.top_match)
            elif answer in {"h", "hayır", "hayir", "n", "no"}:
                result = agent.reject_and_disambiguate()
            else:
                agent.cancel()
                return None
            continue

        answer = input("Görev numarası (boş = iptal): ").strip()
        if not answer.isdigit() or not 1 <= int(answer) <= len(context.candidates):
            agent.cancel()
            return None
        result = await agent.confirm_task_match(context.candidates[int(answer) - 1])
    return result


async def run_cli(agent: TaskAgent, store: JsonTaskStore) -> None:
    print("Görev asistanı hazır. ':projects', ':add-project <isim>', ':tasks' veya 'quit'.")

    while True:
        try:
            message = input("You: ")
        except (EOFError, KeyboardInterrupt):
            print("\nExiting.")
            break

        text = message.strip()
        if text.lower() in {"quit", "exit"}:
            print("Goodbye!")
            break
        if not text:
            continue
        if text == ":projects":
            for project in store.list_projects():
                print(f"- {project.name}")
            continue
        if text.startswith(":add-project "):
            project = store.create_project(text[len(":add-project ") :])
            print(f"Proje eklendi: {project.name}")
            continue
        if text == ":tasks":
            for task in store.list_tasks():
                print(f"- [{task.status.value}] {task.title} ({task.project_name})")
            continue

        try:
            result = await agent.analyze(text, store.list_projects(), store.list_tasks())
            result = await _settle_confirmation(agent, result)
        except (EOFError, KeyboardInterrupt):
            agent.cancel()
            print("\nExiting.")
            break
        print()
        print(f"Agent: {describe_result(result)}")
        print()


def main() -> None:
    """Minimal CLI driver: typed text stands in for the speech transcript."""

    configure_logging()
    store = build_store()
    agent = build_agent(repository=store)
    asyncio.run(run_cli(agent, store))


if __name__ == "__main__":
    main()
