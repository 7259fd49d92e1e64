"""FastAPI application exposing the task agent over HTTP."""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from fastapi import FastAPI, HTTPException
from pydantic import BaseModel, Field

from app.main import build_agent, build_store
from core.task_agent import AgentResult, AgentStatus, TaskAgent
from stores.task_store import JsonTaskStore, TaskStoreError

logger = logging.getLogger(__name__)


class AnalyzeRequest(BaseModel):
    transcript: str
    transcript_confidence: Optional[float] = Field(default=None, ge=0.0, le=1.0)


class ConfirmRequest(BaseModel):
    task_id: str


class ProjectRequest(BaseModel):
    name: str


def _result_payload(agent: TaskAgent, result: Optional[AgentResult]) -> Dict[str, Any]:
    return {
        "result": result.to_dict() if result is not None else None,
        "state": agent.state.to_dict(),
    }


def create_app(
    agent: Optional[TaskAgent] = None,
    *,
    store: Optional[JsonTaskStore] = None,
) -> FastAPI:
    """WHAT: instantiate FastAPI around one ``TaskAgent`` and its task store.

    WHY: the HTTP surface reuses the same wiring as the CLI so a command
    resolved over the API behaves exactly like one typed in the terminal.
    HOW: accept dependency overrides (tests), cache them on ``app.state`` and
    register routes that read the task snapshot from the store before every
    analysis.
    """
    task_store = store or build_store()
    task_agent = agent or build_agent(repository=task_store)

    app = FastAPI(title="Voice Task Agent API", version="1.0.0")
    app.state.store = task_store
    app.state.agent = task_agent

    @app.get("/api/health")
    def health_check() -> Dict[str, Any]:
        """Cheap liveness probe; never touches the oracle."""
        return {
            "status": "ok",
            "agent_status": app.state.agent.status.value,
            "timestamp": datetime.now(tz=timezone.utc).isoformat(),
        }

    @app.get("/api/state")
    def agent_state() -> Dict[str, Any]:
        return app.state.agent.state.to_dict()

    @app.get("/api/projects")
    def list_projects() -> Dict[str, List[Dict[str, Any]]]:
        return {"projects": [project.to_dict() for project in app.state.store.list_projects()]}

    @app.post("/api/projects")
    def create_project(payload: ProjectRequest) -> Dict[str, Any]:
        try:
            project = app.state.store.create_project(payload.name)
        except TaskStoreError as exc:
            raise HTTPException(status_code=400, detail=str(exc)) from exc
        return project.to_dict()

    @app.get("/api/tasks")
    def list_tasks() -> Dict[str, List[Dict[str, Any]]]:
        return {"tasks": [task.to_dict() for task in app.state.store.list_tasks()]}

    @app.post("/api/agent/analyze")
    async def analyze(payload: AnalyzeRequest) -> Dict[str, Any]:
        """Run one transcript through the agent.

        Failures are part of the response body (``result.kind == "failure"``);
        only a busy agent maps to an HTTP error so clients can tell a refused
        request from a command that ran and failed.
        """
        agent: TaskAgent = app.state.agent
        if agent.status in (AgentStatus.ANALYZING, AgentStatus.CREATING, AgentStatus.AWAITING_CONFIRMATION):
            logger.info("Refusing analyze while agent is %s", agent.status.value)
            raise HTTPException(status_code=409, detail=f"Agent is busy ({agent.status.value}).")
        result = await agent.analyze(
            payload.transcript,
            app.state.store.list_projects(),
            app.state.store.list_tasks(),
            transcript_confidence=payload.transcript_confidence,
        )
        return _result_payload(agent, result)

    @app.post("/api/agent/confirm")
    async def confirm(payload: ConfirmRequest) -> Dict[str, Any]:
        agent: TaskAgent = app.state.agent
        context = agent.confirmation
        if context is None:
            raise HTTPException(status_code=409, detail="No command is awaiting confirmation.")
        selected = context.find_candidate(payload.task_id)
        if selected is None:
            logger.info("Task %s is not a pending candidate", payload.task_id)
            raise HTTPException(status_code=404, detail="Task is not among the pending candidates.")
        result = await agent.confirm_task_match(selected)
        return _result_payload(agent, result)

    @app.post("/api/agent/reject")
    def reject() -> Dict[str, Any]:
        agent: TaskAgent = app.state.agent
        return _result_payload(agent, agent.reject_and_disambiguate())

    @app.post("/api/agent/create-new")
    def create_new() -> Dict[str, Any]:
        agent: TaskAgent = app.state.agent
        return _result_payload(agent, agent.create_new_task())

    @app.post("/api/agent/cancel")
    def cancel() -> Dict[str, Any]:
        agent: TaskAgent = app.state.agent
        agent.cancel()
        return _result_payload(agent, None)

    @app.post("/api/agent/retry")
    async def retry() -> Dict[str, Any]:
        agent: TaskAgent = app.state.agent
        if not agent.has_retry:
            raise HTTPException(status_code=409, detail="Nothing to retry.")
        if agent.status is AgentStatus.AWAITING_CONFIRMATION:
            agent.cancel()
        result = await agent.retry_last_analysis()
        return _result_payload(agent, result)

    @app.post("/api/agent/reset")
    def reset() -> Dict[str, Any]:
        agent: TaskAgent = app.state.agent
        agent.reset()
        return _result_payload(agent, None)

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn
    from app.config import get_web_ui_host, get_web_ui_port

    uvicorn.run(
        "app.web_api:app",
        host=get_web_ui_host(),
        port=get_web_ui_port(),
        reload=False,
    )
