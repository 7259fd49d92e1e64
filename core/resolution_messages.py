"""User-facing Turkish prompts for confirmation, disambiguation and misses."""

from __future__ import annotations

from typing import Sequence

from core.models import MatchResult, TaskStatus

MAX_DISAMBIGUATION_LINES = 4
MAX_SUGGESTION_LINES = 3


def confirmation_prompt(match: MatchResult) -> str:
    reasons = ", ".join(match.reasons) or "Benzer görev"
    return (
        f'"{match.task.title}" görevini kastettiğinizi mi?\n\n'
        f"Proje: {match.project_name}\n"
        f"Güven: {match.confidence}% eşleşme\n"
        f"Neden: {reasons}"
    )


def disambiguation_text(matches: Sequence[MatchResult]) -> str:
    if not matches:
        return "Görev bulunamadı. Lütfen farklı kelimeler deneyin veya yeni görev oluşturun."

    lines = []
    for index, match in enumerate(matches[:MAX_DISAMBIGUATION_LINES], start=1):
        status = " [Tamamlandı]" if match.task.status is TaskStatus.DONE else f" [{match.task.status.value}]"
        reason = match.reasons[0] if match.reasons else ""
        lines.append(
            f'{index}. "{match.task.title}"{status}\n'
            f"   Proje: {match.project_name} | {match.confidence}% eşleşme\n"
            f"   {reason}"
        )
    body = "\n\n".join(lines)
    return f"Birden fazla görev bulundu:\n\n{body}\n\nLütfen daha spesifik bir görev adı belirtin."


def suggestion_text(matches: Sequence[MatchResult], search_term: str) -> str:
    if not matches:
        return f'"{search_term}" ile eşleşen görev bulunamadı.\n\nYeni görev oluşturmak ister misiniz?'

    suggestions = "\n".join(
        f'{index}. "{match.task.title}" ({match.project_name}) - {match.confidence}% benzer'
        for index, match in enumerate(matches[:MAX_SUGGESTION_LINES], start=1)
    )
    return (
        f'"{search_term}" ile tam eşleşme bulunamadı.\n\n'
        f"Benzer görevler:\n{suggestions}\n\n"
        "Bunlardan birini mi kastettiniz?"
    )


__all__ = ["confirmation_prompt", "disambiguation_text", "suggestion_text"]
