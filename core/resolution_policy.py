"""Confidence bands that decide between acting, confirming and disambiguating."""

from __future__ import annotations

from dataclasses import dataclass, replace
from pathlib import Path
from typing import Any, Dict, Mapping, Optional, Sequence, Tuple, Union

import yaml

from core.models import MatchResult, SearchResultSet


class ResolutionPolicyError(RuntimeError):
    """Raised when the resolution policy file is missing or invalid."""


@dataclass(frozen=True)
class ConfidenceThresholds:
    auto_accept: int = 90
    needs_confirmation: int = 60
    show_suggestions: int = 40
    exclude: int = 40
    # Lead a sub-auto-accept top match needs over the runner-up to stand alone.
    runner_up_margin: int = 20
    max_results: int = 5

    def to_dict(self) -> Dict[str, int]:
        return {
            "auto_accept": self.auto_accept,
            "needs_confirmation": self.needs_confirmation,
            "show_suggestions": self.show_suggestions,
            "exclude": self.exclude,
            "runner_up_margin": self.runner_up_margin,
            "max_results": self.max_results,
        }


DEFAULT_THRESHOLDS = ConfidenceThresholds()

Ranked = Union[SearchResultSet, Sequence[MatchResult]]


def _matches(results: Ranked) -> Sequence[MatchResult]:
    if isinstance(results, SearchResultSet):
        return results.matches
    return results


def best_match(results: Ranked, thresholds: ConfidenceThresholds = DEFAULT_THRESHOLDS) -> Optional[MatchResult]:
    """Return the match the caller may act on (possibly after confirming).

    ``None`` means the caller must disambiguate among the ranked list, or
    that there is nothing to show at all.
    """

    matches = _matches(results)
    if not matches:
        return None
    top = matches[0]
    if top.confidence >= thresholds.auto_accept:
        return top
    if len(matches) == 1:
        return top if top.confidence >= thresholds.needs_confirmation else None
    runner_up = matches[1]
    if (
        top.confidence >= thresholds.needs_confirmation
        and top.confidence - runner_up.confidence >= thresholds.runner_up_margin
    ):
        return top
    return None


def needs_confirmation(results: Ranked, thresholds: ConfidenceThresholds = DEFAULT_THRESHOLDS) -> bool:
    matches = _matches(results)
    if not matches:
        return False
    return thresholds.needs_confirmation <= matches[0].confidence < thresholds.auto_accept


class ResolutionPolicy:
    """Loaded resolution policy document."""

    _INT_KEYS = ("auto_accept", "needs_confirmation", "show_suggestions", "exclude")

    def __init__(self, path: Path | str, *, data: Optional[Mapping[str, Any]] = None) -> None:
        self._path = Path(path)
        raw = data if data is not None else self._read_yaml()
        self._policy_version, self._thresholds = self._validate(raw)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "ResolutionPolicy":
        """Instantiate a policy directly from a dictionary (primarily for tests)."""

        return cls(path=Path("<in-memory>"), data=data)

    @property
    def policy_version(self) -> str:
        return self._policy_version

    @property
    def thresholds(self) -> ConfidenceThresholds:
        return self._thresholds

    def _read_yaml(self) -> Mapping[str, Any]:
        if not self._path.exists():
            raise ResolutionPolicyError(f"Resolution policy file not found: {self._path}")
        text = self._path.read_text(encoding="utf-8")
        data = yaml.safe_load(text) or {}
        if not isinstance(data, Mapping):
            raise ResolutionPolicyError("Resolution policy must be a mapping.")
        return data

    def _validate(self, raw: Mapping[str, Any]) -> Tuple[str, ConfidenceThresholds]:
        policy_version = str(raw.get("policy_version") or "unspecified").strip()
        section = raw.get("thresholds") or {}
        if not isinstance(section, Mapping):
            raise ResolutionPolicyError("'thresholds' must be a mapping.")

        overrides: Dict[str, int] = {}
        for key in self._INT_KEYS:
            if key in section:
                overrides[key] = self._score(section[key], key)
        if "runner_up_margin" in raw:
            overrides["runner_up_margin"] = self._score(raw["runner_up_margin"], "runner_up_margin")
        if "max_results" in raw:
            max_results = self._int(raw["max_results"], "max_results")
            if max_results < 1:
                raise ResolutionPolicyError("'max_results' must be at least 1.")
            overrides["max_results"] = max_results

        thresholds = replace(DEFAULT_THRESHOLDS, **overrides)
        if not thresholds.auto_accept >= thresholds.needs_confirmation >= thresholds.exclude:
            raise ResolutionPolicyError(
                "Thresholds must satisfy auto_accept >= needs_confirmation >= exclude "
                f"(got {thresholds.auto_accept}, {thresholds.needs_confirmation}, {thresholds.exclude})."
            )
        return policy_version, thresholds

    def _int(self, value: Any, key: str) -> int:
        if isinstance(value, bool):
            raise ResolutionPolicyError(f"'{key}' must be an integer.")
        try:
            return int(value)
        except (TypeError, ValueError) as exc:
            raise ResolutionPolicyError(f"'{key}' must be an integer.") from exc

    def _score(self, value: Any, key: str) -> int:
        number = self._int(value, key)
        if not 0 <= number <= 100:
            raise ResolutionPolicyError(f"'{key}' must be between 0 and 100.")
        return number


def load_resolution_policy(path: Path | str) -> ConfidenceThresholds:
    """Read thresholds from ``path``; a missing file raises ``ResolutionPolicyError``."""

    return ResolutionPolicy(path).thresholds


__all__ = [
    "ConfidenceThresholds",
    "DEFAULT_THRESHOLDS",
    "ResolutionPolicy",
    "ResolutionPolicyError",
    "best_match",
    "load_resolution_policy",
    "needs_confirmation",
]
