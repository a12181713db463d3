# SPDX-FileCopyrightText: Copyright (c) 2025 NVIDIA CORPORATION & AFFILIATES. All rights reserved.
# SPDX-License-Identifier: Apache-2.0

"""
Shared data model used by the API clients, the trigger chain and the pipeline.

This module MUST NOT import the clients or the pipeline to avoid cycles.
"""

from __future__ import annotations

from collections import Counter
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Mapping, Optional
from urllib.parse import urlparse

from .exceptions import MalformedStatusError


class CIState(str, Enum):
    """Commit status states reported by the GitHub statuses API."""

    SUCCESS = "success"
    PENDING = "pending"
    FAILURE = "failure"
    ERROR = "error"


class ChainOutcome(str, Enum):
    """How a single target's trigger chain ended."""

    TRIGGERED = "triggered"
    DRY_RUN = "dry_run"
    NO_CANDIDATES = "no_candidates"
    # every candidate was skipped by the workflow allow-list
    FILTERED_OUT = "filtered_out"
    # walk halted on a non-success or too-fresh build
    NOT_ELIGIBLE = "not_eligible"
    TRIGGER_FAILED = "trigger_failed"
    CANCELLED = "cancelled"


def parse_iso8601(value: Any) -> datetime:
    """Parse a GitHub timestamp ("2025-12-29T10:52:07Z"). Naive values are treated as UTC."""
    ss = str(value or "").strip()
    if not ss:
        raise ValueError("empty timestamp")
    if ss.endswith("Z"):
        ss = ss[:-1] + "+00:00"
    dt = datetime.fromisoformat(ss)
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt


def build_slug_from_url(url: str) -> str:
    """Return the last non-empty path segment of a build URL.

    Example: "https://app.bitrise.io/build/0f2c9a1b8e7d" -> "0f2c9a1b8e7d"
    """
    segments = [s for s in (urlparse(str(url or "")).path or "").split("/") if s]
    if not segments:
        raise ValueError(f"no build slug in target_url {url!r}")
    return segments[-1]


@dataclass(frozen=True)
class Target:
    """One open pull request under consideration."""

    number: int
    statuses_url: str


@dataclass(frozen=True)
class BuildStatusRecord:
    state: str
    created_at: datetime
    target_url: str

    @classmethod
    def from_api(cls, d: Any) -> "BuildStatusRecord":
        """Build a record from one element of GET /repos/{owner}/{repo}/statuses/{sha}.

        Example element:
          {"state": "success", "created_at": "2026-01-20T10:00:00Z",
           "target_url": "https://app.bitrise.io/build/0f2c9a1b8e7d", ...}
        """
        if not isinstance(d, Mapping):
            raise MalformedStatusError(f"status entry is not an object: {d!r}")
        state = d.get("state")
        target_url = d.get("target_url")
        if not isinstance(state, str):
            raise MalformedStatusError(f"status entry has no state: {d!r}")
        if not isinstance(target_url, str) or not target_url:
            raise MalformedStatusError(f"status entry has no target_url: {d!r}")
        try:
            created_at = parse_iso8601(d.get("created_at"))
        except (ValueError, TypeError) as e:
            raise MalformedStatusError(f"bad created_at {d.get('created_at')!r}: {e}") from e
        return cls(state=state, created_at=created_at, target_url=target_url)


@dataclass(frozen=True)
class TriggerCandidate:
    target: Target
    status: BuildStatusRecord
    build_slug: str

    @classmethod
    def for_status(cls, target: Target, status: BuildStatusRecord) -> "TriggerCandidate":
        try:
            slug = build_slug_from_url(status.target_url)
        except ValueError as e:
            raise MalformedStatusError(str(e)) from e
        return cls(target=target, status=status, build_slug=slug)


@dataclass(frozen=True)
class BuildDetail:
    build_slug: str
    triggered_workflow: str
    # replayed verbatim as build_params on re-trigger
    original_build_params: Dict[str, Any]


@dataclass(frozen=True)
class ChainResult:
    target: Target
    outcome: ChainOutcome
    build_slug: Optional[str] = None
    detail: str = ""

    @property
    def failed(self) -> bool:
        return self.outcome == ChainOutcome.TRIGGER_FAILED


@dataclass
class RunSummary:
    results: List[ChainResult] = field(default_factory=list)

    @property
    def failed(self) -> bool:
        return any(r.failed for r in self.results)

    @property
    def exit_code(self) -> int:
        return 1 if self.failed else 0

    def outcome_counts(self) -> Dict[str, int]:
        return dict(Counter(r.outcome.value for r in self.results))

    def describe(self) -> str:
        counts = self.outcome_counts()
        if not counts:
            return "targets=0"
        parts = [f"{k}={counts[k]}" for k in sorted(counts)]
        return f"targets={len(self.results)} " + " ".join(parts)
