# SPDX-FileCopyrightText: Copyright (c) 2025 NVIDIA CORPORATION & AFFILIATES. All rights reserved.
# SPDX-License-Identifier: Apache-2.0
"""Rebuild eligibility predicates.

Check order per candidate (after its build detail is fetched):

1. workflow allow-list: a mismatch skips to the next candidate
2. success + freshness: a failure halts the walk for the whole target

See trigger_chain.TriggerChain.run for where each verdict is applied.
"""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Optional, Sequence

from .types import BuildDetail, BuildStatusRecord, CIState, TriggerCandidate


class Verdict(str, Enum):
    TRIGGER = "trigger"
    SKIP = "skip"
    HALT = "halt"


def is_successful(status: BuildStatusRecord) -> bool:
    return status.state == CIState.SUCCESS.value


def is_outdated(status: BuildStatusRecord, *, now: datetime, outdate_interval_s: float) -> bool:
    """True if the status is at least outdate_interval_s old (absolute difference, clock skew included)."""
    return abs((now - status.created_at).total_seconds()) >= float(outdate_interval_s)


def is_stale_success(status: BuildStatusRecord, *, now: datetime, outdate_interval_s: float) -> bool:
    return is_successful(status) and is_outdated(status, now=now, outdate_interval_s=outdate_interval_s)


def workflow_allowed(workflow: str, workflow_filters: Optional[Sequence[str]]) -> bool:
    """No filter configured means every workflow is allowed. Matching is exact."""
    if workflow_filters is None:
        return True
    return workflow in workflow_filters


def evaluate(
    candidate: TriggerCandidate,
    detail: BuildDetail,
    *,
    now: datetime,
    outdate_interval_s: float,
    workflow_filters: Optional[Sequence[str]],
) -> Verdict:
    if not workflow_allowed(detail.triggered_workflow, workflow_filters):
        return Verdict.SKIP
    if not is_stale_success(candidate.status, now=now, outdate_interval_s=outdate_interval_s):
        return Verdict.HALT
    return Verdict.TRIGGER
