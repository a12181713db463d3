# SPDX-FileCopyrightText: Copyright (c) 2025 NVIDIA CORPORATION & AFFILIATES. All rights reserved.
# SPDX-License-Identifier: Apache-2.0
"""Per-target rebuild walk.

Candidates are tried strictly in API order, one network round trip at a time.
At most one candidate per target reaches the trigger step.
"""

from __future__ import annotations

import json
import logging
from typing import Sequence

from .context import PatrolContext
from .eligibility import Verdict, evaluate
from .exceptions import APIError
from .types import BuildDetail, ChainOutcome, ChainResult, Target, TriggerCandidate

logger = logging.getLogger(__name__)


class TriggerChain:
    def __init__(self, ctx: PatrolContext):
        self.ctx = ctx

    def run(self, target: Target, candidates: Sequence[TriggerCandidate]) -> ChainResult:
        """Walk the candidates and re-trigger at most one build.

        Raises:
            BuildDetailError: a build detail fetch failed (fatal for the run)
        """
        if not candidates:
            return ChainResult(target=target, outcome=ChainOutcome.NO_CANDIDATES)

        logger.info("triggering rebuild for PR: #%d", target.number)
        opts = self.ctx.options
        for cand in candidates:
            if self.ctx.should_stop():
                return ChainResult(target=target, outcome=ChainOutcome.CANCELLED, build_slug=cand.build_slug)

            detail = self.ctx.bitrise.get_build_detail(cand.build_slug)
            verdict = evaluate(
                cand,
                detail,
                now=self.ctx.clock(),
                outdate_interval_s=opts.outdate_interval_s,
                workflow_filters=opts.workflow_filters,
            )
            if verdict == Verdict.SKIP:
                logger.debug("PR #%d: build %s workflow %r not in filter; next candidate",
                             target.number, cand.build_slug, detail.triggered_workflow)
                continue
            if verdict == Verdict.HALT:
                logger.debug("PR #%d: build %s is %s from %s; not rebuilding",
                             target.number, cand.build_slug, cand.status.state, cand.status.created_at.isoformat())
                return ChainResult(
                    target=target,
                    outcome=ChainOutcome.NOT_ELIGIBLE,
                    build_slug=cand.build_slug,
                    detail=cand.status.state,
                )
            return self._submit(cand, detail)

        return ChainResult(target=target, outcome=ChainOutcome.FILTERED_OUT)

    def _submit(self, cand: TriggerCandidate, detail: BuildDetail) -> ChainResult:
        target = cand.target
        if self.ctx.options.dry_run:
            logger.info("[dry-run] would trigger rebuild for PR: #%d (build %s, workflow %s)",
                        target.number, cand.build_slug, detail.triggered_workflow)
            return ChainResult(target=target, outcome=ChainOutcome.DRY_RUN, build_slug=cand.build_slug)

        with self.ctx.trigger_permit():
            if self.ctx.should_stop():
                return ChainResult(target=target, outcome=ChainOutcome.CANCELLED, build_slug=cand.build_slug)
            try:
                resp = self.ctx.bitrise.trigger_build(detail.original_build_params)
            except APIError as e:
                logger.info("Failed to trigger build for PR: #%d. %s", target.number, e)
                return ChainResult(target=target, outcome=ChainOutcome.TRIGGER_FAILED,
                                   build_slug=cand.build_slug, detail=str(e))

        if not resp.ok:
            logger.info("Failed to trigger build. Maybe trigger-map is outdated.")
            if resp.body is not None:
                logger.info("- response body: %s", json.dumps(resp.body, sort_keys=True))
            return ChainResult(target=target, outcome=ChainOutcome.TRIGGER_FAILED,
                               build_slug=cand.build_slug, detail=f"status {resp.status_code}")

        logger.debug("PR #%d: re-triggered build %s (%s)", target.number, cand.build_slug, detail.triggered_workflow)
        return ChainResult(target=target, outcome=ChainOutcome.TRIGGERED, build_slug=cand.build_slug)
