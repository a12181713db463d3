# SPDX-FileCopyrightText: Copyright (c) 2025 NVIDIA CORPORATION & AFFILIATES. All rights reserved.
# SPDX-License-Identifier: Apache-2.0
"""Fan-out/fan-in for one patrol run.

PR list -> one worker per target (status fetch, then trigger walk) -> CompletionTracker.
Targets run concurrently on a ThreadPoolExecutor; within a target everything is sequential.
"""

from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor

from .completion import CompletionTracker
from .context import PatrolContext
from .trigger_chain import TriggerChain
from .types import ChainOutcome, ChainResult, RunSummary, Target

logger = logging.getLogger(__name__)


class Pipeline:
    def __init__(self, ctx: PatrolContext):
        self.ctx = ctx
        self.chain = TriggerChain(ctx)

    def _run_target(self, target: Target, tracker: CompletionTracker) -> None:
        try:
            if self.ctx.should_stop():
                result = ChainResult(target=target, outcome=ChainOutcome.CANCELLED)
            else:
                candidates = self.ctx.github.fetch_candidates(target)
                result = self.chain.run(target, candidates)
            tracker.done(result)
        except Exception as e:
            # Fatal for the whole run; re-raised by tracker.wait() on the main thread.
            tracker.abort(e)

    def run(self) -> RunSummary:
        """Run once over every open PR and return the collected results.

        Raises:
            BuildDetailError (or any unexpected chain error): the run was aborted
        """
        targets = self.ctx.github.list_targets(self.ctx.config.gh_repo)
        logger.debug("%d target PR(s) in %s", len(targets), self.ctx.config.gh_repo)
        tracker = CompletionTracker(len(targets), aborted=self.ctx.abort_event)
        if not targets:
            return tracker.wait()

        max_workers = max(1, min(int(self.ctx.options.max_workers), len(targets)))
        executor = ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix="pr-patrol")
        try:
            for target in targets:
                executor.submit(self._run_target, target, tracker)
            return tracker.wait()
        finally:
            # On abort, queued chains are dropped and running ones stop at their next step.
            executor.shutdown(wait=not tracker.aborted.is_set(), cancel_futures=True)
