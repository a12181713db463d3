# SPDX-FileCopyrightText: Copyright (c) 2025 NVIDIA CORPORATION & AFFILIATES. All rights reserved.
# SPDX-License-Identifier: Apache-2.0
"""Completion tracking for one run.

Every target chain reports exactly one ChainResult. The collector waits for
`expected` results and then computes the run's exit status from them. A fatal
error reported via abort() wakes the collector immediately.
"""

from __future__ import annotations

import threading
from typing import Dict, List, Optional

from .types import ChainResult, RunSummary


class CompletionTracker:
    def __init__(self, expected: int, *, aborted: Optional[threading.Event] = None):
        if expected < 0:
            raise ValueError(f"expected must be >= 0, got {expected}")
        self.expected = int(expected)
        self._cond = threading.Condition()
        self._results: List[ChainResult] = []
        self._seen: Dict[int, ChainResult] = {}
        self._abort_error: Optional[BaseException] = None
        # Chains poll this before each network step.
        self.aborted = aborted if aborted is not None else threading.Event()

    @property
    def outstanding(self) -> int:
        with self._cond:
            return self.expected - len(self._results)

    def done(self, result: ChainResult) -> None:
        """Record the single terminal result of one target's chain."""
        with self._cond:
            number = result.target.number
            if number in self._seen:
                raise RuntimeError(f"PR #{number} reported completion twice")
            if len(self._results) >= self.expected:
                raise RuntimeError(f"more results than expected ({self.expected})")
            self._seen[number] = result
            self._results.append(result)
            if len(self._results) == self.expected:
                self._cond.notify_all()

    def abort(self, error: BaseException) -> None:
        """Record a fatal error. The first one wins."""
        with self._cond:
            if self._abort_error is None:
                self._abort_error = error
            self.aborted.set()
            self._cond.notify_all()

    def wait(self, timeout: Optional[float] = None) -> RunSummary:
        """Block until every chain reported or one aborted.

        Raises:
            the abort error, if any
            TimeoutError if timeout elapsed first
        """
        with self._cond:
            finished = self._cond.wait_for(
                lambda: self._abort_error is not None or len(self._results) >= self.expected,
                timeout=timeout,
            )
            if self._abort_error is not None:
                raise self._abort_error
            if not finished:
                raise TimeoutError(f"{self.expected - len(self._results)} chain(s) still outstanding")
            return RunSummary(results=list(self._results))
