# SPDX-FileCopyrightText: Copyright (c) 2025 NVIDIA CORPORATION & AFFILIATES. All rights reserved.
# SPDX-License-Identifier: Apache-2.0
"""Per-run REST call counters shared by the GitHub and Bitrise clients."""

from __future__ import annotations

import threading
from typing import Any, Dict, Optional


class RestCallStats:
    """Thread-safe REST call statistics for one client instance.

    Chains run on worker threads, so every update goes through the lock.
    """

    def __init__(self):
        self._mu = threading.Lock()
        self.reset()

    def reset(self) -> None:
        with self._mu:
            self.calls_total = 0
            self.calls_by_label: Dict[str, int] = {}
            self.errors_total = 0
            self.errors_by_status: Dict[int, int] = {}
            self.time_total_s = 0.0
            self.time_by_label_s: Dict[str, float] = {}
            self.last_error: Dict[str, Any] = {}

    def record(self, *, label: str, status_code: Optional[int], elapsed_s: float, url: str = "", body: str = "") -> None:
        dt = max(0.0, float(elapsed_s))
        with self._mu:
            self.calls_total += 1
            self.calls_by_label[label] = self.calls_by_label.get(label, 0) + 1
            self.time_total_s += dt
            self.time_by_label_s[label] = self.time_by_label_s.get(label, 0.0) + dt
            code = int(status_code or 0)
            if not code or code >= 400:
                self.errors_total += 1
                self.errors_by_status[code] = self.errors_by_status.get(code, 0) + 1
                # Keep last error small.
                self.last_error = {"status": code, "url": url, "body": (body or "")[:300]}

    def to_dict(self) -> Dict[str, Any]:
        with self._mu:
            return {
                "calls_total": self.calls_total,
                "calls_by_label": dict(self.calls_by_label),
                "errors_total": self.errors_total,
                "errors_by_status": dict(self.errors_by_status),
                "time_total_s": round(self.time_total_s, 3),
                "time_by_label_s": {k: round(v, 3) for k, v in self.time_by_label_s.items()},
                "last_error": dict(self.last_error),
            }
