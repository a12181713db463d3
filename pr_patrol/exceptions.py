# SPDX-FileCopyrightText: Copyright (c) 2025 NVIDIA CORPORATION & AFFILIATES. All rights reserved.
# SPDX-License-Identifier: Apache-2.0
"""Error types for gh-pr-patrol.

Kept in their own module so the API clients, the trigger chain and the CLI can
catch specific error classes without creating import cycles.
"""

from __future__ import annotations

from typing import List, Optional, Sequence


class PatrolError(Exception):
    pass


class ConfigError(PatrolError):
    """One or more required environment values are missing or invalid.

    All violations are collected before raising; str(err) is one line per violation.
    """

    def __init__(self, messages: Sequence[str]):
        self.messages: List[str] = [str(m) for m in messages]
        super().__init__("\n".join(self.messages))


class APIError(PatrolError):
    def __init__(self, *, status_code: Optional[int], endpoint: str, message: str):
        super().__init__(message)
        self.status_code = int(status_code) if status_code is not None else None
        self.endpoint = str(endpoint or "")


class GitHubAPIError(APIError):
    pass


class BuildDetailError(APIError):
    """Build detail lookup failed. Fatal for the whole run."""


class MalformedStatusError(PatrolError):
    pass
