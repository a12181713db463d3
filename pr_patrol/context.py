# SPDX-FileCopyrightText: Copyright (c) 2025 NVIDIA CORPORATION & AFFILIATES. All rights reserved.
# SPDX-License-Identifier: Apache-2.0
"""Per-run context handed to every component instead of process-wide globals."""

from __future__ import annotations

import threading
from contextlib import nullcontext
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Callable, ContextManager, Optional

from .bitrise_client import BitriseAPIClient
from .config import PatrolConfig, RunOptions
from .github_client import GitHubAPIClient


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class PatrolContext:
    config: PatrolConfig
    options: RunOptions
    github: GitHubAPIClient
    bitrise: BitriseAPIClient
    clock: Callable[[], datetime] = utc_now
    abort_event: threading.Event = field(default_factory=threading.Event)
    trigger_semaphore: Optional[threading.BoundedSemaphore] = None

    def __post_init__(self) -> None:
        if self.trigger_semaphore is None and self.options.parallel_rebuild is not None:
            self.trigger_semaphore = threading.BoundedSemaphore(int(self.options.parallel_rebuild))

    @classmethod
    def from_config(cls, config: PatrolConfig, options: RunOptions, **kwargs: Any) -> "PatrolContext":
        """Build a context with real API clients for config."""
        session = kwargs.pop("session", None)
        github = GitHubAPIClient(config.gh_api_token, session=session)
        bitrise = BitriseAPIClient(
            config.bitrise_api_token,
            config.bitrise_build_trigger_token,
            config.app_slug,
            session=session,
        )
        return cls(config=config, options=options, github=github, bitrise=bitrise, **kwargs)

    def trigger_permit(self) -> ContextManager[Any]:
        """Held only around the trigger POST."""
        if self.trigger_semaphore is None:
            return nullcontext()
        return self.trigger_semaphore

    def should_stop(self) -> bool:
        return self.abort_event.is_set()
