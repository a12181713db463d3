# SPDX-FileCopyrightText: Copyright (c) 2025 NVIDIA CORPORATION & AFFILIATES. All rights reserved.
# SPDX-License-Identifier: Apache-2.0
"""Environment configuration and per-run options.

All five required environment variables are validated together so the user sees
every missing/empty value at once instead of fixing them one run at a time.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Any, Dict, List, Mapping, Optional, Tuple

from .exceptions import ConfigError

# Default freshness threshold: a successful build must be at least this old to be re-triggered.
DEFAULT_OUTDATE_INTERVAL_S: float = 24 * 3600

DEFAULT_MAX_WORKERS: int = 16

# (field name, environment key) in report order.
ENV_KEYS: Tuple[Tuple[str, str], ...] = (
    ("gh_repo", "GITHUB_REPOSITORY"),
    ("gh_api_token", "GITHUB_ACCESS_TOKEN"),
    ("bitrise_api_token", "BITRISE_API_TOKEN"),
    ("bitrise_build_trigger_token", "BITRISE_BUILD_TRIGGER_TOKEN"),
    ("app_slug", "APP_SLUG"),
)


@dataclass(frozen=True)
class PatrolConfig:
    gh_repo: str
    gh_api_token: str
    bitrise_api_token: str
    bitrise_build_trigger_token: str
    app_slug: str

    def __repr__(self) -> str:
        # Tokens stay out of logs and tracebacks.
        return f"PatrolConfig(gh_repo={self.gh_repo!r}, app_slug={self.app_slug!r})"


@dataclass(frozen=True)
class RunOptions:
    workflow_filters: Optional[Tuple[str, ...]] = None
    outdate_interval_s: float = DEFAULT_OUTDATE_INTERVAL_S
    dry_run: bool = False
    parallel_rebuild: Optional[int] = None
    max_workers: int = DEFAULT_MAX_WORKERS


def _is_owner_repo(value: str) -> bool:
    parts = value.split("/")
    return len(parts) == 2 and all(p.strip() for p in parts)


def load_config(environ: Optional[Mapping[str, Any]] = None) -> PatrolConfig:
    """Read and validate the required environment variables.

    Args:
        environ: Mapping to read from (default: os.environ)

    Returns:
        PatrolConfig with every field populated

    Raises:
        ConfigError: one message per violation, in ENV_KEYS order. Example:
            env key not found: GITHUB_REPOSITORY
            env value is empty: APP_SLUG
    """
    env = os.environ if environ is None else environ
    msgs: List[str] = []
    values: Dict[str, str] = {}

    for field_name, key in ENV_KEYS:
        if key not in env:
            msgs.append(f"env key not found: {key}")
            continue
        raw = env[key]
        if raw is None:
            msgs.append(f"value not found for {key}")
            continue
        if not isinstance(raw, str):
            msgs.append(f"type mismatch: expected str but got {type(raw).__name__} for {key}")
            continue
        if not raw:
            msgs.append(f"env value is empty: {key}")
            continue
        if key == "GITHUB_REPOSITORY" and not _is_owner_repo(raw):
            msgs.append(f"invalid repository (expected owner/repo): {key}")
            continue
        values[field_name] = raw

    if msgs:
        raise ConfigError(msgs)
    return PatrolConfig(**values)


def parse_workflow_filters(arg: Optional[str]) -> Optional[Tuple[str, ...]]:
    """Split a "-f" value like "primary,deploy" into an allow-list. Empty means no filter."""
    if arg is None:
        return None
    names = tuple(x.strip() for x in str(arg).split(",") if x.strip())
    return names or None
