"""
Keep CI status checks fresh on long-lived pull requests (gh-pr-patrol).

One run:
- lists open PRs of a GitHub repository (skipping PRs labeled "WIP")
- fetches each PR's commit statuses
- re-triggers the Bitrise build behind a successful status once it is older
  than the freshness threshold (optionally only for allow-listed workflows)

Public API is re-exported from:
- `pr_patrol.config` for environment validation and run options
- `pr_patrol.pipeline` for running one patrol pass
"""

__version__ = "0.1.3"

from .config import PatrolConfig, RunOptions, load_config  # noqa: E402,F401
from .context import PatrolContext  # noqa: E402,F401
from .exceptions import BuildDetailError, ConfigError, PatrolError  # noqa: E402,F401
from .pipeline import Pipeline  # noqa: E402,F401
from .types import ChainOutcome, ChainResult, RunSummary  # noqa: E402,F401

__all__ = [
    "BuildDetailError",
    "ChainOutcome",
    "ChainResult",
    "ConfigError",
    "PatrolConfig",
    "PatrolContext",
    "PatrolError",
    "Pipeline",
    "RunOptions",
    "RunSummary",
    "load_config",
]
