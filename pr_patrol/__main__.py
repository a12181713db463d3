#!/usr/bin/env python3
"""Module entrypoint for `pr_patrol`.

Usage:
  - `python3 -m pr_patrol --dry-run`
"""

from __future__ import annotations

from .cli import run


if __name__ == "__main__":
    raise SystemExit(run())
