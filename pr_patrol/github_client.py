# SPDX-FileCopyrightText: Copyright (c) 2025 NVIDIA CORPORATION & AFFILIATES. All rights reserved.
# SPDX-License-Identifier: Apache-2.0
"""GitHub API client for gh-pr-patrol.

Two read paths feed the rebuild pipeline:

1. Open pull requests for the configured repository -> Target list
   (PRs labeled "WIP" are skipped).
2. Commit statuses for each PR -> ordered TriggerCandidate list.

Both are best-effort: network/HTTP/JSON failures are logged as warnings and
degrade to an empty result so the run still terminates cleanly.
"""

# Standard library imports
import logging
import time
from typing import Any, Dict, List, Optional, Set

# Third-party imports
import requests

# Local imports
from .exceptions import GitHubAPIError, MalformedStatusError
from .rest_stats import RestCallStats
from .types import BuildStatusRecord, Target, TriggerCandidate

# Module logger
_logger = logging.getLogger(__name__)

WIP_LABEL = "WIP"

# Upper bound on /pulls pages (100 PRs each).
MAX_PULLS_PAGES = 5


class GitHubAPIClient:
    """GitHub REST client used for PR listing and status fetching.

    Features:
    - token auth ("Authorization: token <token>")
    - per-run REST call stats (see get_rest_call_stats)
    - injectable requests.Session for tests

    Example:
        client = GitHubAPIClient(token="ghp_...")
        targets = client.list_targets("owner/repo")
    """

    def __init__(
        self,
        token: str,
        *,
        session: Optional[requests.Session] = None,
        base_url: str = "https://api.github.com",
        timeout: int = 10,
    ):
        self.token = token
        self.base_url = base_url.rstrip("/")
        self.timeout = int(timeout)
        self.session = session if session is not None else requests.Session()
        self.headers = {"Accept": "application/vnd.github.v3+json"}
        if self.token:
            self.headers["Authorization"] = f"token {self.token}"
        self.logger = logging.getLogger(self.__class__.__name__)
        self.stats = RestCallStats()

    def _rest_label_for_url(self, url: str) -> str:
        if url.rstrip("/").endswith("/pulls"):
            return "pulls"
        if "/statuses/" in url:
            return "statuses"
        return "other"

    def _rest_get(self, url: str, *, params: Optional[Dict[str, Any]] = None) -> requests.Response:
        """session.get wrapper that records per-run stats. Network errors propagate."""
        label = self._rest_label_for_url(url)
        self.logger.debug("GH REST GET [%s] %s", label, url)
        t0 = time.monotonic()
        try:
            resp = self.session.get(url, headers=dict(self.headers), params=params, timeout=self.timeout)
        except requests.exceptions.RequestException:
            self.stats.record(label=label, status_code=None, elapsed_s=time.monotonic() - t0, url=url)
            raise
        self.stats.record(
            label=label,
            status_code=resp.status_code,
            elapsed_s=time.monotonic() - t0,
            url=url,
            body=resp.text if resp.status_code >= 400 else "",
        )
        self.logger.debug(
            "GH REST RESP [%s] status=%s remaining=%s",
            label,
            resp.status_code,
            resp.headers.get("X-RateLimit-Remaining"),
        )
        return resp

    def _get_json_list(self, url: str, *, params: Optional[Dict[str, Any]] = None) -> List[Any]:
        try:
            resp = self._rest_get(url, params=params)
        except requests.exceptions.RequestException as e:
            raise GitHubAPIError(status_code=None, endpoint=url, message=f"GitHub API request failed for {url}: {e}") from e
        if resp.status_code < 200 or resp.status_code >= 300:
            raise GitHubAPIError(
                status_code=resp.status_code,
                endpoint=url,
                message=f"GitHub API returned {resp.status_code} for {url}: {(resp.text or '')[:300]}",
            )
        try:
            data = resp.json()
        except ValueError as e:  # requests raises a ValueError subclass on bad JSON
            raise GitHubAPIError(status_code=resp.status_code, endpoint=url, message=f"invalid JSON from {url}: {e}") from e
        if not isinstance(data, list):
            raise GitHubAPIError(
                status_code=resp.status_code,
                endpoint=url,
                message=f"expected a JSON array from {url}, got {type(data).__name__}",
            )
        return data

    def list_open_pulls(self, repo: str) -> List[Dict[str, Any]]:
        """List open pull requests (paginated, up to MAX_PULLS_PAGES pages).

        Example API Response element:
          {
            "number": 1234,
            "statuses_url": "https://api.github.com/repos/owner/repo/statuses/abc123...",
            "labels": [{"name": "enhancement"}]
          }

        Raises:
            GitHubAPIError on network/HTTP/JSON failure
        """
        url = f"{self.base_url}/repos/{repo}/pulls"
        items: List[Dict[str, Any]] = []
        for page in range(1, MAX_PULLS_PAGES + 1):
            chunk = self._get_json_list(url, params={"state": "open", "per_page": 100, "page": page})
            items.extend(x for x in chunk if isinstance(x, dict))
            if len(chunk) < 100:
                break
        return items

    def list_targets(self, repo: str) -> List[Target]:
        """Return one Target per open PR that is not labeled WIP.

        Best-effort: if the PR list can't be fetched, log and return [].
        """
        try:
            pulls = self.list_open_pulls(repo)
        except GitHubAPIError as e:
            _logger.warning("Error listing PRs for %s: %s", repo, e)
            return []

        targets: List[Target] = []
        seen: Set[int] = set()
        for pull in pulls:
            labels = pull.get("labels")
            if isinstance(labels, list):
                names = [lb.get("name") for lb in labels if isinstance(lb, dict)]
                if WIP_LABEL in names:
                    self.logger.debug("skip PR #%s: labeled %s", pull.get("number"), WIP_LABEL)
                    continue
            number = pull.get("number")
            statuses_url = pull.get("statuses_url")
            # bool is an int subclass; exclude it explicitly.
            if isinstance(number, int) and not isinstance(number, bool) and isinstance(statuses_url, str):
                # Page-based listing can repeat a PR when the list shifts between pages.
                if number in seen:
                    self.logger.debug("skip PR #%s: listed twice", number)
                    continue
                seen.add(number)
                targets.append(Target(number=number, statuses_url=statuses_url))
        return targets

    def get_statuses(self, statuses_url: str) -> List[Any]:
        """Raw commit statuses for one PR head, in API order (newest first)."""
        return self._get_json_list(statuses_url, params={"per_page": 100})

    def fetch_candidates(self, target: Target) -> List[TriggerCandidate]:
        """Return the target's status entries as TriggerCandidates, in API order.

        Malformed entries are skipped with a warning; an unreachable status list yields [].
        """
        try:
            raw = self.get_statuses(target.statuses_url)
        except GitHubAPIError as e:
            _logger.warning("failed to fetch statuses for PR #%s: %s", target.number, e)
            return []

        candidates: List[TriggerCandidate] = []
        for entry in raw:
            try:
                status = BuildStatusRecord.from_api(entry)
                candidates.append(TriggerCandidate.for_status(target, status))
            except MalformedStatusError as e:
                _logger.warning("skipping malformed status for PR #%s: %s", target.number, e)
        return candidates

    def get_rest_call_stats(self) -> Dict[str, Any]:
        return self.stats.to_dict()
