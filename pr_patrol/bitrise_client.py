# SPDX-FileCopyrightText: Copyright (c) 2025 NVIDIA CORPORATION & AFFILIATES. All rights reserved.
# SPDX-License-Identifier: Apache-2.0
"""Bitrise API client for gh-pr-patrol."""

# Standard library imports
import logging
import time
from dataclasses import dataclass
from typing import Any, Dict, Optional

# Third-party imports
import requests

# Local imports
from .exceptions import APIError, BuildDetailError
from .rest_stats import RestCallStats
from .types import BuildDetail

# Module-level logger
_logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TriggerResponse:
    status_code: int
    # parsed JSON body, or None when the body isn't JSON
    body: Optional[Any] = None

    @property
    def ok(self) -> bool:
        return self.status_code == 201


class BitriseAPIClient:
    """Bitrise client: build detail lookup (read API) and build trigger (hook API).

    Example:
        client = BitriseAPIClient(api_token="...", build_trigger_token="...", app_slug="...")
        detail = client.get_build_detail("0f2c9a1b8e7d")
        resp = client.trigger_build(detail.original_build_params)
    """

    def __init__(
        self,
        api_token: str,
        build_trigger_token: str,
        app_slug: str,
        *,
        session: Optional[requests.Session] = None,
        api_base_url: str = "https://api.bitrise.io/v0.1",
        app_base_url: str = "https://app.bitrise.io",
        timeout: int = 10,
    ):
        self.api_token = api_token
        self.build_trigger_token = build_trigger_token
        self.app_slug = app_slug
        self.api_base_url = api_base_url.rstrip("/")
        self.app_base_url = app_base_url.rstrip("/")
        self.timeout = int(timeout)
        self.session = session if session is not None else requests.Session()
        self.logger = logging.getLogger(self.__class__.__name__)
        self.stats = RestCallStats()

    def build_url(self, build_slug: str) -> str:
        return f"{self.api_base_url}/apps/{self.app_slug}/builds/{build_slug}"

    def trigger_url(self) -> str:
        return f"{self.app_base_url}/app/{self.app_slug}/build/start.json"

    def get_build_detail(self, build_slug: str) -> BuildDetail:
        """Fetch one build and extract what is needed to replay it.

        Example API Response:
          {
            "data": {
              "slug": "0f2c9a1b8e7d",
              "triggered_workflow": "primary",
              "original_build_params": {"branch": "feature-x", "commit_hash": "abc123", "workflow_id": "primary"}
            }
          }

        Raises:
            BuildDetailError on anything but a 200 with the expected fields.
        """
        url = self.build_url(build_slug)
        self.logger.debug("BITRISE GET [build] %s", url)
        t0 = time.monotonic()
        try:
            resp = self.session.get(
                url,
                headers={"Authorization": f"token {self.api_token}"},
                timeout=self.timeout,
            )
        except requests.exceptions.RequestException as e:
            self.stats.record(label="build", status_code=None, elapsed_s=time.monotonic() - t0, url=url)
            raise BuildDetailError(
                status_code=None,
                endpoint=url,
                message=f"Failed to get build for buildSlug: {build_slug}. error: {e}",
            ) from e
        self.stats.record(
            label="build",
            status_code=resp.status_code,
            elapsed_s=time.monotonic() - t0,
            url=url,
            body=resp.text if resp.status_code >= 400 else "",
        )

        if resp.status_code != 200:
            raise BuildDetailError(
                status_code=resp.status_code,
                endpoint=url,
                message=f"Failed to get build for buildSlug: {build_slug}. statusCode: {resp.status_code}",
            )
        try:
            payload = resp.json()
        except ValueError as e:
            raise BuildDetailError(status_code=resp.status_code, endpoint=url, message=f"invalid JSON for build {build_slug}: {e}") from e

        data = payload.get("data") if isinstance(payload, dict) else None
        workflow = data.get("triggered_workflow") if isinstance(data, dict) else None
        params = data.get("original_build_params") if isinstance(data, dict) else None
        if not isinstance(workflow, str) or not isinstance(params, dict):
            raise BuildDetailError(
                status_code=resp.status_code,
                endpoint=url,
                message=f"build {build_slug} has no triggered_workflow/original_build_params",
            )
        return BuildDetail(build_slug=build_slug, triggered_workflow=workflow, original_build_params=params)

    def trigger_payload(self, build_params: Dict[str, Any]) -> Dict[str, Any]:
        return {
            "hook_info": {"type": "bitrise", "api_token": self.build_trigger_token},
            "build_params": build_params,
        }

    def trigger_build(self, build_params: Dict[str, Any]) -> TriggerResponse:
        """POST a new build replaying build_params verbatim.

        Returns:
            TriggerResponse for any HTTP response (201 means success)

        Raises:
            APIError on network failure (no response at all)
        """
        url = self.trigger_url()
        self.logger.debug("BITRISE POST [trigger] %s", url)
        t0 = time.monotonic()
        try:
            resp = self.session.post(url, json=self.trigger_payload(build_params), timeout=self.timeout)
        except requests.exceptions.RequestException as e:
            self.stats.record(label="trigger", status_code=None, elapsed_s=time.monotonic() - t0, url=url)
            raise APIError(status_code=None, endpoint=url, message=f"trigger request failed: {e}") from e
        self.stats.record(
            label="trigger",
            status_code=resp.status_code,
            elapsed_s=time.monotonic() - t0,
            url=url,
            body=resp.text if resp.status_code >= 400 else "",
        )
        try:
            body = resp.json()
        except ValueError:
            body = None
        return TriggerResponse(status_code=resp.status_code, body=body)

    def get_rest_call_stats(self) -> Dict[str, Any]:
        return self.stats.to_dict()
