"""Shared fakes for pr_patrol tests. No test touches the network."""

from __future__ import annotations

import threading
import time
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Optional

import pytest

from pr_patrol.bitrise_client import TriggerResponse
from pr_patrol.config import PatrolConfig, RunOptions
from pr_patrol.context import PatrolContext
from pr_patrol.exceptions import BuildDetailError
from pr_patrol.types import BuildDetail, BuildStatusRecord, Target, TriggerCandidate

NOW = datetime(2026, 2, 1, 12, 0, 0, tzinfo=timezone.utc)


def iso(dt: datetime) -> str:
    return dt.strftime("%Y-%m-%dT%H:%M:%SZ")


def status_json(state: str = "success", hours_ago: float = 25, slug: str = "b1") -> Dict[str, Any]:
    return {
        "state": state,
        "created_at": iso(NOW - timedelta(hours=hours_ago)),
        "target_url": f"https://app.bitrise.io/build/{slug}",
    }


def make_candidate(target: Target, state: str = "success", hours_ago: float = 25, slug: str = "b1") -> TriggerCandidate:
    return TriggerCandidate.for_status(target, BuildStatusRecord.from_api(status_json(state, hours_ago, slug)))


class FakeResponse:
    def __init__(self, status_code: int = 200, payload: Any = None, text: Optional[str] = None, headers=None):
        self.status_code = status_code
        self._payload = payload
        self.text = text if text is not None else ("" if payload is None else repr(payload))
        self.headers = headers or {}

    def json(self):
        if self._payload is None:
            raise ValueError("no JSON")
        return self._payload


class FakeSession:
    """Minimal requests.Session stand-in: routes by URL to canned responses."""

    def __init__(self, get_routes=None, post_response=None):
        self.get_routes: Dict[str, Any] = dict(get_routes or {})
        self.post_response = post_response if post_response is not None else FakeResponse(201, {"status": "ok"})
        self.gets: List[Dict[str, Any]] = []
        self.posts: List[Dict[str, Any]] = []

    def get(self, url, headers=None, params=None, timeout=None):
        self.gets.append({"url": url, "headers": headers, "params": params, "timeout": timeout})
        route = self.get_routes.get(url)
        if route is None:
            return FakeResponse(404, {"message": "Not Found"})
        if isinstance(route, Exception):
            raise route
        if callable(route):
            return route(params)
        return route

    def post(self, url, json=None, timeout=None):
        self.posts.append({"url": url, "json": json, "timeout": timeout})
        if isinstance(self.post_response, Exception):
            raise self.post_response
        return self.post_response


class FakeGitHub:
    def __init__(self, targets: List[Target], candidates: Dict[int, List[TriggerCandidate]]):
        self.targets = targets
        self.candidates = candidates
        self.fetched: List[int] = []
        self._mu = threading.Lock()

    def list_targets(self, repo: str) -> List[Target]:
        return list(self.targets)

    def fetch_candidates(self, target: Target) -> List[TriggerCandidate]:
        with self._mu:
            self.fetched.append(target.number)
        return list(self.candidates.get(target.number, []))

    def get_rest_call_stats(self) -> Dict[str, Any]:
        return {}


class FakeBitrise:
    """details: slug -> BuildDetail, or an int HTTP status to fail with."""

    def __init__(self, details: Dict[str, Any], trigger_status: int = 201, trigger_delay_s: float = 0.0):
        self.details = details
        self.trigger_status = trigger_status
        self.trigger_delay_s = trigger_delay_s
        self.detail_calls: List[str] = []
        self.triggered: List[Dict[str, Any]] = []
        self.in_flight = 0
        self.max_in_flight = 0
        self._mu = threading.Lock()

    def get_build_detail(self, build_slug: str) -> BuildDetail:
        with self._mu:
            self.detail_calls.append(build_slug)
        d = self.details[build_slug]
        if isinstance(d, int):
            raise BuildDetailError(status_code=d, endpoint=build_slug, message=f"Failed to get build for buildSlug: {build_slug}. statusCode: {d}")
        return d

    def trigger_build(self, build_params: Dict[str, Any]) -> TriggerResponse:
        with self._mu:
            self.in_flight += 1
            self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            if self.trigger_delay_s:
                time.sleep(self.trigger_delay_s)
            with self._mu:
                self.triggered.append(build_params)
            body = {"status": "ok"} if self.trigger_status == 201 else {"message": "trigger map mismatch"}
            return TriggerResponse(status_code=self.trigger_status, body=body)
        finally:
            with self._mu:
                self.in_flight -= 1

    def get_rest_call_stats(self) -> Dict[str, Any]:
        return {}


def detail(slug: str, workflow: str = "primary", params: Optional[Dict[str, Any]] = None) -> BuildDetail:
    return BuildDetail(
        build_slug=slug,
        triggered_workflow=workflow,
        original_build_params=params if params is not None else {"branch": f"br-{slug}", "workflow_id": workflow},
    )


@pytest.fixture
def config() -> PatrolConfig:
    return PatrolConfig(
        gh_repo="octo/app",
        gh_api_token="gh-token",
        bitrise_api_token="bitrise-token",
        bitrise_build_trigger_token="trigger-token",
        app_slug="app-slug",
    )


@pytest.fixture
def make_ctx(config):
    def _make(github, bitrise, **option_kwargs) -> PatrolContext:
        return PatrolContext(
            config=config,
            options=RunOptions(**option_kwargs),
            github=github,
            bitrise=bitrise,
            clock=lambda: NOW,
        )

    return _make
