"""Pytest tests for GitHubAPIClient with a fake requests session."""

import requests

from pr_patrol.conftest import FakeResponse, FakeSession, status_json
from pr_patrol.github_client import GitHubAPIClient
from pr_patrol.types import Target

PULLS_URL = "https://api.github.com/repos/octo/app/pulls"


def _pull(number, labels=(), sha="abc"):
    return {
        "number": number,
        "statuses_url": f"https://api.github.com/repos/octo/app/statuses/{sha}{number}",
        "labels": [{"name": n} for n in labels],
    }


def test_list_targets_skips_wip_and_sends_token():
    session = FakeSession({PULLS_URL: FakeResponse(200, [_pull(1), _pull(2, ["WIP"]), _pull(3, ["wip", "bug"])])})
    client = GitHubAPIClient("gh-token", session=session)
    targets = client.list_targets("octo/app")
    assert [t.number for t in targets] == [1, 3]
    assert targets[0].statuses_url.endswith("/statuses/abc1")
    call = session.gets[0]
    assert call["headers"]["Authorization"] == "token gh-token"
    assert call["params"]["state"] == "open"
    assert call["timeout"] == 10


def test_only_wip_pr_yields_no_targets():
    session = FakeSession({PULLS_URL: FakeResponse(200, [_pull(1, ["WIP"])])})
    assert GitHubAPIClient("t", session=session).list_targets("octo/app") == []


def test_list_targets_drops_entries_without_number_or_statuses_url():
    pulls = [{"number": "7", "statuses_url": "https://x/7"}, {"number": 8}, _pull(9)]
    session = FakeSession({PULLS_URL: FakeResponse(200, pulls)})
    assert [t.number for t in GitHubAPIClient("t", session=session).list_targets("octo/app")] == [9]


def test_list_targets_paginates():
    pages = {1: [_pull(i) for i in range(1, 101)], 2: [_pull(101)]}
    session = FakeSession({PULLS_URL: lambda params: FakeResponse(200, pages[params["page"]])})
    targets = GitHubAPIClient("t", session=session).list_targets("octo/app")
    assert len(targets) == 101
    assert [g["params"]["page"] for g in session.gets] == [1, 2]


def test_list_targets_degrades_to_empty_on_errors():
    for route in (FakeResponse(500, {"message": "boom"}), FakeResponse(200, None, text="<html>"), requests.exceptions.ConnectionError("down")):
        client = GitHubAPIClient("t", session=FakeSession({PULLS_URL: route}))
        assert client.list_targets("octo/app") == []
    assert client.get_rest_call_stats()["errors_total"] == 1


def test_fetch_candidates_keeps_api_order_and_skips_malformed():
    target = Target(number=4, statuses_url="https://api.github.com/repos/octo/app/statuses/abc")
    statuses = [
        status_json(slug="newest"),
        {"state": "success", "created_at": "not-a-date", "target_url": "https://app.bitrise.io/build/bad"},
        status_json(state="failure", slug="older"),
    ]
    client = GitHubAPIClient("t", session=FakeSession({target.statuses_url: FakeResponse(200, statuses)}))
    cands = client.fetch_candidates(target)
    assert [c.build_slug for c in cands] == ["newest", "older"]
    assert all(c.target == target for c in cands)


def test_fetch_candidates_degrades_to_empty():
    target = Target(number=4, statuses_url="https://api.github.com/repos/octo/app/statuses/abc")
    client = GitHubAPIClient("t", session=FakeSession({target.statuses_url: FakeResponse(200, {"not": "a list"})}))
    assert client.fetch_candidates(target) == []
    stats = client.get_rest_call_stats()
    assert stats["calls_by_label"] == {"statuses": 1}


def test_list_targets_drops_repeated_pr_numbers():
    # The same PR can show up on two pages when the open list shifts mid-pagination.
    pulls = [_pull(1), _pull(2), _pull(1, sha="def")]
    session = FakeSession({PULLS_URL: FakeResponse(200, pulls)})
    targets = GitHubAPIClient("t", session=session).list_targets("octo/app")
    assert [t.number for t in targets] == [1, 2]
    assert targets[0].statuses_url.endswith("/statuses/abc1")
