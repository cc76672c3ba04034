from __future__ import annotations

import base64
import json
from typing import Any

import pytest
import requests

from chart_releaser.client import (
    ClientError,
    ClientOptions,
    FileNotFoundInRepoError,
    GitHubClient,
)
from chart_releaser.errors import DeadlineExceededError

API = "https://api.github.com"


def _response(status: int, payload: Any = None) -> requests.Response:
    response = requests.Response()
    response.status_code = status
    response._content = b"" if payload is None else json.dumps(payload).encode("utf-8")
    return response


class FakeSession(requests.Session):
    def __init__(self, responses: list[requests.Response | Exception]) -> None:
        super().__init__()
        self.responses = list(responses)
        self.requests: list[tuple[str, str, dict[str, Any]]] = []

    def request(self, method: str, url: str, **kwargs: Any) -> requests.Response:  # type: ignore[override]
        self.requests.append((method, url, kwargs))
        result = self.responses.pop(0)
        if isinstance(result, Exception):
            raise result
        return result


def _client(*responses: requests.Response | Exception) -> tuple[GitHubClient, FakeSession]:
    session = FakeSession(list(responses))
    return GitHubClient("token123", session=session), session


def _opts(**overrides: str) -> ClientOptions:
    values = {
        "ref": "chartreleaser/app/1.2.4",
        "base": "master",
        "repo_owner": "example",
        "repo_name": "charts",
        "author_name": "Release Bot",
        "author_email": "bot@example.com",
    }
    values.update(overrides)
    return ClientOptions(**values)


def _encoded(text: str) -> str:
    return base64.b64encode(text.encode("utf-8")).decode("ascii")


def test_requires_token() -> None:
    with pytest.raises(ClientError, match="no token"):
        GitHubClient("")


def test_auth_header() -> None:
    client, session = _client()
    assert session.headers["Authorization"] == "token token123"
    assert client.base_url == API


def test_normalized_options() -> None:
    opts = _opts(ref="refs/heads/feature").normalized()
    assert opts.ref == "refs/heads/feature"
    assert opts.base == "refs/heads/master"


def test_get_file() -> None:
    client, session = _client(_response(200, {"encoding": "base64", "content": _encoded("name: app\n")}))

    assert client.get_file(_opts(), "charts/app/Chart.yaml", timeout=3) == "name: app\n"

    method, url, kwargs = session.requests[0]
    assert (method, url) == ("GET", f"{API}/repos/example/charts/contents/charts/app/Chart.yaml")
    assert kwargs["timeout"] == 3


def test_get_file_not_found() -> None:
    client, _ = _client(_response(404, {"message": "Not Found"}))
    with pytest.raises(FileNotFoundInRepoError, match="Chart.yaml"):
        client.get_file(_opts(), "Chart.yaml")


def test_get_file_server_error() -> None:
    client, _ = _client(_response(500, {"message": "boom"}))
    with pytest.raises(ClientError, match=r"\(500\): boom"):
        client.get_file(_opts(), "Chart.yaml")


def test_update_file() -> None:
    client, session = _client(
        _response(200, {"sha": "abc", "encoding": "base64", "content": ""}),
        _response(200, {"commit": {}}),
    )

    client.update_file(_opts(), "Chart.yaml", "bump", "version: 1.2.4\n")

    get, put = session.requests
    assert get[2]["params"] == {"ref": "chartreleaser/app/1.2.4"}
    assert put[0] == "PUT"
    assert put[2]["json"] == {
        "message": "bump",
        "content": _encoded("version: 1.2.4\n"),
        "sha": "abc",
        "branch": "chartreleaser/app/1.2.4",
        "committer": {"name": "Release Bot", "email": "bot@example.com"},
    }


def test_update_file_missing() -> None:
    client, session = _client(_response(404, {"message": "Not Found"}))
    with pytest.raises(FileNotFoundInRepoError):
        client.update_file(_opts(), "Chart.yaml", "bump", "x")
    assert len(session.requests) == 1


def test_create_ref() -> None:
    client, session = _client(
        _response(200, {"object": {"sha": "base-sha"}}),
        _response(201, {"ref": "refs/heads/chartreleaser/app/1.2.4"}),
    )

    client.create_ref(_opts())

    get, post = session.requests
    assert get[1] == f"{API}/repos/example/charts/git/ref/heads/master"
    assert post[2]["json"] == {"ref": "refs/heads/chartreleaser/app/1.2.4", "sha": "base-sha"}


def test_create_ref_missing_base() -> None:
    client, _ = _client(_response(404, {"message": "Not Found"}))
    with pytest.raises(ClientError, match="get ref"):
        client.create_ref(_opts())


def test_create_pull_request() -> None:
    client, session = _client(_response(201, {"html_url": "https://github.com/example/charts/pull/1"}))

    client.create_pull_request(_opts(), "Bump", "Body")

    method, url, kwargs = session.requests[0]
    assert (method, url) == ("POST", f"{API}/repos/example/charts/pulls")
    assert kwargs["json"] == {
        "title": "Bump",
        "body": "Body",
        "head": "chartreleaser/app/1.2.4",
        "base": "master",
    }


def test_create_pull_request_same_ref() -> None:
    client, session = _client()
    with pytest.raises(ClientError, match="ref and base are the same"):
        client.create_pull_request(_opts(ref="refs/heads/master"), "t", "b")
    assert session.requests == []


def test_timeout_maps_to_deadline() -> None:
    client, _ = _client(requests.Timeout("slow"))
    with pytest.raises(DeadlineExceededError):
        client.get_file(_opts(), "Chart.yaml")


def test_connection_error() -> None:
    client, _ = _client(requests.ConnectionError("down"))
    with pytest.raises(ClientError, match="request failed"):
        client.get_file(_opts(), "Chart.yaml")
