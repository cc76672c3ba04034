"""Source repository clients used to read and publish chart changes."""

from __future__ import annotations

import base64
import dataclasses
from dataclasses import dataclass
from typing import Any, Protocol

import requests
import structlog

from .errors import ChartReleaserError, DeadlineExceededError

log = structlog.get_logger(__name__)

GITHUB_API_URL = "https://api.github.com"
REF_PREFIX = "refs/heads/"


class ClientError(ChartReleaserError):
    """Raised when the repository API rejects a request."""


class FileNotFoundInRepoError(ClientError):
    def __init__(self, path: str) -> None:
        super().__init__(f"file not found in remote repo: {path}")
        self.path = path


@dataclass
class ClientOptions:
    ref: str = ""
    base: str = ""
    repo_name: str = ""
    repo_owner: str = ""
    author_name: str = ""
    author_email: str = ""

    def normalized(self) -> ClientOptions:
        return dataclasses.replace(self, ref=_full_ref(self.ref), base=_full_ref(self.base))


def _full_ref(ref: str) -> str:
    if ref.startswith(REF_PREFIX):
        return ref
    return f"{REF_PREFIX}{ref}"


def _short_ref(ref: str) -> str:
    if ref.startswith(REF_PREFIX):
        return ref[len(REF_PREFIX):]
    return ref


class RepositoryClient(Protocol):
    def get_file(self, opts: ClientOptions, path: str, *, timeout: float | None = None) -> str:
        ...

    def update_file(
        self,
        opts: ClientOptions,
        path: str,
        message: str,
        contents: str,
        *,
        timeout: float | None = None,
    ) -> None:
        ...

    def create_ref(self, opts: ClientOptions, *, timeout: float | None = None) -> None:
        ...

    def create_pull_request(
        self,
        opts: ClientOptions,
        title: str,
        body: str,
        *,
        timeout: float | None = None,
    ) -> None:
        ...


class GitHubClient:
    """Repository client backed by the GitHub REST API."""

    def __init__(
        self,
        token: str,
        *,
        base_url: str = GITHUB_API_URL,
        session: requests.Session | None = None,
        anonymous: bool = False,
    ) -> None:
        if not token and not anonymous:
            raise ClientError("no token provided to github client")
        self.base_url = base_url.rstrip("/")
        self.session = session or requests.Session()
        self.session.headers["Accept"] = "application/vnd.github.v3+json"
        if token:
            self.session.headers["Authorization"] = f"token {token}"

    def _request(
        self,
        method: str,
        url_path: str,
        *,
        timeout: float | None,
        **kwargs: Any,
    ) -> requests.Response:
        try:
            return self.session.request(
                method, f"{self.base_url}{url_path}", timeout=timeout, **kwargs
            )
        except requests.Timeout as exc:
            raise DeadlineExceededError(f"github request timed out: {method} {url_path}") from exc
        except requests.RequestException as exc:
            raise ClientError(f"github request failed: {method} {url_path}: {exc}") from exc

    @staticmethod
    def _check(response: requests.Response, action: str) -> dict[str, Any]:
        if response.status_code >= 400:
            try:
                message = response.json().get("message", "")
            except ValueError:
                message = response.text
            raise ClientError(f"github client: {action} failed ({response.status_code}): {message}")
        if not response.content:
            return {}
        return response.json()

    def get_file(self, opts: ClientOptions, path: str, *, timeout: float | None = None) -> str:
        opts = opts.normalized()
        response = self._request(
            "GET",
            f"/repos/{opts.repo_owner}/{opts.repo_name}/contents/{path}",
            timeout=timeout,
        )
        if response.status_code == 404:
            raise FileNotFoundInRepoError(path)
        payload = self._check(response, f"get contents of {path}")
        if payload.get("encoding") != "base64":
            raise ClientError(f"github client: unexpected encoding for {path}: {payload.get('encoding')}")
        return base64.b64decode(payload.get("content", "")).decode("utf-8")

    def update_file(
        self,
        opts: ClientOptions,
        path: str,
        message: str,
        contents: str,
        *,
        timeout: float | None = None,
    ) -> None:
        opts = opts.normalized()
        url_path = f"/repos/{opts.repo_owner}/{opts.repo_name}/contents/{path}"

        # The file must already exist on the branch; creating files is up to the caller.
        response = self._request(
            "GET", url_path, timeout=timeout, params={"ref": _short_ref(opts.ref)}
        )
        if response.status_code == 404:
            log.error("github client: unable to update file (not found)", file=path, ref=opts.ref)
            raise FileNotFoundInRepoError(path)
        existing = self._check(response, f"get contents of {path}")

        body = {
            "message": message,
            "content": base64.b64encode(contents.encode("utf-8")).decode("ascii"),
            "sha": existing.get("sha"),
            "branch": _short_ref(opts.ref),
            "committer": {"name": opts.author_name, "email": opts.author_email},
        }
        response = self._request("PUT", url_path, timeout=timeout, json=body)
        self._check(response, f"update {path}")

    def create_ref(self, opts: ClientOptions, *, timeout: float | None = None) -> None:
        opts = opts.normalized()
        repo = f"{opts.repo_owner}/{opts.repo_name}"

        log.debug("github client: getting reference", repo=repo, ref=opts.base)
        response = self._request(
            "GET",
            f"/repos/{repo}/git/ref/heads/{_short_ref(opts.base)}",
            timeout=timeout,
        )
        if response.status_code >= 400:
            log.error(
                "github client: unable to create ref - configured base ref does not exist",
                base=opts.base,
                ref=opts.ref,
            )
        base_ref = self._check(response, f"get ref {opts.base}")

        log.debug("github client: creating reference", repo=repo, ref=opts.ref)
        response = self._request(
            "POST",
            f"/repos/{repo}/git/refs",
            timeout=timeout,
            json={"ref": opts.ref, "sha": base_ref["object"]["sha"]},
        )
        if response.status_code >= 400:
            log.error("github client: failed to create new ref", ref=opts.ref, base=opts.base)
        self._check(response, f"create ref {opts.ref}")

    def create_pull_request(
        self,
        opts: ClientOptions,
        title: str,
        body: str,
        *,
        timeout: float | None = None,
    ) -> None:
        opts = opts.normalized()
        if opts.base == opts.ref:
            raise ClientError("cannot create pull request, ref and base are the same")

        repo = f"{opts.repo_owner}/{opts.repo_name}"
        log.debug(
            "github client: creating pull request",
            repo=repo,
            ref=opts.ref,
            base=opts.base,
            title=title,
        )
        response = self._request(
            "POST",
            f"/repos/{repo}/pulls",
            timeout=timeout,
            json={
                "title": title,
                "body": body,
                "head": _short_ref(opts.ref),
                "base": _short_ref(opts.base),
            },
        )
        payload = self._check(response, "create pull request")
        log.info("github client: created pull request", url=payload.get("html_url", ""))


def latest_release_tag(owner: str, repo: str, *, timeout: float | None = 10.0) -> str:
    """Return the tag of the latest published release of a GitHub repository."""
    url = f"{GITHUB_API_URL}/repos/{owner}/{repo}/releases/latest"
    try:
        response = requests.get(url, timeout=timeout)
    except requests.RequestException as exc:
        raise ClientError(f"unable to fetch latest release: {exc}") from exc
    payload = GitHubClient._check(response, "get latest release")
    return str(payload.get("tag_name", ""))
