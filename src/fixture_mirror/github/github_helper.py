"""GitHub REST API helper for submitting suggested tests.

Wraps the calls of the pull request flow (branch head lookup, reference
creation, file creation and pull request creation) and the first-commit
lookup of a file.
"""

import json
import logging
from datetime import datetime
from typing import Any, Dict, Optional

import httpx

from ..config import GithubConfig

logger = logging.getLogger(__name__)


class GithubError(Exception):
    """Exception raised when a GitHub API call fails."""

    def __init__(
        self,
        message: str,
        details: Optional[str] = None,
        status_code: Optional[int] = None,
    ):
        super().__init__(message)
        self.message = message
        self.details = details
        self.status_code = status_code

    def to_dict(self) -> Dict[str, Any]:
        result: Dict[str, Any] = {"error": type(self).__name__, "message": self.message}
        if self.details is not None:
            result["details"] = self.details
        if self.status_code is not None:
            result["status_code"] = self.status_code
        return result


def _author_date(commit: Dict[str, Any]) -> datetime:
    # GitHub reports ISO-8601 UTC timestamps such as 2016-03-31T09:29:37Z
    return datetime.strptime(commit["commit"]["author"]["date"], "%Y-%m-%dT%H:%M:%SZ")


class GithubHelper:
    """Thin async client over the GitHub git data, contents and pulls APIs."""

    def __init__(
        self,
        config: GithubConfig,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """Initialize the helper.

        Args:
            config: GitHub configuration (API URL, target repo, branch)
            transport: Optional httpx transport, used to stub the API in tests
        """
        self.config = config
        self._transport = transport

    @property
    def repository_endpoint(self) -> str:
        return f"{self.config.api_url.rstrip('/')}/repos/{self.config.repo}"

    @property
    def references_endpoint(self) -> str:
        return f"{self.repository_endpoint}/git/refs"

    @property
    def commits_endpoint(self) -> str:
        return f"{self.repository_endpoint}/commits"

    @property
    def pulls_endpoint(self) -> str:
        return f"{self.repository_endpoint}/pulls"

    def contents_endpoint(self, path: str) -> str:
        return f"{self.repository_endpoint}/contents/{path}"

    # Request bodies

    @staticmethod
    def create_pull_request_body(
        head: str, title: str, body: str, base: str = "master"
    ) -> str:
        return json.dumps(
            {"head": f"refs/heads/{head}", "base": base, "title": title, "body": body},
            separators=(",", ":"),
        )

    @staticmethod
    def create_reference_body(new_branch_name: str, sha: str) -> str:
        return json.dumps(
            {"ref": f"refs/heads/{new_branch_name}", "sha": sha}, separators=(",", ":")
        )

    @staticmethod
    def create_content_body(
        path: str,
        branch: str,
        message: str,
        base64_contents: str,
        committer: Optional[Dict[str, str]] = None,
    ) -> str:
        payload: Dict[str, Any] = {
            "path": path,
            "message": message,
            "content": base64_contents,
            "branch": branch,
        }
        if committer:
            payload["committer"] = committer
        return json.dumps(payload, separators=(",", ":"))

    # API calls

    async def get_head_reference_for_branch(self, branch: str) -> str:
        """Return the commit sha at the head of a branch."""
        try:
            response = await self._request(
                "GET", f"{self.references_endpoint}/heads/{branch}"
            )
            response.raise_for_status()
            data = response.json()
        except (httpx.HTTPError, ValueError) as e:
            raise GithubError(
                f'Not able to retrieve reference "{branch}"', details=str(e)
            )

        sha = None
        if isinstance(data, dict) and isinstance(data.get("object"), dict):
            sha = data["object"].get("sha")
        if not sha:
            raise GithubError(
                "Not able to retrieve reference", details="No reference data available"
            )
        return sha

    async def get_first_commit_for_file(self, path: str) -> Dict[str, Any]:
        """Return the oldest commit touching a file, by author date."""
        try:
            response = await self._request(
                "GET", self.commits_endpoint, params={"path": path}
            )
            response.raise_for_status()
            commits = response.json()
        except (httpx.HTTPError, ValueError) as e:
            raise GithubError("Not able to retrieve commit", details=str(e))

        try:
            return min(commits, key=_author_date)
        except (TypeError, KeyError, ValueError) as e:
            raise GithubError(
                "Not able to retrieve commit",
                details=f"No commit data available for {path}: {e}",
            )

    async def create_reference(
        self, access_token: str, new_branch_name: str, sha: str
    ) -> Dict[str, Any]:
        """Create a branch pointing at a commit."""
        return await self._send(
            "POST",
            self.references_endpoint,
            self.create_reference_body(new_branch_name, sha),
            access_token,
            f'Not able to create branch "{new_branch_name}"',
        )

    async def create_content(
        self,
        access_token: str,
        file_name: str,
        branch: str,
        message: str,
        base64_contents: str,
        committer: Optional[Dict[str, str]] = None,
    ) -> Dict[str, Any]:
        """Commit a new file into the accepted tests location of a branch."""
        path = f"{self.config.accepted_tests_location}/{file_name}"
        return await self._send(
            "PUT",
            self.contents_endpoint(path),
            self.create_content_body(path, branch, message, base64_contents, committer),
            access_token,
            f'Not able to create "{path}"',
        )

    async def create_pull_request(
        self, head: str, title: str, body: str, access_token: str
    ) -> Dict[str, Any]:
        """Open a pull request from a branch against the configured base."""
        return await self._send(
            "POST",
            self.pulls_endpoint,
            self.create_pull_request_body(head, title, body, self.config.branch),
            access_token,
            "Not able to create pull request",
        )

    async def _send(
        self,
        method: str,
        url: str,
        body: str,
        access_token: str,
        failure_message: str,
    ) -> Dict[str, Any]:
        try:
            response = await self._request(method, url, content=body, token=access_token)
        except httpx.HTTPError as e:
            logger.error(f"{failure_message}: {e}")
            raise GithubError(failure_message, details=str(e))

        if response.status_code >= 400:
            logger.error(f"{failure_message}: HTTP {response.status_code}")
            raise GithubError(
                failure_message, details=response.text, status_code=response.status_code
            )

        try:
            return response.json()
        except ValueError:
            return {}

    async def _request(
        self,
        method: str,
        url: str,
        content: Optional[str] = None,
        params: Optional[Dict[str, str]] = None,
        token: Optional[str] = None,
    ) -> httpx.Response:
        headers = {
            "Accept": "application/vnd.github+json",
            "Content-Type": "application/json",
        }
        if token:
            headers["Authorization"] = f"token {token}"

        async with httpx.AsyncClient(
            timeout=self.config.timeout, transport=self._transport
        ) as client:
            logger.debug(f"{method} {url}")
            return await client.request(
                method, url, content=content, params=params, headers=headers
            )
