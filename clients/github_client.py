#!/usr/bin/env python3
"""GitHub REST API client for opening and merging pull requests.

Only the two calls the activity agent needs are implemented. Failures are
mapped to RemoteApiError with a typed code; nothing is retried at this
level except idempotent reads through the session's transport adapter.
"""

import logging
from typing import Dict, Any, Optional

import requests
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry

from configs.config import Config
from utils.errors import ConfigurationError, RemoteApiError
from utils.run_models import MergeResult, PullRequestHandle

# Set up logging
logger = logging.getLogger(__name__)


class GithubClient:
    """Client for the GitHub pull request endpoints."""

    def __init__(self, token: Optional[str] = None, timeout_s: Optional[int] = None, base_url: Optional[str] = None):
        """Initialize the GitHub client.

        Args:
            token: GitHub Personal Access Token (defaults to Config.GITHUB_TOKEN)
            timeout_s: Request timeout in seconds (defaults to Config.HTTP_TIMEOUT_S)
            base_url: API root (defaults to Config.GITHUB_API_URL)

        Raises:
            ConfigurationError: If no token is available
        """
        github_config = Config.get_github_config()
        self.token = token or github_config["token"]
        self.timeout_s = timeout_s or github_config["timeout_s"]
        self.base_url = (base_url or github_config["base_url"]).rstrip("/")

        if not self.token:
            raise ConfigurationError("GitHub token is required (GITHUB_TOKEN or GITHUB_PAT env var)", code="NO_TOKEN")

        # Set up session with retries and authentication
        self.session = requests.Session()
        self.session.headers.update({
            'Authorization': f'Bearer {self.token}',
            'Accept': 'application/vnd.github+json',
            'X-GitHub-Api-Version': '2022-11-28',
            'User-Agent': Config.USER_AGENT,
        })

        # Transient failures on reads only; writes are never replayed
        retry_strategy = Retry(
            total=github_config["retry_total"],
            status_forcelist=[429, 500, 502, 503, 504],
            backoff_factor=1,
            allowed_methods=["HEAD", "GET", "OPTIONS"]
        )
        adapter = HTTPAdapter(max_retries=retry_strategy)
        self.session.mount("https://", adapter)

        logger.info("GitHub client initialized")

    def create_pull_request(self, owner: str, repo: str, title: str, head: str, base: str, body: str) -> PullRequestHandle:
        """Open a pull request from ``head`` into ``base``.

        Returns:
            Handle carrying the PR number and URL

        Raises:
            RemoteApiError: If the API rejects the request or returns no number
        """
        url = f"{self.base_url}/repos/{owner}/{repo}/pulls"
        payload = {"title": title, "head": head, "base": base, "body": body}
        logger.info(f"Creating PR: {title} from {head} to {base}")
        data = self._request("POST", url, payload)

        number = data.get("number")
        if not isinstance(number, int):
            raise RemoteApiError(f"Pull request response for {owner}/{repo} has no number", code="INVALID_RESPONSE")
        handle = PullRequestHandle(
            number=number,
            html_url=data.get("html_url", ""),
            head=(data.get("head") or {}).get("ref", head),
            base=(data.get("base") or {}).get("ref", base),
        )
        logger.info(f"Created PR #{handle.number}: {handle.html_url}")
        return handle

    def merge_pull_request(
        self,
        owner: str,
        repo: str,
        number: int,
        merge_method: str = "squash",
        commit_title: Optional[str] = None,
    ) -> MergeResult:
        """Merge a pull request.

        Raises:
            RemoteApiError: If the merge is rejected or not reported as merged
        """
        url = f"{self.base_url}/repos/{owner}/{repo}/pulls/{number}/merge"
        payload: Dict[str, Any] = {"merge_method": merge_method}
        if commit_title:
            payload["commit_title"] = commit_title
        data = self._request("PUT", url, payload)

        result = MergeResult(
            merged=bool(data.get("merged", False)),
            sha=data.get("sha"),
            message=data.get("message", ""),
        )
        if not result.merged:
            raise RemoteApiError(f"PR #{number} was not merged: {result.message}", code="NOT_MERGEABLE")
        logger.info(f"Merged PR #{number} ({merge_method})")
        return result

    # -------- HTTP helpers --------
    def _request(self, method: str, url: str, payload: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        try:
            r = self.session.request(method, url, json=payload, timeout=self.timeout_s)
        except requests.Timeout:
            raise RemoteApiError(f"Timeout calling {method} {url}", code="TIMEOUT")
        except requests.RequestException as e:
            raise RemoteApiError(f"Failed to call {method} {url}: {e}", code="NETWORK")

        sc = r.status_code
        if sc in (401, 403):
            raise RemoteApiError("Invalid GitHub token or insufficient permissions", code="UNAUTHORIZED", status=sc)
        if sc == 404:
            raise RemoteApiError(f"Not found: {url}", code="NOT_FOUND", status=sc)
        if sc in (405, 409):
            raise RemoteApiError(f"Not mergeable: {self._error_message(r)}", code="NOT_MERGEABLE", status=sc)
        if sc == 422:
            raise RemoteApiError(f"Validation failed: {self._error_message(r)}", code="VALIDATION", status=sc)
        if sc == 429:
            raise RemoteApiError("Rate limited", code="RATE_LIMIT", status=sc)
        if sc >= 500:
            raise RemoteApiError(f"GitHub server error: HTTP {sc}", code="NETWORK", status=sc)
        if sc >= 400:
            raise RemoteApiError(f"GitHub API error: HTTP {sc}", status=sc)
        try:
            return r.json()
        except ValueError:
            raise RemoteApiError(f"Invalid JSON from {method} {url}", code="INVALID_RESPONSE", status=sc)

    @staticmethod
    def _error_message(r: requests.Response) -> str:
        try:
            data = r.json()
        except ValueError:
            return f"HTTP {r.status_code}"
        msg = data.get("message", f"HTTP {r.status_code}")
        details = [e.get("message") for e in data.get("errors") or [] if isinstance(e, dict) and e.get("message")]
        return f"{msg} ({'; '.join(details)})" if details else msg

    def close(self) -> None:
        """Close the GitHub client session."""
        if self.session:
            self.session.close()
            logger.debug("GitHub client session closed")
