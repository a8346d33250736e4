"""
GitHub backend.
"""

from typing import Any, Dict, List
from pydantic import Field, validator

from ..models.base import ToolArguments
from ..models.tools import BackendOperation
from .base import HTTPBackendClient


class GitHubRepoArguments(ToolArguments):
    """Arguments for github_get_repo."""
    owner: str = Field(..., min_length=1, max_length=100, pattern=r"^[A-Za-z0-9_.-]+$", description="Repository owner")
    repo: str = Field(..., min_length=1, max_length=100, pattern=r"^[A-Za-z0-9_.-]+$", description="Repository name")

    @validator("owner", "repo")
    def validate_path_segment(cls, v):
        """Owner and repo are URL path segments."""
        if v in (".", ".."):
            raise ValueError("must be a repository owner or name, not a relative path")
        return v


class GitHubIssuesArguments(GitHubRepoArguments):
    """Arguments for github_list_issues."""
    state: str = Field("open", pattern="^(open|closed|all)$", description="Issue state filter")
    limit: int = Field(20, ge=1, le=100, description="Maximum number of issues to return")


class GitHubBackend(HTTPBackendClient):
    """Read access to GitHub repositories and issues."""

    backend_name = "github"
    default_base_url = "https://api.github.com"

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.operation_map = {
            "github_get_repo": self.get_repo,
            "github_list_issues": self.list_issues,
        }

    @property
    def description(self) -> str:
        return "GitHub repositories and issues"

    def _headers(self) -> Dict[str, str]:
        headers = super()._headers()
        headers["Accept"] = "application/vnd.github+json"
        headers["X-GitHub-Api-Version"] = "2022-11-28"
        # Anonymous access works for public repositories, with lower rate limits
        if self.api_key:
            headers["Authorization"] = f"Bearer {self.api_key}"
        return headers

    def operations(self) -> List[BackendOperation]:
        return [
            BackendOperation(
                name="github_get_repo",
                description="Get information about a GitHub repository",
                input_model=GitHubRepoArguments,
            ),
            BackendOperation(
                name="github_list_issues",
                description="List issues of a GitHub repository",
                input_model=GitHubIssuesArguments,
            ),
        ]

    async def get_repo(self, owner: str, repo: str) -> Dict[str, Any]:
        data = await self._request("GET", f"/repos/{owner}/{repo}")
        return {
            "full_name": data.get("full_name"),
            "description": data.get("description"),
            "html_url": data.get("html_url"),
            "language": data.get("language"),
            "default_branch": data.get("default_branch"),
            "stars": data.get("stargazers_count"),
            "forks": data.get("forks_count"),
            "open_issues": data.get("open_issues_count"),
            "archived": data.get("archived", False),
        }

    async def list_issues(self, owner: str, repo: str, state: str = "open", limit: int = 20) -> Dict[str, Any]:
        data = await self._request(
            "GET",
            f"/repos/{owner}/{repo}/issues",
            params={"state": state, "per_page": limit},
        )
        issues = [
            {
                "number": item.get("number"),
                "title": item.get("title"),
                "state": item.get("state"),
                "author": (item.get("user") or {}).get("login"),
                "html_url": item.get("html_url"),
                "comments": item.get("comments"),
            }
            # The issues endpoint also returns pull requests
            for item in data
            if "pull_request" not in item
        ]
        return {"repository": f"{owner}/{repo}", "state": state, "issues": issues}
