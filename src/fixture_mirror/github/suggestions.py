"""Submission of suggested tests as GitHub pull requests."""

import base64
import logging
import time
from typing import Any, Dict, Optional

from pydantic import BaseModel, Field

from ..config import GithubConfig
from .github_helper import GithubHelper

logger = logging.getLogger(__name__)

FILE_NAME_PREFIX = "suggestion_"
BRANCH_PREFIX = "fixture-mirror-"


class MissingInputError(ValueError):
    """Raised when a suggestion lacks data needed to open a pull request."""

    pass


class TestSuggestion(BaseModel):
    """A test proposed by a user."""

    __test__ = False  # not a pytest test class

    title: str = Field(default="", description="Pull request title")
    description: str = Field(
        default="", description="Pull request body and commit message"
    )
    state: str = Field(default="", description="Content of the suggested test file")


class Committer(BaseModel):
    """Author recorded on the suggestion commit."""

    name: str
    email: str


class SuggestionsService:
    """Chains the GitHub API calls that turn a suggestion into a pull request."""

    def __init__(self, config: GithubConfig, helper: Optional[GithubHelper] = None):
        self.config = config
        self.helper = helper or GithubHelper(config)

    async def create_pull_request(
        self, suggestion: TestSuggestion, committer: Optional[Committer] = None
    ) -> Dict[str, Any]:
        """
        Open a pull request adding the suggested test file.

        Args:
            suggestion: Title, description and test file content
            committer: Optional commit author

        Returns:
            The pull request data returned by GitHub

        Raises:
            MissingInputError: If the token, title, description or state is empty
            GithubError: On the first failing API call
        """
        access_token = self.config.access_token
        if not (
            access_token
            and suggestion.title
            and suggestion.description
            and suggestion.state
        ):
            raise MissingInputError("Missing input")

        now = int(time.time() * 1000)
        new_branch_name = f"{BRANCH_PREFIX}{now}"
        file_name = f"{FILE_NAME_PREFIX}{now}.{self.config.test_file_extension}"
        base64_contents = base64.b64encode(suggestion.state.encode("utf-8")).decode(
            "ascii"
        )

        head_sha = await self.helper.get_head_reference_for_branch(self.config.branch)
        await self.helper.create_reference(access_token, new_branch_name, head_sha)
        await self.helper.create_content(
            access_token,
            file_name,
            new_branch_name,
            suggestion.description,
            base64_contents,
            committer.model_dump() if committer else None,
        )
        pull_request = await self.helper.create_pull_request(
            new_branch_name, suggestion.title, suggestion.description, access_token
        )
        logger.info(
            f"Opened pull request {pull_request.get('html_url', '')} from {new_branch_name}"
        )
        return pull_request
