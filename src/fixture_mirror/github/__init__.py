"""GitHub pull request flow for suggested tests."""

from .github_helper import GithubError, GithubHelper
from .suggestions import Committer, MissingInputError, SuggestionsService, TestSuggestion

__all__ = [
    "Committer",
    "GithubError",
    "GithubHelper",
    "MissingInputError",
    "SuggestionsService",
    "TestSuggestion",
]
