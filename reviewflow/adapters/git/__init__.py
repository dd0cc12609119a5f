"""Git platform adapters."""
from reviewflow.adapters.git.github import GitHubApiError, GitHubClient

__all__ = ["GitHubApiError", "GitHubClient"]
