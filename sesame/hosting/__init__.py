"""Hosted repository providers (GitHub, Gitee) and their HTTP client."""

from .backends import (
    BackendKind,
    GiteeBackend,
    GitHubBackend,
    HostingBackend,
    RepositoryBackend,
    create_backend,
)
from .http import ApiClient, ApiResponse, HttpClient, HttpError, MockHttpClient

__all__ = [
    "ApiClient",
    "ApiResponse",
    "BackendKind",
    "GiteeBackend",
    "GitHubBackend",
    "HostingBackend",
    "HttpClient",
    "HttpError",
    "MockHttpClient",
    "RepositoryBackend",
    "create_backend",
]
