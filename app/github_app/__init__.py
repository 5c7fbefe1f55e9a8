"""GitHub App authentication and repository access."""

from .client import RepositoryClient
from .credentials import AppCredential, CredentialProvider, SignedAssertion, load_private_key
from .http import GitHubHttp, build_http_client
from .installations import InstallationResolver, InstallationToken
from .token_cache import TokenCache, repo_key

__all__ = [
    "RepositoryClient",
    "AppCredential",
    "CredentialProvider",
    "SignedAssertion",
    "load_private_key",
    "GitHubHttp",
    "build_http_client",
    "InstallationResolver",
    "InstallationToken",
    "TokenCache",
    "repo_key",
]
