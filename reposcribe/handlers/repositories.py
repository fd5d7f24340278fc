# reposcribe/handlers/repositories.py
import logging
from typing import Iterable

import requests

from ..errors import ListFetchFailed
from ..models import Repository
from ..token_store import TokenStore
from .api import PAGE_SIZE, BackendClient, describe_http_error

logger = logging.getLogger(__name__)

SORT_UPDATED = "updated"
SORT_STARS = "stars"
SORT_NAME = "name"
SORT_KEYS = (SORT_UPDATED, SORT_STARS, SORT_NAME)

NOT_AUTHENTICATED_MSG = "Not authenticated: sign in with GitHub to list repositories"


class RepositoryDirectory:
    def __init__(self, tokens: TokenStore, backend: BackendClient, page_size: int = PAGE_SIZE):
        self.tokens = tokens
        self.backend = backend
        self.page_size = page_size

    def list(self) -> list[Repository]:
        """Owned, non-fork repositories in the order the backend returned them."""
        token = self.tokens.get()
        if not token:
            raise ListFetchFailed(NOT_AUTHENTICATED_MSG)
        try:
            payload = self.backend.list_repositories(token)
        except requests.HTTPError as e:
            if e.response is not None and e.response.status_code in (401, 403):
                raise ListFetchFailed(NOT_AUTHENTICATED_MSG) from e
            raise ListFetchFailed(f"Failed to fetch repositories. {describe_http_error(e)}") from e
        except requests.RequestException as e:
            raise ListFetchFailed(f"Failed to fetch repositories. {describe_http_error(e)}") from e
        except ValueError as e:
            raise ListFetchFailed("Failed to fetch repositories: response was not JSON") from e

        if not isinstance(payload, list):
            raise ListFetchFailed("Failed to fetch repositories: expected a list")
        try:
            repos = [Repository.from_api(item) for item in payload if not item.get("fork")]
        except (AttributeError, TypeError, ValueError) as e:
            raise ListFetchFailed(f"Failed to fetch repositories: malformed entry ({e})") from e

        logger.info("fetched %d repositories", len(repos))
        return repos[: self.page_size]


def matches(repo: Repository, query: str) -> bool:
    q = query.lower()
    if q in repo.name.lower():
        return True
    return bool(repo.description) and q in repo.description.lower()


def filter_and_sort(repos: Iterable[Repository], query: str = "", sort: str = SORT_UPDATED) -> list[Repository]:
    """Pure view over the fetched list; sorted() is stable so ties keep fetch order."""
    query = query or ""
    view = [r for r in repos if matches(r, query)] if query else list(repos)

    if sort == SORT_STARS:
        return sorted(view, key=lambda r: r.stargazers_count, reverse=True)
    if sort == SORT_NAME:
        return sorted(view, key=lambda r: r.name.casefold())
    return sorted(view, key=lambda r: r.updated, reverse=True)
