"""GitLab REST client for gitlab-tree.

This module provides the remote fetch capability used by ingestion:
- Paginated group, group-project and owned-project listings
- Current user lookup
- Retry with exponential backoff on transient transport failures

Every failure surfaces as a single :class:`FetchError`.
"""

import logging
import time
from typing import Any, Optional, TypeVar

import httpx
from pydantic import BaseModel, ValidationError

from gitlab_tree.config import ApiFilters, TreeConfig
from gitlab_tree.models import GitLabGroup, GitLabProject, GitLabUser


logger = logging.getLogger(__name__)

RecordT = TypeVar("RecordT", bound=BaseModel)

NEXT_PAGE_HEADER = "x-next-page"


class FetchError(Exception):
    """A transport failure, non-success status, or malformed response."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


def _flag(value: bool) -> str:
    return "true" if value else "false"


class GitLabClient:
    """Client for the GitLab v4 API with retry handling."""

    API_PREFIX = "/api/v4"

    def __init__(
        self,
        base_url: str,
        token: str,
        filters: Optional[ApiFilters] = None,
        max_retries: int = 2,
        retry_delay: float = 0.5,
        transport: Optional[httpx.BaseTransport] = None,
    ):
        """Initialize GitLab client.

        Args:
            base_url: Instance URL, e.g. ``https://gitlab.com``.
            token: Personal access token sent as ``PRIVATE-TOKEN``.
            filters: Listing filters and page size.
            max_retries: Maximum number of retries for transient failures.
            retry_delay: Base delay between retries (exponential backoff).
            transport: Optional httpx transport, mainly for tests.
        """
        self.base_url = base_url.rstrip("/")
        self.token = token
        self.filters = filters or ApiFilters()
        self.max_retries = max_retries
        self.retry_delay = retry_delay
        self._transport = transport
        self._client: Optional[httpx.Client] = None

    @classmethod
    def from_config(cls, config: TreeConfig) -> "GitLabClient":
        return cls(config.base_url, config.gitlab_token, filters=config.filters)

    @property
    def client(self) -> httpx.Client:
        """Get or create HTTP client."""
        if self._client is None:
            headers = {
                "Accept": "application/json",
                "User-Agent": "gitlab-tree",
            }
            if self.token:
                headers["PRIVATE-TOKEN"] = self.token
            self._client = httpx.Client(
                base_url=f"{self.base_url}{self.API_PREFIX}",
                headers=headers,
                timeout=30.0,
                follow_redirects=True,
                transport=self._transport,
            )
        return self._client

    def close(self) -> None:
        """Close the HTTP client."""
        if self._client:
            self._client.close()
            self._client = None

    def __enter__(self) -> "GitLabClient":
        return self

    def __exit__(self, *args) -> None:
        self.close()

    def _request_with_retry(self, method: str, url: str, **kwargs) -> httpx.Response:
        """Make a request, retrying connect errors, read timeouts and 5xx.

        Raises:
            httpx.HTTPError: If the request still fails after retries.
        """
        for attempt in range(self.max_retries + 1):
            try:
                response = self.client.request(method, url, **kwargs)
                if response.status_code >= 500:
                    response.raise_for_status()
                return response
            except (httpx.ConnectError, httpx.ReadTimeout, httpx.HTTPStatusError) as e:
                if attempt < self.max_retries:
                    delay = self.retry_delay * (2 ** attempt)
                    logger.debug("Retrying %s %s in %.2fs: %s", method, url, delay, e)
                    time.sleep(delay)
                    continue
                raise
        raise RuntimeError("Request failed without error")

    def get(self, url: str, **kwargs) -> httpx.Response:
        """Make GET request, converting every httpx failure into FetchError."""
        try:
            response = self._request_with_retry("GET", url, **kwargs)
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            raise FetchError(
                f"GET {url} failed with status {e.response.status_code}",
                status_code=e.response.status_code,
            ) from e
        except httpx.HTTPError as e:
            raise FetchError(f"GET {url} failed: {e}") from e
        return response

    @staticmethod
    def _decode(response: httpx.Response) -> Any:
        try:
            return response.json()
        except ValueError as e:
            raise FetchError(f"malformed response from {response.request.url}: {e}") from e

    def _paginate(self, url: str, model: type[RecordT], params: dict[str, str]) -> list[RecordT]:
        """Walk every page of a listing endpoint, following ``x-next-page``."""
        records: list[RecordT] = []
        page = 1

        while True:
            query = {"per_page": str(self.filters.per_page), "page": str(page), **params}
            logger.debug("Fetching %s page %d", url, page)
            response = self.get(url, params=query)
            data = self._decode(response)
            if not isinstance(data, list):
                raise FetchError(f"expected a list from {url}, got {type(data).__name__}")
            try:
                records.extend(model.model_validate(item) for item in data)
            except ValidationError as e:
                raise FetchError(f"malformed record from {url}: {e}") from e

            next_page = response.headers.get(NEXT_PAGE_HEADER, "").strip()
            if not next_page:
                break
            try:
                page = int(next_page)
            except ValueError:
                raise FetchError(f"invalid {NEXT_PAGE_HEADER} header: {next_page}") from None

        return records

    def list_groups(self) -> list[GitLabGroup]:
        """List every group the token's user is a member of."""
        params = {"membership": "true"}
        if self.filters.all_available is not None:
            params["all_available"] = _flag(self.filters.all_available)
        if self.filters.owned is not None:
            params["owned"] = _flag(self.filters.owned)
        if self.filters.top_level_only is not None:
            params["top_level_only"] = _flag(self.filters.top_level_only)
        if self.filters.visibility:
            params["visibility"] = self.filters.visibility
        return self._paginate("/groups", GitLabGroup, params)

    def list_group_projects(self, group_id: int) -> list[GitLabProject]:
        params = {"simple": "true"}
        if self.filters.include_subgroups is not None:
            params["include_subgroups"] = _flag(self.filters.include_subgroups)
        if self.filters.visibility:
            params["visibility"] = self.filters.visibility
        return self._paginate(f"/groups/{group_id}/projects", GitLabProject, params)

    def list_owned_projects(self) -> list[GitLabProject]:
        params = {"simple": "true", "owned": "true"}
        if self.filters.visibility:
            params["visibility"] = self.filters.visibility
        return self._paginate("/projects", GitLabProject, params)

    def get_current_user(self) -> GitLabUser:
        """Get the authenticated user.

        Raises:
            FetchError: If not authenticated or the response is malformed.
        """
        response = self.get("/user")
        try:
            return GitLabUser.model_validate(self._decode(response))
        except ValidationError as e:
            raise FetchError(f"malformed user record: {e}") from e

    def namespace_url(self, username: str) -> str:
        """Web URL of a user's personal namespace."""
        return f"{self.base_url}/{username}"
