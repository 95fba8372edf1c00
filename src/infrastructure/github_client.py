import aiohttp
import asyncio
import logging
from typing import Any, Dict, List, NamedTuple, Optional

from src.domain.exceptions import GitHubApiException, NotFoundException, RateLimitExceededException

logger = logging.getLogger(__name__)

DEFAULT_API_URL = "https://api.github.com"
API_VERSION = "2022-11-28"
REQUEST_TIMEOUT = aiohttp.ClientTimeout(total=60, connect=10)
SEARCH_PAGE_SIZE = 100


class GitHubResponse(NamedTuple):
    status: int
    data: Any
    next_url: Optional[str]


class GitHubRestClient:
    """
    Client for the GitHub REST API, bound to a single credential.
    Every call is attempted exactly once; failures are translated into domain exceptions.
    """

    def __init__(
        self,
        token: str,
        session: aiohttp.ClientSession,
        api_url: str = DEFAULT_API_URL,
        auth_scheme: str = "token",
    ):
        self.session = session
        self.api_url = api_url.rstrip("/")
        self.headers = {
            "Authorization": f"{auth_scheme} {token}",
            "Accept": "application/vnd.github+json",
            "User-Agent": "internal-contribution-forks",
            "X-GitHub-Api-Version": API_VERSION,
        }

    def _url(self, path: str) -> str:
        if path.startswith("http://") or path.startswith("https://"):
            return path
        return f"{self.api_url}{path}"

    async def _request(
        self,
        method: str,
        path: str,
        params: Optional[Dict[str, Any]] = None,
        json: Optional[Dict[str, Any]] = None,
    ) -> GitHubResponse:
        url = self._url(path)
        try:
            async with self.session.request(
                method, url, params=params, json=json, headers=self.headers, timeout=REQUEST_TIMEOUT
            ) as response:
                if response.status == 404:
                    raise NotFoundException(f"Not Found: {method} {url}")

                if response.status in {403, 429} and response.headers.get("X-RateLimit-Remaining") == "0":
                    reset_at = response.headers.get("X-RateLimit-Reset", "unknown")
                    raise RateLimitExceededException(reset_at=reset_at, status=response.status)

                if response.status >= 400:
                    detail = await response.text()
                    raise GitHubApiException(
                        f"GitHub API error ({response.status}) on {method} {url}: {detail}",
                        status=response.status,
                    )

                data = None if response.status == 204 else await response.json()
                next_link = response.links.get("next") if response.links else None
                next_url = str(next_link.get("url")) if next_link else None
                return GitHubResponse(response.status, data, next_url)

        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            logger.warning(f"Request {method} {url} failed: {e}")
            raise GitHubApiException(f"Request {method} {url} failed: {e}") from e

    async def get_org(self, org: str) -> Dict[str, Any]:
        return (await self._request("GET", f"/orgs/{org}")).data

    async def get_repo(self, owner: str, repo: str) -> Dict[str, Any]:
        return (await self._request("GET", f"/repos/{owner}/{repo}")).data

    async def get_org_installation(self, org: str) -> Dict[str, Any]:
        """Requires an app (JWT) credential."""
        return (await self._request("GET", f"/orgs/{org}/installation")).data

    async def create_installation_token(self, installation_id: int) -> Dict[str, Any]:
        """Requires an app (JWT) credential."""
        return (await self._request("POST", f"/app/installations/{installation_id}/access_tokens")).data

    async def get_org_custom_properties(self, org: str) -> List[Dict[str, Any]]:
        return (await self._request("GET", f"/orgs/{org}/properties/schema")).data or []

    async def create_or_update_custom_property(
        self, org: str, name: str, value_type: str = "string"
    ) -> Dict[str, Any]:
        return (await self._request(
            "PUT", f"/orgs/{org}/properties/schema/{name}", json={"value_type": value_type}
        )).data

    async def create_org_repo(
        self,
        org: str,
        name: str,
        private: bool = True,
        description: Optional[str] = None,
        custom_properties: Optional[Dict[str, str]] = None,
    ) -> Dict[str, Any]:
        payload: Dict[str, Any] = {"name": name, "private": private}
        if description is not None:
            payload["description"] = description
        if custom_properties:
            payload["custom_properties"] = custom_properties
        return (await self._request("POST", f"/orgs/{org}/repos", json=payload)).data

    async def update_repo(self, owner: str, repo: str, **changes: Any) -> Dict[str, Any]:
        return (await self._request("PATCH", f"/repos/{owner}/{repo}", json=changes)).data

    async def delete_repo(self, owner: str, repo: str) -> None:
        await self._request("DELETE", f"/repos/{owner}/{repo}")

    async def search_repositories(self, query: str) -> List[Dict[str, Any]]:
        """
        Runs a repository search and follows `Link: rel="next"` until exhausted.

        Returns:
            List[Dict]: the `items` of every page, in the order GitHub returned them.
        """
        items: List[Dict[str, Any]] = []
        response = await self._request(
            "GET", "/search/repositories", params={"q": query, "per_page": SEARCH_PAGE_SIZE}
        )
        while True:
            items.extend(response.data.get("items", []))
            if not response.next_url:
                break
            # The next link already carries the query string
            response = await self._request("GET", response.next_url)

        logger.debug(f"Search '{query}' returned {len(items)} repositories.")
        return items
