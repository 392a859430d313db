"""Liveness checks for URL-based dependency references."""

import logging
import re
from urllib.parse import quote

import httpx

from .cache import TTLCache
from .models import URLValidationResult

logger = logging.getLogger(__name__)

_GITHUB_SHORTHAND = re.compile(r"^github:([^/]+)/([^#]+)(?:#(.*))?$")
_GITHUB_PATH = re.compile(r"github\.com/([^/]+)/([^/#?]+)")


def is_url_reference(name: str) -> bool:
    """Check whether a package name is itself a URL-like reference."""
    return name.startswith(("http://", "https://", "github:"))


class URLValidator:
    """Validator for URL-based package references."""

    def __init__(
        self,
        timeout: float = 5.0,
        registry_url: str = "https://registry.npmjs.org",
        cache: TTLCache | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        """Initialize URL validator.

        Args:
            timeout: Request timeout in seconds
            registry_url: npm registry base URL
            cache: Optional cache for validation results, keyed by URL
            transport: Optional httpx transport (used by tests)
        """
        self.timeout = timeout
        self.registry_url = registry_url.rstrip("/")
        self.cache = cache
        self.transport = transport

    async def validate(self, url: str) -> URLValidationResult:
        """Check whether a URL is reachable.

        Sends a HEAD request and retries with GET when HEAD cannot be
        completed. Never raises.

        Args:
            url: URL or github: shorthand

        Returns:
            Validation result with status code or error text
        """
        if self.cache is not None:
            cached = self.cache.get(url)
            if cached is not None:
                return cached

        result = await self._validate(url)

        if self.cache is not None:
            self.cache.set(url, result)
        return result

    async def _validate(self, url: str) -> URLValidationResult:
        full_url = self._normalize_url(url)
        if not full_url:
            return URLValidationResult(url=url, is_valid=False, error="Malformed or unresolvable URL")

        async with self._client() as client:
            try:
                response = await client.head(full_url)
            except httpx.HTTPError as head_error:
                logger.debug("HEAD %s failed (%s), retrying with GET", full_url, head_error)
                try:
                    response = await client.get(full_url)
                except httpx.HTTPError as e:
                    logger.warning("URL %s is unreachable: %s", full_url, e)
                    return URLValidationResult(
                        url=url,
                        is_valid=False,
                        error=str(e) or "Failed to access URL after multiple attempts.",
                    )

        return URLValidationResult(
            url=url,
            is_valid=response.is_success,
            status_code=response.status_code,
        )

    async def find_registry_alternative(self, package_name: str) -> str | None:
        """Look up the latest registry version of a package.

        Args:
            package_name: Package name, scoped names included

        Returns:
            The "latest" dist-tag, or None when unavailable
        """
        registry_url = f"{self.registry_url}/{quote(package_name, safe='')}"

        try:
            async with self._client() as client:
                response = await client.get(registry_url, headers={"Accept": "application/json"})
                if not response.is_success:
                    return None
                data = response.json()
        except (httpx.HTTPError, ValueError) as e:
            logger.debug("Registry lookup for %s failed: %s", package_name, e)
            return None

        dist_tags = data.get("dist-tags") if isinstance(data, dict) else None
        if isinstance(dist_tags, dict):
            return dist_tags.get("latest")
        return None

    @staticmethod
    def extract_package_from_url(url: str) -> str | None:
        """Extract the repository name from a GitHub reference.

        Handles github:user/repo#ref and github.com/user/repo/... forms.
        """
        shorthand = _GITHUB_SHORTHAND.match(url)
        if shorthand:
            return shorthand.group(2)

        if url.startswith("github:"):
            return None

        match = _GITHUB_PATH.search(url)
        if match:
            return re.sub(r"\.git$", "", match.group(2))

        return None

    def _normalize_url(self, url: str) -> str:
        shorthand = _GITHUB_SHORTHAND.match(url)
        if shorthand:
            return f"https://github.com/{shorthand.group(1)}/{shorthand.group(2)}"

        if not url or any(char.isspace() for char in url):
            return ""

        candidate = url if "://" in url else f"https://{url}"
        try:
            parsed = httpx.URL(candidate)
        except httpx.InvalidURL:
            return ""

        if parsed.scheme not in ("http", "https") or not parsed.host:
            return ""
        return candidate

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            timeout=self.timeout,
            follow_redirects=True,
            transport=self.transport,
        )
