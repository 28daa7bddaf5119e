"""
Clients for the crates.io registry and the OpenSSF Security Scorecard API.

Both clients share one ``httpx.AsyncClient`` and issue exactly one request
per lookup. Failures are raised as ``DependencyLookupError`` subclasses so
the enrichment pipeline can decide what to do with them.
"""

import time
from typing import Any, Dict, Optional
from urllib.parse import quote

import httpx

from .cli_config import NetworkConfig
from .error_handling import (
    ClientConstructionError,
    HttpStatusError,
    ParseError,
    TransportError,
)
from .structured_logging import log_lookup

DEFAULT_REGISTRY_URL = "https://crates.io/api/v1/crates"
DEFAULT_SCORECARD_URL = "https://api.securityscorecards.dev/projects"


def build_http_client(network: Optional[NetworkConfig] = None) -> httpx.AsyncClient:
    """
    Build the HTTP client shared by every lookup of a run.

    Args:
        network: Network settings (user agent, timeouts, pool limits)

    Returns:
        httpx.AsyncClient: Client carrying the user agent as a default header

    Raises:
        ClientConstructionError: If the client cannot be created
    """
    network = network or NetworkConfig()
    try:
        return httpx.AsyncClient(
            headers={"User-Agent": network.user_agent},
            follow_redirects=True,
            timeout=httpx.Timeout(
                connect=network.connect_timeout,
                read=network.read_timeout,
                write=network.write_timeout,
                pool=network.pool_timeout,
            ),
            limits=httpx.Limits(
                max_connections=network.max_connections,
                max_keepalive_connections=network.max_keepalive_connections,
            ),
        )
    except (TypeError, ValueError) as e:
        raise ClientConstructionError(f"Could not create HTTP client: {e}") from e


def strip_scheme(repository_url: str) -> str:
    """Remove one leading ``http://`` and then one leading ``https://``."""
    for prefix in ("http://", "https://"):
        if repository_url.startswith(prefix):
            repository_url = repository_url[len(prefix):]
    return repository_url


class _JsonLookupClient:
    """Shared plumbing: one GET, status check, JSON object decoding."""

    def __init__(self, client: httpx.AsyncClient, base_url: str):
        self.client = client
        self.base_url = base_url.rstrip("/")

    async def _get_json(
        self, url: str, subject: str, headers: Optional[Dict[str, str]] = None
    ) -> Dict[str, Any]:
        try:
            response = await self.client.get(url, headers=headers)
        except (httpx.RequestError, httpx.InvalidURL) as e:
            raise TransportError(subject, f"Request to {url} failed: {e}", e) from e

        if not response.is_success:
            raise HttpStatusError(
                subject,
                response.status_code,
                f"API request to {url} failed with HTTP {response.status_code}",
            )

        try:
            data = response.json()
        except ValueError as e:
            raise ParseError(subject, f"Response from {url} is not valid JSON", e) from e

        if not isinstance(data, dict):
            raise ParseError(subject, f"Response from {url} is not a JSON object")
        return data


class RepositoryResolver(_JsonLookupClient):
    """Looks up a crate's source repository on crates.io."""

    def __init__(self, client: httpx.AsyncClient, base_url: str = DEFAULT_REGISTRY_URL):
        super().__init__(client, base_url)

    async def resolve(self, name: str) -> Optional[str]:
        """
        Return the repository URL recorded for a crate.

        Args:
            name: Crate name

        Returns:
            Optional[str]: Repository URL, or None when the crate has none

        Raises:
            ValueError: If the name is empty
            DependencyLookupError: On transport, status or parse failure
        """
        if not name or not name.strip():
            raise ValueError("Crate name must be a non-empty string")

        start_time = time.monotonic()
        url = f"{self.base_url}/{quote(name.strip(), safe='')}"
        data = await self._get_json(url, name)

        crate = data.get("crate")
        if crate is None:
            repository = None
        elif not isinstance(crate, dict):
            raise ParseError(name, "Field 'crate' is not a JSON object")
        else:
            repository = crate.get("repository")
            if repository is not None and not isinstance(repository, str):
                raise ParseError(name, "Field 'crate.repository' is not a string")
            if repository is not None and not repository.strip():
                repository = None

        log_lookup(
            "resolve",
            name,
            repository is not None,
            int((time.monotonic() - start_time) * 1000),
        )
        return repository


class SecurityScorer(_JsonLookupClient):
    """Fetches the OpenSSF Scorecard score of a repository."""

    def __init__(self, client: httpx.AsyncClient, base_url: str = DEFAULT_SCORECARD_URL):
        super().__init__(client, base_url)

    def project_url(self, repository_url: str) -> str:
        """Scorecard API URL for a repository (addressed by bare host and path)."""
        return f"{self.base_url}/{strip_scheme(repository_url)}"

    async def score(self, repository_url: str) -> Optional[float]:
        """
        Return the aggregate scorecard score for a repository.

        Args:
            repository_url: Repository URL, with or without scheme

        Returns:
            Optional[float]: The score, or None when the service has none

        Raises:
            DependencyLookupError: On transport, status or parse failure
        """
        start_time = time.monotonic()
        data = await self._get_json(
            self.project_url(repository_url),
            repository_url,
            headers={"accept": "application/json"},
        )

        score = data.get("score")
        if score is not None:
            if isinstance(score, bool) or not isinstance(score, (int, float)):
                raise ParseError(repository_url, "Field 'score' is not a number")
            score = float(score)

        log_lookup(
            "score",
            repository_url,
            score is not None,
            int((time.monotonic() - start_time) * 1000),
        )
        return score
