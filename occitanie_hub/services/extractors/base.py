"""
Quality standard: Clean Code and inheritance.
Reason: Avoid duplicating network and logging logic between source clients.
"""
import httpx
from abc import ABC, abstractmethod
from typing import Any, Optional
from occitanie_hub.core.logger import log

USER_AGENT = "OccitanieEventHub/1.0 (+https://github.com/occitanie-event-hub)"


def get_headers() -> dict:
    return {
        "User-Agent": USER_AGENT,
        "Accept": "application/json",
        "Accept-Language": "fr-FR,fr;q=0.9,en-US;q=0.8,en;q=0.7",
    }


def build_http_client(timeout: float = 30.0, **kwargs) -> httpx.AsyncClient:
    """Client shared by every fetch of an aggregation run."""
    return httpx.AsyncClient(headers=get_headers(), follow_redirects=True, timeout=timeout, **kwargs)


class BaseExtractor(ABC):
    def __init__(self, client: httpx.AsyncClient):
        self.client = client

    async def fetch_json(self, url: str, params: Optional[dict] = None) -> Optional[Any]:
        """
        Performs the asynchronous request with error handling.
        Returns None on any network, HTTP or JSON error.
        """
        try:
            response = await self.client.get(url, params=params)
            response.raise_for_status()
            return response.json()
        except (httpx.HTTPError, ValueError) as e:
            log.error(f"Error accessing {url}: {e}")
            return None

    @abstractmethod
    async def fetch_from_api(self, source_key: str, config):
        """Mandatory for every source client."""
        pass
