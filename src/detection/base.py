"""Base class for detector tiers."""

from abc import ABC, abstractmethod
from pathlib import Path
from typing import Optional

import httpx

from detection.models import Detection

USER_AGENT = "mother-skills/0.1 (+skill provisioning)"


class BaseDetector(ABC):
    """Async base class for one independent evidence source.

    Subclasses return ``(category, technology)`` pairs and never see other tiers' output.
    Network-backed tiers get a shared ``httpx.AsyncClient`` via ``client``.
    """

    def __init__(self, project_path: str | Path, client: Optional[httpx.AsyncClient] = None):
        self.project_path = Path(project_path).expanduser().resolve()
        self._client = client
        self._owns_client = client is None

    @property
    @abstractmethod
    def tier_name(self) -> str:
        """Unique tier identifier."""

    @abstractmethod
    async def detect(self) -> list[Detection]:
        """Collect detections from this tier's evidence source."""

    @property
    def client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(
                timeout=30.0,
                headers={"User-Agent": USER_AGENT},
            )
        return self._client

    async def close(self):
        """Close the HTTP client if this detector created it."""
        if self._client is not None and self._owns_client:
            await self._client.aclose()
            self._client = None

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()
