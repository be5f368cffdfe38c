from __future__ import annotations

import logging
import time
from abc import ABC, abstractmethod
from typing import Any

import requests

from rolescout.config import Settings, get_settings
from rolescout.errors import ProviderError
from rolescout.types import Candidate, SourceName

logger = logging.getLogger(__name__)


class SourceAdapter(ABC):
    """One discovery source. `discover()` returns candidates; the ledger decides what is new."""

    source: SourceName
    name: str = "source"

    def __init__(self, settings: Settings | None = None, http: Any | None = None):
        self.settings = settings or get_settings()
        self.http = http or requests.Session()
        self.stats: dict[str, Any] = {}

    @abstractmethod
    def discover(self) -> list[Candidate]:
        raise NotImplementedError

    def pause(self) -> None:
        if self.settings.pacing_delay_sec > 0:
            time.sleep(self.settings.pacing_delay_sec)

    def get_json(
        self,
        url: str,
        *,
        provider: str,
        params: dict[str, Any] | None = None,
        headers: dict[str, str] | None = None,
    ) -> Any:
        request_headers = {"Accept": "application/json"}
        request_headers.update(headers or {})
        response = self.http.get(
            url,
            params=params,
            headers=request_headers,
            timeout=self.settings.http_timeout_sec,
        )
        if response.status_code != 200:
            raise ProviderError(
                provider,
                f"HTTP {response.status_code}: {(response.text or '')[:300]}",
                status_code=response.status_code,
            )
        try:
            return response.json()
        except ValueError as exc:
            raise ProviderError(provider, f"malformed JSON: {exc}", status_code=response.status_code) from exc
