from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Dict, Optional

import requests
from requests.exceptions import ConnectionError, Timeout

from skyverse_terrain.config import Settings
from skyverse_terrain.contracts.engine_contract import Transport, TransportResponse
from skyverse_terrain.core.errors import TransportError

log = logging.getLogger(__name__)


@dataclass
class HTTPTransport(Transport):
    """Single-shot GET over a shared ``requests.Session``. No retries."""

    user_agent: str
    timeout_s: int = 25

    def __post_init__(self) -> None:
        self.s = requests.Session()
        self.s.headers.update(
            {
                "User-Agent": self.user_agent,
                "Accept": "application/json, text/plain;q=0.9, */*;q=0.8",
            }
        )

    @classmethod
    def from_settings(cls, settings: Settings) -> "HTTPTransport":
        return cls(user_agent=settings.user_agent, timeout_s=settings.http_timeout_s)

    def fetch(self, url: str, headers: Dict[str, str], timeout_s: Optional[int] = None) -> TransportResponse:
        timeout = timeout_s if timeout_s is not None else self.timeout_s
        try:
            r = self.s.get(url, headers=headers, timeout=timeout)
        except (ConnectionError, Timeout) as e:
            raise TransportError(f"{type(e).__name__}: {e}") from e
        log.debug("GET %s -> %d (%d bytes)", url, r.status_code, len(r.content or b""))
        return TransportResponse(status_code=r.status_code, body=r.text)

    def close(self) -> None:
        self.s.close()
