"""
Tagline API Client

HTTP client for the tagline driver service with the same init / read /
write / close surface as TaglineService. Error responses are raised as the
matching tagline error kinds.
"""

import logging
from typing import Any, Dict, Optional

import requests

from shared.socket_protocol import decode_block, encode_block
from tagline.errors import ERROR_KINDS, BusFailure, TaglineError

logger = logging.getLogger(__name__)


class TaglineApiClient:
    """Drive a remote tagline service over HTTP"""

    def __init__(self, base_url: str, timeout_seconds: float = 30.0, session: Optional[requests.Session] = None):
        """
        Args:
            base_url: Service base URL (e.g., "http://127.0.0.1:8001")
            timeout_seconds: Per-request timeout
            session: Optional requests session (connection reuse, testing)
        """
        self.base_url = base_url.rstrip("/")
        self.timeout_seconds = timeout_seconds
        self.session = session or requests.Session()

    def _call(self, method: str, path: str, **kwargs) -> Dict[str, Any]:
        url = f"{self.base_url}{path}"
        try:
            response = self.session.request(method, url, timeout=self.timeout_seconds, **kwargs)
        except requests.exceptions.RequestException as e:
            raise BusFailure(f"Tagline service unreachable at {url}: {e}") from e

        if response.status_code >= 400:
            self._raise_error(response)
        return response.json()

    @staticmethod
    def _raise_error(response) -> None:
        try:
            detail = response.json().get("detail")
        except ValueError:
            detail = None

        if isinstance(detail, dict):
            kind = detail.get("error")
            message = detail.get("message", "")
            if kind in ERROR_KINDS:
                raise ERROR_KINDS[kind](message)
            if kind == "ValueError":
                raise ValueError(message)
        raise TaglineError(f"Tagline service returned {response.status_code}: {response.text[:200]}")

    def init(self, max_tags: int) -> None:
        self._call("POST", "/tagline/init", json={"max_tags": max_tags})

    def close(self) -> None:
        self._call("POST", "/tagline/close")

    def write(self, tag: int, start_offset: int, count: int, data: bytes) -> None:
        self._call(
            "POST",
            f"/tagline/{tag}/write",
            json={"start_block": start_offset, "num_blocks": count, "data_b64": encode_block(data)},
        )

    def read(self, tag: int, start_offset: int, count: int) -> bytes:
        result = self._call(
            "GET",
            f"/tagline/{tag}/read",
            params={"start_block": start_offset, "num_blocks": count},
        )
        return decode_block(result["data_b64"])

    def status(self) -> Dict[str, Any]:
        return self._call("GET", "/tagline/status")
