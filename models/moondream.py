from __future__ import annotations

import logging
import threading
from numbers import Real
from typing import Any, Dict, List, Optional

import requests

from utils.config import get_settings

log = logging.getLogger(__name__)

AUTH_HEADER = "X-Moondream-Auth"
BOX_KEYS = ("x_min", "y_min", "x_max", "y_max")

# One client per worker thread, rebuilt when the settings it was built from change
_local = threading.local()


class UpstreamError(RuntimeError):
    """The Moondream API failed or answered with something unusable."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class ConfigurationError(RuntimeError):
    """Required configuration (the API key) is missing."""


def _is_box(raw: Any) -> bool:
    return isinstance(raw, dict) and all(
        isinstance(raw.get(key), Real) and not isinstance(raw.get(key), bool)
        for key in BOX_KEYS
    )


class MoondreamClient:
    """
    Thin wrapper over the Moondream `/query` and `/detect` endpoints.

    Both calls send the image as a data URI and ask for grounded reasoning.
    A non-2xx status or a malformed body raises `UpstreamError`; transport
    failures surface as `requests.RequestException`.
    """

    def __init__(
        self,
        api_key: str,
        base_url: str = "https://api.moondream.ai/v1",
        timeout: Optional[float] = None,
        session: Optional[requests.Session] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.session = session or requests.Session()
        self.session.headers.update(
            {
                AUTH_HEADER: api_key,
                "Content-Type": "application/json",
            }
        )

    def _post(self, endpoint: str, payload: Dict[str, Any]) -> Dict[str, Any]:
        response = self.session.post(
            f"{self.base_url}/{endpoint}",
            json=payload,
            timeout=self.timeout,
        )
        if not response.ok:
            raise UpstreamError(
                f"Moondream {endpoint} failed: {response.status_code}",
                status_code=response.status_code,
            )
        body = response.json()
        if not isinstance(body, dict):
            raise UpstreamError(
                f"Moondream {endpoint} returned {type(body).__name__}, expected an object",
                status_code=response.status_code,
            )
        return body

    def query(self, image: str, question: str) -> str:
        """Ask a free-text question about the image and return the answer."""
        log.debug("[MOONDREAM] query image=%s... question=%r", image[:50], question)
        result = self._post(
            "query",
            {"image_url": image, "question": question, "reasoning": True},
        )
        answer = result.get("answer") or ""
        if not isinstance(answer, str):
            raise UpstreamError("Moondream query returned a non-text answer")
        return answer

    def detect(self, image: str, object_name: str) -> List[Dict[str, float]]:
        """Localize every instance of `object_name` as normalized boxes."""
        log.debug("[MOONDREAM] detect image=%s... object=%r", image[:50], object_name)
        result = self._post(
            "detect",
            {"image_url": image, "object": object_name, "reasoning": True},
        )
        objects = result.get("objects") or []
        if not isinstance(objects, list) or not all(_is_box(raw) for raw in objects):
            raise UpstreamError(f"Moondream detect returned malformed boxes for '{object_name}'")
        return objects


def get_moondream() -> MoondreamClient:
    """
    Returns this thread's Moondream client for the current settings.

    The client is rebuilt when the key, URL or timeout changes, so a
    rotated credential takes effect on the next call. Raises
    `ConfigurationError` when `MOONDREAM_API_KEY` is not set.
    """
    settings = get_settings()
    if not settings.MOONDREAM_API_KEY:
        raise ConfigurationError("MOONDREAM_API_KEY not configured")

    key = (settings.MOONDREAM_API_KEY, settings.MOONDREAM_API_URL, settings.MOONDREAM_TIMEOUT)
    if getattr(_local, "key", None) != key:
        _local.client = MoondreamClient(
            api_key=settings.MOONDREAM_API_KEY,
            base_url=settings.MOONDREAM_API_URL,
            timeout=settings.MOONDREAM_TIMEOUT,
        )
        _local.key = key

    return _local.client
