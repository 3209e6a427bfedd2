from __future__ import annotations

import logging
from typing import Any, Callable, Dict, Iterable, List, Optional

import requests

from utils.ingestion import ImageFile

log = logging.getLogger(__name__)

Labeler = Callable[[str, str], Dict[str, Any]]


class RelayError(RuntimeError):
    """The relay answered `/auto-label` with a non-success status."""


class RelayClient:
    """Posts images to a running relay's `/auto-label` endpoint."""

    def __init__(self, base_url: str, session: Optional[requests.Session] = None):
        self.base_url = base_url.rstrip("/")
        self.session = session or requests.Session()

    def label(self, image: str, prompt: str = "") -> Dict[str, Any]:
        response = self.session.post(
            f"{self.base_url}/auto-label",
            json={"image": image, "prompt": prompt},
        )
        if not response.ok:
            raise RelayError(f"Request failed: {response.status_code}")
        return response.json()


def label_batch(
    images: Iterable[ImageFile],
    prompt: str,
    labeler: Labeler,
) -> List[Dict[str, Any]]:
    """
    Label images one at a time, in order.

    A failure is recorded as `{"name", "success": False, "error"}` and the
    remaining images still run.
    """
    images = list(images)
    results: List[Dict[str, Any]] = []

    for i, image in enumerate(images, start=1):
        log.info("[BATCH] %d/%d %s", i, len(images), image.name)
        try:
            data = labeler(image.data, prompt)
        except Exception as e:
            log.warning("[BATCH] %s failed: %s", image.name, e)
            results.append({"name": image.name, "success": False, "error": str(e)})
            continue
        results.append({"name": image.name, "success": True, "data": data})

    return results
