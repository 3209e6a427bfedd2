from __future__ import annotations

import logging
from typing import Any, Dict, List

import requests

from models.moondream import UpstreamError
from pipeline.labels import (
    NO_OBJECTS_MESSAGE,
    build_discovery_question,
    detect_all,
    parse_labels,
)
from pipeline.state import LabelState
from pipeline.tools import run_detect, run_query

log = logging.getLogger(__name__)

# one label's bad response must not sink the request
DETECT_ERRORS = (
    UpstreamError,
    requests.RequestException,
    KeyError,
    TypeError,
    ValueError,
    AttributeError,
)


def node_discover(state: LabelState) -> Dict[str, Any]:
    """Asks the model which objects are present and parses them into labels."""
    image = state.get("image") or ""
    prompt = state.get("prompt") or ""

    log.info("[DISCOVER] prompt='%s'", prompt or "(no prompt - finding all objects)")

    question = build_discovery_question(prompt)
    log.info("[DISCOVER] question='%s' image=%s...", question, image[:50])

    try:
        result = run_query.invoke({"image": image, "question": question})
    except Exception as e:
        log.error("[DISCOVER] %s", e)
        return {"question": question, "labels": [], "error": str(e)}

    answer = result.get("answer") or ""
    labels = parse_labels(answer)
    log.info("[DISCOVER] answer='%s' -> %d labels: %s", answer, len(labels), labels)

    return {
        "question": question,
        "answer": answer,
        "labels": labels,
        "error": None,
    }


def node_detect(state: LabelState) -> Dict[str, Any]:
    """
    Runs one detection call per discovered label, in order.

    A failed call is logged and recorded; that label simply contributes no
    boxes.
    """
    image = state["image"]
    labels = state.get("labels") or []
    failures: List[Dict[str, str]] = []

    log.info("[DETECT] %d labels", len(labels))

    def detect(label: str):
        result = run_detect.invoke({"image": image, "object_name": label})
        return result.get("objects") or []

    def record_failure(label: str, error: BaseException) -> None:
        log.warning("[DETECT] failed for '%s': %s", label, error)
        failures.append({"label": label, "error": str(error)})

    acc = detect_all(
        labels,
        detect,
        recoverable=DETECT_ERRORS,
        on_failure=record_failure,
    )

    log.info("[DETECT] found %d boxes (%d failed labels)", len(acc.boxes), len(failures))
    return {"objects": list(acc.boxes), "failures": failures}


def format_response(state: LabelState) -> Dict[str, Any]:
    """Packs the accumulated boxes into the LabelResult returned to clients."""
    if state.get("error"):
        log.info("[FORMAT] pipeline stopped: %s", state["error"])
        return {"final": None}

    image = state.get("image")
    labels = state.get("labels") or []

    if not labels:
        return {
            "final": {
                "objects": [],
                "originalImage": image,
                "message": NO_OBJECTS_MESSAGE,
            }
        }

    return {
        "final": {
            "objects": state.get("objects") or [],
            "originalImage": image,
            "discoveredObjects": labels,
        }
    }
