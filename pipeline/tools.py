from __future__ import annotations

from typing import Any, Dict

from langchain_core.tools import tool

from models.moondream import get_moondream


@tool
def run_query(image: str, question: str) -> Dict[str, Any]:
    """
    Asks Moondream a free-text question about an image.

    Args:
        image: Image as a base64 data URI.
        question: Natural-language question, e.g. a request to list objects.

    Returns:
        Dict with key:
            - answer : the model's answer ("" when absent)
    """
    client = get_moondream()
    return {"answer": client.query(image, question)}


@tool
def run_detect(image: str, object_name: str) -> Dict[str, Any]:
    """
    Localizes every instance of one object class using Moondream.

    Args:
        image: Image as a base64 data URI.
        object_name: A single class or descriptive phrase, e.g. "red car".

    Returns:
        Dict with key:
            - objects : list of {x_min, y_min, x_max, y_max} normalized to [0, 1]
    """
    client = get_moondream()
    return {"objects": client.detect(image, object_name)}
