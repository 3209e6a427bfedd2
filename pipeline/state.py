from typing import Dict, List, Optional, TypedDict


class LabelState(TypedDict, total=False):
    """
    Request-scoped state passed between LangGraph nodes.

    Created per `/auto-label` call and discarded once the response is sent.
    """

    image: str  # data URI, echoed back as `originalImage`
    prompt: str  # free text, may be empty

    # Discovery phase
    question: Optional[str]
    answer: Optional[str]
    labels: Optional[List[str]]  # ["car", "red sign up button"]

    # Detection phase
    objects: Optional[List[Dict]]  # [{"label", "x_min", ..., "originalIndex"}, ...]
    failures: Optional[List[Dict]]  # [{"label", "error"}, ...] per failed detect call

    # Packed LabelResult
    final: Optional[Dict]

    # Fatal discovery error
    error: Optional[str]
