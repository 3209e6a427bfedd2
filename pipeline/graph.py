from typing import Any, Dict

from langgraph.graph import END, StateGraph

from models.moondream import UpstreamError
from pipeline.nodes import format_response, node_detect, node_discover
from pipeline.state import LabelState


def should_detect(state):
    """Router: skip detection on a discovery error or when nothing was found."""
    if state.get("error") or not state.get("labels"):
        return "format_response"
    return "detect"


def build_graph():
    workflow = StateGraph(LabelState)

    workflow.add_node("discover", node_discover)
    workflow.add_node("detect", node_detect)
    workflow.add_node("format_response", format_response)

    workflow.set_entry_point("discover")

    workflow.add_conditional_edges(
        "discover",
        should_detect,
        {
            "detect": "detect",
            "format_response": "format_response",
        },
    )

    workflow.add_edge("detect", "format_response")
    workflow.add_edge("format_response", END)

    return workflow.compile()


pipeline = build_graph()


def initial_state(image: str, prompt: str = "") -> LabelState:
    return {
        "image": image,
        "prompt": prompt or "",
        "question": None,
        "answer": None,
        "labels": None,
        "objects": None,
        "failures": None,
        "final": None,
        "error": None,
    }


def label_image(image: str, prompt: str = "") -> Dict[str, Any]:
    """
    Discover-then-detect for one image.

    Returns the LabelResult dict. Raises `UpstreamError` when the discovery
    call failed and no result could be produced.
    """
    result = pipeline.invoke(initial_state(image, prompt))

    if result.get("error"):
        raise UpstreamError(result["error"])

    return result["final"]
