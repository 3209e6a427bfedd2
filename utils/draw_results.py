from __future__ import annotations

from html import escape
from typing import Any, Dict, List, Optional

PALETTE_SIZE = 8
ALL = "all"


def label_color_map(boxes: List[Dict[str, Any]]) -> Dict[str, int]:
    """Unique labels in first-seen order, each mapped to `rank % PALETTE_SIZE`."""
    colors: Dict[str, int] = {}
    for box in boxes:
        label = box["label"]
        if label not in colors:
            colors[label] = len(colors) % PALETTE_SIZE
    return colors


def assign_color_indices(boxes: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    """
    Copy boxes with a `colorIndex` derived from their label.

    Boxes sharing a label share a colour, whatever their `originalIndex`.
    """
    colors = label_color_map(boxes)
    return [{**box, "colorIndex": colors[box["label"]]} for box in boxes]


def color_index(box: Dict[str, Any], position: int) -> int:
    """`colorIndex`, else `originalIndex`, else the drawing position."""
    if box.get("colorIndex") is not None:
        index = box["colorIndex"]
    elif box.get("originalIndex") is not None:
        index = box["originalIndex"]
    else:
        index = position
    return index % PALETTE_SIZE


def filter_options(boxes: List[Dict[str, Any]]) -> List[str]:
    return [ALL] + list(label_color_map(boxes))


def visible_boxes(boxes: List[Dict[str, Any]], active_filter: str = ALL) -> List[Dict[str, Any]]:
    if active_filter == ALL:
        return list(boxes)
    return [box for box in boxes if box["label"] == active_filter]


class FilterState:
    """
    Active filter per result, keyed by the result's position in a batch.

    Each result filters independently; an unknown index reads as "all".
    """

    def __init__(self):
        self._active: Dict[int, str] = {}

    def select(self, result_index: int, label: str) -> None:
        self._active[result_index] = label

    def active(self, result_index: int) -> str:
        return self._active.get(result_index, ALL)

    def visible(self, result_index: int, boxes: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
        return visible_boxes(boxes, self.active(result_index))


def to_pixel_rect(box: Dict[str, Any], width: float, height: float) -> Dict[str, float]:
    """
    Scale a normalized box to pixels of an image rendered at `width` x `height`.
    """
    return {
        "x": box["x_min"] * width,
        "y": box["y_min"] * height,
        "width": (box["x_max"] - box["x_min"]) * width,
        "height": (box["y_max"] - box["y_min"]) * height,
    }


def render_svg(
    boxes: List[Dict[str, Any]],
    width: int,
    height: int,
    active_filter: str = ALL,
    colors: Optional[Dict[str, int]] = None,
) -> str:
    """
    Render the overlay as standalone SVG markup.

    Colours are computed over the full box list before filtering so a
    label keeps its colour under every filter. Rects carry `bbox-<n>`
    classes matching the browser stylesheet.
    """
    colors = colors if colors is not None else label_color_map(boxes)
    parts = [
        f'<svg xmlns="http://www.w3.org/2000/svg" viewBox="0 0 {width} {height}" '
        f'width="{width}" height="{height}">'
    ]
    for position, box in enumerate(visible_boxes(boxes, active_filter)):
        rect = to_pixel_rect(box, width, height)
        color = color_index({**box, "colorIndex": colors.get(box["label"])}, position)
        parts.append(
            f'<rect class="bbox bbox-{color}" x="{rect["x"]:.2f}" y="{rect["y"]:.2f}" '
            f'width="{rect["width"]:.2f}" height="{rect["height"]:.2f}" rx="4" ry="4"/>'
        )
        parts.append(
            f'<text class="bbox-label" x="{rect["x"]:.2f}" y="{max(rect["y"] - 8, 0):.2f}">'
            f"{escape(box['label'])}</text>"
        )
    parts.append("</svg>")
    return "".join(parts)
