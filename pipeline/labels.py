from __future__ import annotations

from functools import reduce
from typing import Any, Callable, Dict, Iterable, List, NamedTuple, Optional, Tuple, Type

NULL_ANSWER = "null"
COMPOUND_MARKERS = (" and ", ", ")
NO_OBJECTS_MESSAGE = "No objects found"


def is_compound_prompt(prompt: str) -> bool:
    """True when the prompt names several categories ("cars and bikes", "cat, dog")."""
    cleaned = prompt.strip()
    return any(marker in cleaned for marker in COMPOUND_MARKERS)


def build_discovery_question(prompt: str) -> str:
    """
    Phrase the open-vocabulary question sent to the discovery endpoint.

    Three shapes: free enumeration for an empty prompt, an inclusive
    question for compound prompts, and a single-category question with
    answer-format examples otherwise. The last two ask for a literal
    "null" when nothing matches.
    """
    cleaned = (prompt or "").strip()
    if not cleaned:
        return (
            "List all the objects you can see in this image. Return your answer "
            "as a simple comma-separated list of object names. Look carefully "
            "and include anything you can identify."
        )

    if is_compound_prompt(cleaned):
        return (
            f"Look at this image and identify all {cleaned} that you can see. "
            "List each item you find as a simple comma-separated list of the "
            "object and type. Include both types of objects mentioned. If you "
            'cannot find any relevant objects, return exactly "null".'
        )

    return (
        f"List all {cleaned} you can see in this image. Return your answer as a "
        "simple comma-separated list of object names and their type. For "
        'example "red car" or "sign up button". If you cannot find any '
        f'{cleaned}, return exactly "null".'
    )


def is_empty_answer(answer: str) -> bool:
    """
    Decide whether the discovery answer means "nothing found".

    Substring matching on "no " and "none" also fires on answers such as
    "no parking sign"; kept as-is for compatibility with existing prompts.
    """
    lowered = answer.lower()
    return (
        lowered.strip() == NULL_ANSWER
        or "no " in lowered
        or "none" in lowered
    )


def parse_labels(answer: str) -> List[str]:
    """Split a comma-separated answer into labels, keeping order and duplicates."""
    if is_empty_answer(answer):
        return []
    return [part.strip() for part in answer.split(",") if part.strip()]


class Accumulator(NamedTuple):
    """Fold state for the detection phase."""

    next_index: int = 0
    boxes: Tuple[Dict[str, Any], ...] = ()


def accumulate(
    acc: Accumulator,
    label: str,
    raw_boxes: Iterable[Dict[str, Any]],
) -> Accumulator:
    """Append one label's boxes, numbering them from `acc.next_index`."""
    index = acc.next_index
    new_boxes = []
    for raw in raw_boxes:
        new_boxes.append(
            {
                "label": label,
                "x_min": raw["x_min"],
                "y_min": raw["y_min"],
                "x_max": raw["x_max"],
                "y_max": raw["y_max"],
                "originalIndex": index,
            }
        )
        index += 1
    return Accumulator(next_index=index, boxes=acc.boxes + tuple(new_boxes))


def detect_all(
    labels: Iterable[str],
    detect_fn: Callable[[str], Iterable[Dict[str, Any]]],
    recoverable: Tuple[Type[BaseException], ...] = (Exception,),
    on_failure: Optional[Callable[[str, BaseException], None]] = None,
) -> Accumulator:
    """
    Ordered fold of `detect_fn` over labels.

    A `recoverable` error while fetching or numbering one label's boxes is
    reported through `on_failure` and that label contributes no boxes; the
    fold always runs to the end.
    """

    def step(acc: Accumulator, label: str) -> Accumulator:
        try:
            return accumulate(acc, label, detect_fn(label))
        except recoverable as e:
            if on_failure is not None:
                on_failure(label, e)
            return acc

    return reduce(step, labels, Accumulator())
