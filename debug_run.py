from __future__ import annotations

import argparse
import logging
from collections import Counter
from pathlib import Path

from pipeline.graph import initial_state, label_image, pipeline
from utils.batch import RelayClient, label_batch
from utils.draw_results import ALL, FilterState, label_color_map, render_svg
from utils.ingestion import harvest_images

logging.basicConfig(
    level=logging.DEBUG,
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
)


def print_summary(results, filters: FilterState) -> None:
    for index, item in enumerate(results):
        print("\n" + "=" * 40)
        print(f"IMAGE: {item['name']}")
        if not item["success"]:
            print(f"FAILED: {item['error']}")
            continue

        objects = item["data"]["objects"]
        if not objects:
            print(item["data"].get("message", "No objects found"))
            continue

        colors = label_color_map(objects)
        counts = Counter(obj["label"] for obj in filters.visible(index, objects))
        print(f"Found {len(objects)} objects (filter: {filters.active(index)})")
        for label, color in colors.items():
            if counts[label]:
                print(f"- {label}: {counts[label]} (bbox-{color})")


def write_overlays(results, filters: FilterState, out_dir: Path, width: int, height: int):
    """
    Write one SVG overlay per labeled image, sized `width` x `height`.

    Images are never decoded, so the canvas size comes from the caller.
    """
    out_dir.mkdir(parents=True, exist_ok=True)
    written = []
    for index, item in enumerate(results):
        if not item["success"] or not item["data"]["objects"]:
            continue
        svg = render_svg(item["data"]["objects"], width, height, filters.active(index))
        path = out_dir / f"{Path(item['name']).stem}.svg"
        path.write_text(svg, encoding="utf-8")
        written.append(path)
    return written


def parse_size(value: str):
    try:
        width, height = (int(part) for part in value.lower().split("x"))
    except ValueError:
        raise argparse.ArgumentTypeError(f"expected WIDTHxHEIGHT, got {value!r}")
    return width, height


def main() -> None:
    """
    Label images or folders from the command line.

    Runs the pipeline in-process (needs MOONDREAM_API_KEY) or, with
    `--relay`, through a running `/auto-label` server.
    """
    parser = argparse.ArgumentParser(description=main.__doc__)
    parser.add_argument("paths", nargs="+", help="image files or folders")
    parser.add_argument("--prompt", default="", help="object categories to look for")
    parser.add_argument("--relay", help="base URL of a running relay, e.g. http://localhost:3002")
    parser.add_argument("--stream", action="store_true", help="print each node's state delta")
    parser.add_argument("--filter", default=ALL, help="only show boxes with this label")
    parser.add_argument("--svg-dir", type=Path, help="write one SVG overlay per image here")
    parser.add_argument("--size", type=parse_size, default=(1000, 1000), help="overlay canvas, WIDTHxHEIGHT")
    args = parser.parse_args()

    images = harvest_images(args.paths)
    if not images:
        parser.error("no image files found")

    if args.stream:
        # Stream: see each node's state delta live
        for image in images:
            for step in pipeline.stream(initial_state(image.data, args.prompt)):
                node = list(step.keys())[0]
                # the packed result repeats the image payload
                delta = {k: v for k, v in (step[node] or {}).items() if k != "final"}
                print("\n" + "=" * 40)
                print(f"{image.name} NODE: {node}")
                print(f"DELTA: {delta}")
        return

    labeler = RelayClient(args.relay).label if args.relay else label_image
    results = label_batch(images, args.prompt, labeler)

    filters = FilterState()
    for index in range(len(results)):
        filters.select(index, args.filter)

    print_summary(results, filters)
    if args.svg_dir:
        for path in write_overlays(results, filters, args.svg_dir, *args.size):
            print(f"Saved → {path}")


if __name__ == "__main__":
    main()
