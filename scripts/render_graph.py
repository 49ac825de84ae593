#!/usr/bin/env python3
"""CLI utility rendering a graph dataset file or URL to a laid out SVG."""
from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import Any, List, Optional

from graphview.config import ConfigError, load_config
from graphview.filtering.view_filter import ViewFilter
from graphview.interaction.intents import Select
from graphview.interaction.session import GraphViewSession, ViewStatus
from graphview.render.scene import build_scene
from graphview.render.svg import render_svg
from graphview.utils.fetch import DatasetClient

LOGGER = logging.getLogger(__name__)


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    """Parse command line arguments for the renderer.

    Returns:
        argparse.Namespace: Parsed command line arguments.
    """
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument("source", help="Path to a JSON dataset or base URL of the data-serving API")
    parser.add_argument("-o", "--output", type=Path, help="Write the SVG here instead of stdout")
    parser.add_argument("--config", type=Path, help="Alternative config.yaml")
    parser.add_argument("--search", default="", help="Case-insensitive search term")
    parser.add_argument("--types", default="all", help="Comma-separated node types (default: all)")
    parser.add_argument("--max-nodes", type=int, help="Node cap (default: view.max_nodes)")
    parser.add_argument("--cluster", help="Restrict the view to one cluster id")
    parser.add_argument("--pathway", help="Restrict the view to one pathway id")
    parser.add_argument("--show-pathways", action="store_true", help="Emphasize pathway edges")
    parser.add_argument("--select", help="Highlight a node and its neighbors")
    parser.add_argument("--topic", help="Mark people whose expertise mentions this topic")
    parser.add_argument("--max-ticks", type=int, default=5000, help="Tick budget for settling")
    parser.add_argument("--no-fit", action="store_true", help="Keep the identity view transform")
    return parser.parse_args(argv)


def _load_payload(source: str, session: GraphViewSession) -> bool:
    if source.startswith(("http://", "https://")):
        client = DatasetClient(source, timeout=session.config.dataset.timeout_seconds)
        return session.apply_fetch(client.fetch(limit=session.config.view.max_nodes))
    path = Path(source)
    try:
        payload: Any = json.loads(path.read_text(encoding="utf-8"))
    except OSError as exc:
        LOGGER.error("Unable to read dataset %s: %s", path, exc)
        return False
    except json.JSONDecodeError as exc:
        LOGGER.error("Dataset %s is not valid JSON: %s", path, exc)
        return False
    return session.load_payload(payload)


def main(argv: Optional[List[str]] = None) -> int:
    """Entry point for the CLI renderer.

    Rendering is one-shot, so the session settles synchronously within
    ``--max-ticks`` rather than ticking on an event loop.

    Returns:
        int: Exit status code where ``0`` indicates an SVG was produced.
    """
    logging.basicConfig(level=logging.INFO, format="[%(levelname)s] %(message)s")
    args = parse_args(argv)

    try:
        config = load_config(args.config)
    except ConfigError as exc:
        print("Unable to load configuration:", exc, file=sys.stderr)
        return 2

    session = GraphViewSession(config)
    session.set_show_pathways(args.show_pathways or config.view.show_pathways)
    if not _load_payload(args.source, session):
        print("Unable to load dataset:", session.message or args.source, file=sys.stderr)
        return 1

    session.set_filter(
        ViewFilter.build(
            search_term=args.search,
            node_types=[part for part in args.types.split(",") if part.strip()],
            max_nodes=args.max_nodes or config.view.max_nodes,
            active_cluster_id=args.cluster,
            active_pathway_id=args.pathway,
            searchable_fields=config.view.searchable_metadata_fields,
        )
    )
    ticks = session.settle(max_ticks=args.max_ticks)
    if args.select:
        session.dispatch(Select(node_id=args.select))
    if args.topic:
        session.highlight_topic(args.topic)
    if not args.no_fit:
        session.fit_to_view()

    markup = render_svg(build_scene(session.snapshot(), config.view, session.dataset))
    if args.output is not None:
        args.output.write_text(markup, encoding="utf-8")
        LOGGER.info("Wrote %s (%d nodes, %d ticks)", args.output, session.displayed.node_count, ticks)
    else:
        print(markup)
    if session.status is ViewStatus.EMPTY:
        print(session.message, file=sys.stderr)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
