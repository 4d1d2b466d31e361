# To run:
# python -m src.main upgrade database-diagram.json
# python -m src.main summary database-diagram.json

import argparse
import logging
import traceback

from src.config import AppConfig
from src.diagram_files import read_diagram_file, save_diagram_file
from src.diagram_model import GroupNode, NoteNode, TableNode
from src.diagram_store import DiagramStore
from src.logging_setup import setup_logging

logger = logging.getLogger("main")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="python -m src.main", description="Diagram document tools.")
    commands = parser.add_subparsers(dest="command", required=True)

    upgrade = commands.add_parser("upgrade", help="migrate a diagram document to the current version")
    upgrade.add_argument("input", help="diagram .json file to read")
    upgrade.add_argument("output", nargs="?", default=None, help="destination .json (default: overwrite input)")

    summary = commands.add_parser("summary", help="print node and edge counts of a diagram document")
    summary.add_argument("input", help="diagram .json file to read")
    return parser


def _load_store(cfg: AppConfig, path: str) -> DiagramStore:
    store = DiagramStore.from_config(cfg)
    store.import_diagram(read_diagram_file(path))
    return store


def run_upgrade(cfg: AppConfig, input_path: str, output_path: str | None) -> int:
    store = _load_store(cfg, input_path)
    saved = save_diagram_file(store, output_path or input_path)
    print(f"Upgraded {input_path} -> {saved}")
    return 0


def run_summary(cfg: AppConfig, input_path: str) -> int:
    store = _load_store(cfg, input_path)
    tables = sum(1 for node in store.nodes if isinstance(node, TableNode))
    groups = sum(1 for node in store.nodes if isinstance(node, GroupNode))
    notes = sum(1 for node in store.nodes if isinstance(node, NoteNode))
    note_links = sum(1 for edge in store.edges if edge.is_note_link)
    print(f"tables={tables} groups={groups} notes={notes}")
    print(f"relationships={len(store.edges) - note_links} note_links={note_links}")
    return 0


def main(argv: list[str] | None = None) -> int:
    cfg = AppConfig()
    setup_logging(cfg.log_level)
    args = build_parser().parse_args(argv)
    logger.debug("Running command %s", args.command)

    try:
        if args.command == "upgrade":
            return run_upgrade(cfg, args.input, args.output)
        return run_summary(cfg, args.input)
    except ValueError as exc:
        logger.error("%s", exc)
        if cfg.debug:
            traceback.print_exc()
        return 1


if __name__ == "__main__":
    raise SystemExit(main())
