"""
CLI: render or check a training architecture.

Usage::

    python -m training_architecture.cli \\
        --db ./data/architecture.db \\
        --load tests/sample_architecture.json \\
        --cohort 1 --context course --course-id 101

    python -m training_architecture.cli --db ./data/architecture.db --check 2
    python -m training_architecture.cli --db ./data/architecture.db \\
        --path 2 --course-id 101

Exit code 0 on success, 1 when ``--check`` finds a cycle.
"""

import argparse
import json
import logging
import sys

from training_architecture import db
from training_architecture.architecture import build_architecture
from training_architecture.config import load_config, save_config
from training_architecture.dag_validator import compute_metrics, find_cycle_path
from training_architecture.link_store import SqliteLinkStore
from training_architecture.path_resolver import PathResolver
from training_architecture.presenter import TextPresenter
from training_architecture.utils import setup_logging, timed

logger = logging.getLogger(__name__)


# =========================================================================
# Commands
# =========================================================================


def run_check(store: SqliteLinkStore, training_id: int) -> int:
    """Print metrics for *training_id*; return 1 if its links loop."""
    links = store.get_all_links(training_id)
    metrics = compute_metrics(links)
    metrics["training_id"] = training_id
    cycle = find_cycle_path(links)
    metrics["cycle"] = cycle
    print(json.dumps(metrics, indent=2))
    if cycle is not None:
        logger.error("❌ Training %d has cyclic links: %s", training_id, cycle)
        return 1
    logger.info("✅ Training %d is acyclic.", training_id)
    return 0


def run_path(store: SqliteLinkStore, training_id: int, course_id: int,
             semester_label: str) -> int:
    paths = PathResolver(store, semester_label=semester_label).build_path(
        training_id, course_id
    )
    for p in paths:
        print(" > ".join(p.names))
    return 0


# =========================================================================
# CLI
# =========================================================================


def _parse_args(argv=None):
    parser = argparse.ArgumentParser(
        prog="python -m training_architecture.cli",
        description="Render or check a training architecture.",
    )
    parser.add_argument("--db", default="./data/architecture.db")
    parser.add_argument(
        "--load", type=str, default=None,
        help="Replace the database content with a JSON fixture first.",
    )
    parser.add_argument(
        "--cohort", type=int, action="append", default=[],
        help="Cohort id of the viewer (repeatable).",
    )
    parser.add_argument(
        "--user-course", type=int, action="append", default=None,
        help="Course id the viewer is enrolled in (repeatable).",
    )
    parser.add_argument(
        "--context", choices=("dashboard", "course"), default="dashboard",
    )
    parser.add_argument("--course-id", type=int, default=None)
    parser.add_argument("--format", choices=("text", "json"), default="text")
    parser.add_argument(
        "--check", type=int, default=None, metavar="TRAINING_ID",
        help="Validate the links of a training and print its metrics.",
    )
    parser.add_argument(
        "--path", type=int, default=None, metavar="TRAINING_ID",
        help="Print the paths of --course-id within a training.",
    )
    parser.add_argument("--config", type=str, default=None)
    parser.add_argument(
        "--save-config", type=str, default=None,
        help="Save the effective config to a JSON file and exit.",
    )
    parser.add_argument("--log-level", default="INFO")
    return parser.parse_args(argv)


def main(argv=None):
    """CLI entry-point."""
    args = _parse_args(argv)
    setup_logging(level=getattr(logging, args.log_level.upper(), logging.INFO))
    config = load_config(args.config)

    # --save-config: just dump settings and exit
    if args.save_config:
        save_config(config, args.save_config)
        sys.exit(0)

    db.migrate_db(args.db)
    conn = db.get_connection(args.db)
    try:
        if args.load:
            with open(args.load, encoding="utf-8") as fh:
                payload = json.load(fh)
            db.clear_all(conn)
            db.load_fixture(conn, payload)

        store = SqliteLinkStore(conn)

        if args.check is not None:
            sys.exit(run_check(store, args.check))

        if args.path is not None:
            if args.course_id is None:
                logger.error("--path needs --course-id.")
                sys.exit(2)
            sys.exit(run_path(store, args.path, args.course_id, config.semester_label))

        if not args.cohort:
            logger.error("No --cohort given; nothing to render.")
            sys.exit(2)

        presenter = TextPresenter(config)
        with timed("Architecture resolution"):
            view = build_architecture(
                store, presenter, args.cohort, args.context,
                current_course_id=args.course_id,
                user_course_ids=args.user_course,
                config=config,
            )

        if args.format == "json":
            print(view.model_dump_json(indent=2))
        else:
            print(presenter.render_view(view))
    finally:
        conn.close()

    sys.exit(0)


if __name__ == "__main__":
    main()
