"""Build the group index from a catalog file (drops and recreates the collection)."""
from __future__ import annotations

import argparse
import logging
import sys

from application.use_cases.seed_catalog import seed_catalog
from domain.errors import GroupFinderError
from infrastructure.catalog.json_catalog import load_catalog
from infrastructure.config import ContainerConfig, build_embedder, build_index
from ui.logging_utils import setup_logging

logger = logging.getLogger("seed_catalog")


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument("--catalog", default=None, help="Path to a JSON catalog (default: bundled groups.json)")
    parser.add_argument("--index", default=None, choices=("memory", "qdrant"), help="Index backend (default: qdrant)")
    parser.add_argument("--embedder", default=None, choices=("sentence-transformers", "mean_word"), help="Embedder to use")
    parser.add_argument("--batch-size", type=int, default=50, help="Embedding/upsert batch size (default: 50)")
    return parser.parse_args()


def main() -> int:
    setup_logging()
    args = parse_args()
    config = ContainerConfig.from_env()
    config.index = args.index or "qdrant"
    if args.embedder:
        config.embedder = args.embedder
    if args.catalog:
        config.catalog_path = args.catalog

    try:
        entries = load_catalog(config.catalog_path)
        embedder = build_embedder(config)
        index = build_index(config)
        report = seed_catalog(entries, embedder=embedder, index=index, batch_size=args.batch_size)
    except GroupFinderError as exc:
        logger.error("Seeding failed: %s", exc)
        return 1

    print(f"Seeding complete: {report.indexed}/{report.total} groups, vector size {report.dimension}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
