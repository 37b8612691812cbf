"""Download embedding models into a local directory for offline use."""
from __future__ import annotations

import argparse
from pathlib import Path

from sentence_transformers import SentenceTransformer

DEFAULT_EMBEDDING_MODELS = ("sentence-transformers/all-MiniLM-L6-v2",)


def prefetch_embedding_model(model_name: str, output_dir: Path) -> Path:
    model = SentenceTransformer(model_name)
    target_dir = output_dir / model_name
    target_dir.parent.mkdir(parents=True, exist_ok=True)
    model.save(str(target_dir))
    return target_dir


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument(
        "--output-dir",
        default="models",
        help="Directory the models are saved to; point GROUPFINDER_MODELS_DIR at it (default: models)",
    )
    parser.add_argument(
        "--embedding-model",
        action="append",
        dest="embedding_models",
        help="Hugging Face id of an embedding model. May be given several times.",
    )
    return parser.parse_args()


def main() -> None:
    args = parse_args()
    output_dir = Path(args.output_dir).expanduser()
    embedding_models = tuple(args.embedding_models or DEFAULT_EMBEDDING_MODELS)

    print(f"Saving models to: {output_dir}")
    for model_name in embedding_models:
        saved_path = prefetch_embedding_model(model_name, output_dir)
        print(f"embedding: {model_name} -> {saved_path}")


if __name__ == "__main__":
    main()
