"""Command line entry point for indexing pages and asking questions."""

from __future__ import annotations

import argparse
import json
import sys
from pathlib import Path
from typing import Sequence

from galaxygpt.api.app import build_dependencies
from galaxygpt.config import Settings, get_settings
from galaxygpt.errors import GalaxyGPTError
from galaxygpt.ingestion import IngestionConfig, IngestionError, WikiPageIngestor, load_pages
from galaxygpt.metrics.observability import configure_logging


def run_ingest(pages_path: Path, *, settings: Settings, reset: bool = False) -> int:
    deps = build_dependencies(settings)
    if reset:
        deps.index.reset()
    ingestor = WikiPageIngestor(
        deps.embeddings,
        deps.index,
        IngestionConfig(chunk_size=settings.chunk_size, chunk_overlap=settings.chunk_overlap),
    )
    pages = load_pages(pages_path)
    chunks = ingestor.ingest(pages)
    print(f"Indexed {len(chunks)} chunks from {len(pages)} pages into '{settings.chroma_collection}'.")
    return len(chunks)


def run_ask(
    question: str,
    *,
    settings: Settings,
    max_context: int | None = None,
    max_length: int | None = None,
    as_json: bool = False,
) -> dict:
    deps = build_dependencies(settings)
    result = deps.query_service.ask(
        question,
        max_context_documents=max_context,
        max_output_tokens=max_length,
    )
    payload = {
        "answer": result.answer.answer,
        "context": result.context.text,
        "duration": str(round(result.duration_ms)),
        "question_tokens": str(result.answer.prompt_tokens),
        "response_tokens": str(result.answer.answer_tokens),
        "context_tokens": str(result.context.token_count),
    }
    if as_json:
        print(json.dumps(payload, indent=2))
    else:
        print(result.answer.answer)
    return payload


def parse_args(argv: Sequence[str]) -> argparse.Namespace:
    parser = argparse.ArgumentParser(prog="galaxygpt", description="Galaxypedia question answering.")
    sub = parser.add_subparsers(dest="command", required=True)

    ingest = sub.add_parser("ingest", help="Index wiki pages from a JSON export")
    ingest.add_argument("pages", type=Path, help='JSON list of {"title", "content"} objects')
    ingest.add_argument("--reset", action="store_true", help="Drop the collection before indexing")

    ask = sub.add_parser("ask", help="Answer a question from the command line")
    ask.add_argument("question", type=str)
    ask.add_argument("--max-context", type=int, default=None, help="Maximum pages pulled from the index")
    ask.add_argument("--max-length", type=int, default=None, help="Maximum answer tokens")
    ask.add_argument("--json", action="store_true", help="Print the full result as JSON")

    serve = sub.add_parser("serve", help="Run the HTTP API")
    serve.add_argument("--host", type=str, default="0.0.0.0")
    serve.add_argument("--port", type=int, default=3636)
    return parser.parse_args(argv)


def main(argv: Sequence[str] | None = None) -> int:
    args = parse_args(sys.argv[1:] if argv is None else argv)
    settings = get_settings()
    configure_logging(settings.log_level)

    if args.command == "serve":
        import uvicorn

        uvicorn.run("galaxygpt.api.app:create_app", factory=True, host=args.host, port=args.port)
        return 0

    try:
        if args.command == "ingest":
            run_ingest(args.pages, settings=settings, reset=args.reset)
        else:
            run_ask(
                args.question,
                settings=settings,
                max_context=args.max_context,
                max_length=args.max_length,
                as_json=args.json,
            )
    except (GalaxyGPTError, IngestionError) as exc:
        print(f"error: {exc}", file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":  # pragma: no cover - CLI entrypoint
    sys.exit(main())
