from __future__ import annotations

from pathlib import Path

from galaxygpt.cli import parse_args


def test_parse_ask_arguments():
    args = parse_args(["ask", "What is the deity?", "--max-context", "3", "--max-length", "100", "--json"])
    assert args.command == "ask"
    assert args.question == "What is the deity?"
    assert args.max_context == 3
    assert args.max_length == 100
    assert args.json


def test_parse_ingest_and_serve_arguments():
    ingest = parse_args(["ingest", "pages.json", "--reset"])
    assert ingest.pages == Path("pages.json")
    assert ingest.reset
    serve = parse_args(["serve"])
    assert serve.port == 3636
