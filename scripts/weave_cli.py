"""Command-line front end for scanning drafts and looking up link targets."""

from __future__ import annotations

import argparse
import logging
import sys
import textwrap
from pathlib import Path
from typing import List, Optional

PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from link_weaver.config import CONFIG, LLMProvider
from link_weaver.corpus import load_corpus_file
from link_weaver.errors import RequestError
from link_weaver.log_setup import setup_logging
from link_weaver.models import LinkSuggestion, PathResult, RagSource
from link_weaver.runtime import create_runtime
from link_weaver.settings_store import SETTING_NAMES


def _print_suggestions(title: str, result: PathResult) -> None:
    print(f"== {title}")
    if result.error is not None:
        print(f"  error ({result.error.kind.value}): {result.error.message}")
        return
    if not result.items:
        print("  No matches found.")
        return
    for index, item in enumerate(result.items, start=1):
        if isinstance(item, LinkSuggestion):
            if item.anchor_text:
                print(f"  {index}. \"{item.anchor_text}\" -> {item.title} <{item.url}>")
            else:
                print(f"  {index}. {item.title} <{item.url}>")
            if item.reasoning:
                print(textwrap.indent(item.reasoning, prefix="       "))
        elif isinstance(item, RagSource):
            print(f"  {index}. {item.title} <{item.url}>")
            if item.snippet:
                print(textwrap.indent(item.snippet, prefix="       "))


def _settled_printer(name: str, result: PathResult) -> None:
    _print_suggestions("Internal posts (LLM)" if name == "llm" else "Knowledge base sources", result)


def main(argv: Optional[List[str]] = None) -> int:
    parser = argparse.ArgumentParser(description="Suggest links for a draft document")
    parser.add_argument("--corpus", default=CONFIG.corpus_path or None, help="JSON file with candidate documents")
    parser.add_argument("--exclude-id", default=None, help="Id of the document being edited")
    parser.add_argument("--log-level", default="INFO")
    sub = parser.add_subparsers(dest="command", required=True)

    scan = sub.add_parser("scan", help="Scan a whole draft for anchor phrases")
    scan.add_argument("draft", help="Path to the draft file, or '-' for stdin")

    lookup = sub.add_parser("lookup", help="Find targets for a selected phrase")
    lookup.add_argument("phrase")

    sources = sub.add_parser("sources", help="Query the knowledge base only")
    sources.add_argument("query")

    settings_cmd = sub.add_parser("settings", help="Show or change provider settings")
    settings_cmd.add_argument("--provider", choices=[p.value for p in LLMProvider])
    settings_cmd.add_argument("--set", nargs=2, action="append", metavar=("NAME", "VALUE"), default=[])

    args = parser.parse_args(argv)
    setup_logging(args.log_level)
    logger = logging.getLogger("link_weaver.cli")

    corpus = load_corpus_file(args.corpus) if args.corpus else None
    runtime = create_runtime(corpus=corpus)

    if args.command == "settings":
        updates = {name: value for name, value in args.set}
        unknown = sorted(set(updates) - set(SETTING_NAMES))
        if unknown:
            parser.error(f"unknown setting(s): {', '.join(unknown)}; expected one of {', '.join(SETTING_NAMES)}")
        if args.provider:
            updates["llm_provider"] = args.provider
        runtime.settings.update(updates)
        for name, value in runtime.settings.masked().items():
            print(f"{name:<16} {value}")
        return 0

    try:
        if args.command == "scan":
            draft = sys.stdin.read() if args.draft == "-" else Path(args.draft).read_text(encoding="utf-8")
            outcome = runtime.weaver.scan_document(draft, args.exclude_id)
            _print_suggestions("Suggestions", outcome.llm)
            return 0 if outcome.llm.ok else 2
        if args.command == "lookup":
            print(f"Links for: \"{args.phrase.strip()}\"")
            outcome = runtime.weaver.lookup_phrase(args.phrase, args.exclude_id, on_settled=_settled_printer)
            return 0 if outcome.llm.ok else 2
        result = runtime.weaver.discover_sources(args.query)
        _print_suggestions("Knowledge base sources", result)
        return 0 if result.ok else 2
    except RequestError as exc:
        logger.info("Request rejected: %s", exc.message, extra={"error_kind": exc.kind.value})
        print(f"error ({exc.kind.value}): {exc.message}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main(sys.argv[1:]))
