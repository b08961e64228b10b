# cli.py
"""
Batch/offline entry point.

Usage:
    patentrag ingest <pdf_path> <patent_id>
    patentrag embed
    patentrag search <query> [top_k]
    patentrag query <question> [top_k]
    patentrag init-db
"""
import argparse
import asyncio
import logging
import sys
from typing import Callable, List, Optional

from config import settings
from core.exceptions import RAGError
from services.factory import Runtime
from services.logger_config import setup_logging

logger = logging.getLogger(settings.LOGGER_NAME)

QUIET_COMMANDS = {"search", "query"}


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="patentrag",
        description="Patent retrieval-augmented generation pipeline",
    )
    sub = parser.add_subparsers(dest="command", metavar="command")
    sub.required = True

    ingest = sub.add_parser("ingest", help="Extract, chunk and store a patent document")
    ingest.add_argument("path", help="PDF (or .txt) file to ingest")
    ingest.add_argument("patent_id", help="Identifier of the patent")

    sub.add_parser("embed", help="Embed every stored chunk that has no embedding yet")

    search = sub.add_parser("search", help="Print the chunks nearest to a query")
    search.add_argument("query")
    search.add_argument("top_k", nargs="?", type=int, default=settings.DEFAULT_SEARCH_RESULTS)

    query = sub.add_parser("query", help="Answer a question with cited sources")
    query.add_argument("question")
    query.add_argument("top_k", nargs="?", type=int, default=settings.DEFAULT_SEARCH_RESULTS)

    sub.add_parser("init-db", help="Create the pgvector extension and the chunks table")

    return parser


# ============= Commands =============

async def _ingest(runtime: Runtime, args: argparse.Namespace) -> int:
    result = await runtime.ingestion_service().ingest_file(args.path, args.patent_id)
    print(f"Ingested {result.chunk_count} chunks for patent {result.patent_id}")
    return 0


async def _embed(runtime: Runtime, args: argparse.Namespace) -> int:
    report = await runtime.backfill_job().run()
    for failure in report.failures:
        print(f"Failed: {failure.chunk_id}: {failure.error}", file=sys.stderr)
    print(
        f"Embedded {report.embedded}, skipped {report.skipped}, "
        f"failed {len(report.failures)} of {report.total} chunks"
    )
    return 0 if report.ok else 1


async def _search(runtime: Runtime, args: argparse.Namespace) -> int:
    results = await runtime.retriever().search(args.query, args.top_k)
    for r in results:
        print(f"{r.patent_id} | {r.chunk_id} | {r.distance:.4f}")
        print(r.snippet)
        print()
    return 0


async def _query(runtime: Runtime, args: argparse.Namespace) -> int:
    result = await runtime.answer_synthesizer().answer(args.question, args.top_k)
    print(result.answer)
    if result.citations:
        print()
        print("Sources:")
        for c in result.citations:
            print(f"  [{c.index}] {c.label}")
    return 0


async def _init_db(runtime: Runtime, args: argparse.Namespace) -> int:
    await runtime.init_db()
    print("Database initialized")
    return 0


COMMANDS = {
    "ingest": _ingest,
    "embed": _embed,
    "search": _search,
    "query": _query,
    "init-db": _init_db,
}


async def run(args: argparse.Namespace, runtime_factory: Callable[[], Runtime] = Runtime) -> int:
    async with runtime_factory() as runtime:
        return await COMMANDS[args.command](runtime, args)


def main(argv: Optional[List[str]] = None, runtime_factory: Callable[[], Runtime] = Runtime) -> int:
    args = build_parser().parse_args(argv)  # exits 2 on usage errors
    setup_logging(console=args.command not in QUIET_COMMANDS)

    try:
        return asyncio.run(run(args, runtime_factory))
    except RAGError as e:
        logger.error(f"[CLI] {args.command} failed: {e}")
        print(f"Error: {e}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
