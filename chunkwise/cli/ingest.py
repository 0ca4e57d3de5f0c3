"""Command-line interface for chunkwise.

Usage::

    python -m chunkwise.cli ingest --file notes.txt
    python -m chunkwise.cli status --file notes.txt
    python -m chunkwise.cli chat --source-id notes.txt
    python -m chunkwise.cli purge --source-id notes.txt --yes

``ingest`` is safe to re-run: it resumes after the last committed chunk and
exits with status 2 while the source is still incomplete.
"""

from __future__ import annotations

import argparse
import asyncio
import sys
from pathlib import Path

from chunkwise.config.loader import load_settings
from chunkwise.config.settings import Settings
from chunkwise.models.pipeline import ProgressEvent
from chunkwise.utils.errors import ChunkwiseError, ConfigurationError
from chunkwise.utils.logging import configure_logging, log_context

EXIT_OK = 0
EXIT_ERROR = 1
EXIT_INCOMPLETE = 2


# ---------------------------------------------------------------------------
# Factories.  Imports are deferred so `status` and `purge` never load the
# openai SDK.
# ---------------------------------------------------------------------------

def _require_api_key(app_settings: Settings) -> None:
    if not app_settings.openai_api_key:
        raise ConfigurationError(
            "OPENAI_API_KEY is not set. Export it or add it to .env before running this command."
        )


def _build_store(app_settings: Settings):  # noqa: ANN202
    from chunkwise.providers.store.sqlite_progress_store import SQLiteProgressStore

    return SQLiteProgressStore(db_path=app_settings.progress_db_path)


def _build_splitter(app_settings: Settings):  # noqa: ANN202
    from pydantic import ValidationError

    from chunkwise.services.ingestion.splitter import ChunkSplitter, SplitterConfig

    try:
        config = SplitterConfig(
            max_chunk_size=app_settings.splitter_chunk_size,
            overlap=app_settings.splitter_chunk_overlap,
            separators=tuple(app_settings.splitter_separators),
        )
    except ValidationError as exc:
        raise ConfigurationError(f"Invalid splitter configuration: {exc}") from exc
    return ChunkSplitter(config)


def _build_embedding_provider(app_settings: Settings):  # noqa: ANN202
    _require_api_key(app_settings)
    from chunkwise.providers.embedding.openai_embedding_provider import (
        OpenAIEmbeddingProvider,
    )

    return OpenAIEmbeddingProvider(settings=app_settings)


def _build_llm_provider(app_settings: Settings):  # noqa: ANN202
    _require_api_key(app_settings)
    from chunkwise.providers.llm.openai_provider import OpenAILLMProvider

    return OpenAILLMProvider(settings=app_settings)


def _build_retry(app_settings: Settings):  # noqa: ANN202
    from chunkwise.utils.retry import RetryExecutor

    return RetryExecutor(
        max_attempts=app_settings.retry_max_attempts,
        base_delay=app_settings.retry_base_delay_seconds,
    )


def _build_pipeline(app_settings: Settings, store):  # noqa: ANN001, ANN202
    """Wire the ingestion pipeline with its own embedding-side limiter."""
    from chunkwise.pipeline.progress_tracker import ProgressTracker
    from chunkwise.services.ingestion.pipeline import IngestionPipeline
    from chunkwise.utils.rate_limiter import TokenBucketLimiter

    limiter = TokenBucketLimiter(
        capacity=app_settings.embedding_rate_capacity,
        window_seconds=app_settings.embedding_rate_window_seconds,
        name="embedding",
    )
    return IngestionPipeline(
        splitter=_build_splitter(app_settings),
        embedding_provider=_build_embedding_provider(app_settings),
        store=store,
        limiter=limiter,
        retry=_build_retry(app_settings),
        tracker=ProgressTracker(),
        inter_chunk_delay=app_settings.ingestion_inter_chunk_delay_seconds,
    )


def _build_qa_service(app_settings: Settings, store, source_id: str):  # noqa: ANN001, ANN202
    """Wire the QA service with a chat-side limiter separate from ingestion."""
    from chunkwise.services.qa_service import QAService
    from chunkwise.utils.rate_limiter import TokenBucketLimiter

    limiter = TokenBucketLimiter(
        capacity=app_settings.chat_rate_capacity,
        window_seconds=app_settings.chat_rate_window_seconds,
        name="chat",
    )
    return QAService(
        llm=_build_llm_provider(app_settings),
        embedding_provider=_build_embedding_provider(app_settings),
        store=store,
        limiter=limiter,
        retry=_build_retry(app_settings),
        source_id=source_id,
        top_k=app_settings.qa_top_k,
        max_context_chars=app_settings.qa_max_context_chars,
        step_delay=app_settings.qa_step_delay_seconds,
    )


def _read_source(path: str) -> str | None:
    try:
        return Path(path).read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as exc:
        print(f"Error: cannot read {path}: {exc}", file=sys.stderr)
        return None


def _format_progress(event: ProgressEvent) -> str:
    suffix = " (Resumed)" if event.resuming else ""
    return f"Processing: {event.current}/{event.total} chunks{suffix}"


# ---------------------------------------------------------------------------
# Command handlers
# ---------------------------------------------------------------------------

async def _handle_ingest(args: argparse.Namespace, app_settings: Settings) -> int:
    """Ingest one file, resuming where the previous run stopped."""
    text = _read_source(args.file)
    if text is None:
        return EXIT_ERROR
    source_id = args.source_id or Path(args.file).name

    store = _build_store(app_settings)
    await store.initialize()
    pipeline = _build_pipeline(app_settings, store)
    pipeline.tracker.register_listener(source_id, lambda event: print(_format_progress(event)))

    print(f"Ingesting: {args.file}")
    print(f"  Source ID: {source_id}")
    print()

    with log_context(source_id=source_id):
        result = await pipeline.run(text, source_id)

    print("\nIngestion finished:")
    print(f"  Total chunks:    {result.total_chunks}")
    print(f"  Committed:       {result.committed}")
    print(f"  Already present: {result.already_present}")
    print(f"  Skipped:         {len(result.skipped)}")
    print(f"  Stored records:  {result.final_count if result.final_count is not None else 'unknown'}")
    print(f"  Time:            {result.elapsed_seconds:.2f}s")

    if result.complete:
        print("\nAll chunks stored.")
        return EXIT_OK
    if result.skipped:
        print(f"\nSkipped chunks: {', '.join(str(i) for i in result.skipped)}")
    print("Ingestion incomplete. Run the same command again to resume.")
    return EXIT_INCOMPLETE


async def _handle_status(args: argparse.Namespace, app_settings: Settings) -> int:
    """Compare the chunks a file would produce with what is stored."""
    text = _read_source(args.file)
    if text is None:
        return EXIT_ERROR
    source_id = args.source_id or Path(args.file).name

    expected = _build_splitter(app_settings).expected_chunks(text)
    store = _build_store(app_settings)
    await store.initialize()
    stored = await store.count(source_id)
    last_index = await store.last_committed_index(source_id)

    print(f"Source: {source_id}")
    print("=" * 40)
    print(f"  Expected chunks:       {expected}")
    print(f"  Stored records:        {stored}")
    print(f"  Last committed index:  {last_index}")
    print(f"  Complete:              {'yes' if expected > 0 and stored == expected else 'no'}")
    return EXIT_OK


async def _handle_chat(args: argparse.Namespace, app_settings: Settings) -> int:
    """Interactive question loop over an ingested source."""
    store = _build_store(app_settings)
    await store.initialize()
    stored = await store.count(args.source_id)
    if stored == 0:
        print(f"No records stored for '{args.source_id}'. Run ingest first.", file=sys.stderr)
        return EXIT_ERROR

    service = _build_qa_service(app_settings, store, args.source_id)
    print(f"Chatting about '{args.source_id}' ({stored} chunks).")
    print("Type 'exit' or 'quit' to leave, '/clear' to forget the conversation.\n")

    while True:
        try:
            question = input("You: ").strip()
        except EOFError:
            print()
            break
        if not question:
            continue
        if question.lower() in ("exit", "quit"):
            break
        if question == "/clear":
            service.clear_history()
            print("Conversation cleared.\n")
            continue
        with log_context(source_id=args.source_id):
            answer = await service.ask(question)
        print(f"Assistant: {answer}\n")
    return EXIT_OK


async def _handle_purge(args: argparse.Namespace, app_settings: Settings) -> int:
    """Delete every stored record of a source.

    Destructive: the next ingest of that source starts from chunk 0.
    Requires confirmation unless --yes is passed.
    """
    store = _build_store(app_settings)
    await store.initialize()
    stored = await store.count(args.source_id)
    if stored == 0:
        print(f"No records found for '{args.source_id}'. Nothing to purge.")
        return EXIT_OK

    print(f"  Found {stored} records for '{args.source_id}'")
    if not args.yes:
        confirm = input(f"  Delete all {stored} records? [y/N] ").strip().lower()
        if confirm not in ("y", "yes"):
            print("  Aborted.")
            return EXIT_OK

    deleted = await store.purge(args.source_id)
    print(f"\n  Deleted {deleted} records.")
    return EXIT_OK


_HANDLERS = {
    "ingest": _handle_ingest,
    "status": _handle_status,
    "chat": _handle_chat,
    "purge": _handle_purge,
}


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------

def _build_parser() -> argparse.ArgumentParser:
    """Build the argparse parser for the chunkwise CLI."""
    parser = argparse.ArgumentParser(
        prog="python -m chunkwise.cli",
        description="Resumable, rate-limited document ingestion and question answering.",
    )
    parser.add_argument(
        "--config",
        default="config/config.yaml",
        help="YAML configuration file (default: config/config.yaml)",
    )
    parser.add_argument("--log-level", default=None, help="Override the configured log level")
    parser.add_argument("--json-logs", action="store_true", help="Emit logs as JSON")
    subparsers = parser.add_subparsers(dest="command", help="Commands")

    ingest_parser = subparsers.add_parser("ingest", help="Embed and store a text file")
    ingest_parser.add_argument("--file", required=True, help="Path to the text file")
    ingest_parser.add_argument(
        "--source-id", dest="source_id", default=None, help="Source id (default: file name)"
    )

    status_parser = subparsers.add_parser("status", help="Show stored vs expected chunks")
    status_parser.add_argument("--file", required=True, help="Path to the text file")
    status_parser.add_argument(
        "--source-id", dest="source_id", default=None, help="Source id (default: file name)"
    )

    chat_parser = subparsers.add_parser("chat", help="Ask questions about an ingested source")
    chat_parser.add_argument("--source-id", dest="source_id", required=True, help="Source id")

    purge_parser = subparsers.add_parser("purge", help="Delete every record of a source")
    purge_parser.add_argument("--source-id", dest="source_id", required=True, help="Source id")
    purge_parser.add_argument(
        "--yes", "-y", action="store_true", help="Skip confirmation prompt"
    )

    return parser


def main(argv: list[str] | None = None) -> int:
    """CLI entry point.  Returns the process exit code."""
    parser = _build_parser()
    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        return EXIT_ERROR

    try:
        app_settings = load_settings(args.config)
        configure_logging(
            log_level=args.log_level or app_settings.log_level,
            json_output=args.json_logs,
            app_env=app_settings.app_env,
        )
        with log_context(command=args.command):
            return asyncio.run(_HANDLERS[args.command](args, app_settings))
    except ChunkwiseError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return EXIT_ERROR
