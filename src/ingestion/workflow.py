"""
Workflow orchestrator for the ingestion pipeline.

    python -m src.ingestion.workflow discover --org-id 1 2 --timeframe 30
    python -m src.ingestion.workflow process --batch-id 7
    python -m src.ingestion.workflow run
"""
import asyncio
import argparse
import logging
from typing import Any, Dict, List, Optional

from rich.console import Console
from rich.table import Table

from src.core.config import settings
from src.core.database import init_db
from src.core.models import BatchStatus
from src.ingestion.ops.rate_limiter import RateLimiter
from src.ingestion.programs.discovery import DiscoveryOrchestrator
from src.ingestion.programs.processing import BatchLifecycleManager
from src.ingestion.service import build_manager, build_orchestrator
from src.ingestion.store import IngestionStore

logger = logging.getLogger(__name__)


async def run_full_pipeline(
    orchestrator: DiscoveryOrchestrator,
    manager: BatchLifecycleManager,
    organization_ids: Optional[List[int]] = None,
    timeframe_days: int = 90,
) -> Dict[str, Any]:
    """Discover for the organizations, then process the batches that discovery produced."""
    discovery = await orchestrator.discover_bulk(organization_ids, timeframe_days)
    batch_ids = [
        r["batch_id"] for r in discovery["results"]
        if r["batch_id"] is not None and r["status"] == BatchStatus.READY_FOR_PROCESSING.value
    ]
    if not batch_ids:
        logger.info("Discovery produced no batches to process")
        return {"discovery": discovery, "processing": {"summary": {}, "results": []}}

    processing = await manager.process_ready_batches(batch_ids)
    return {"discovery": discovery, "processing": processing}


def print_discovery(console: Console, discovery: Dict[str, Any]) -> None:
    table = Table(title="Discovery")
    table.add_column("Organization", style="cyan")
    table.add_column("Batch", justify="right")
    table.add_column("Status")
    table.add_column("Found", justify="right")
    table.add_column("New", justify="right", style="green")
    table.add_column("Already ingested", justify="right")
    table.add_column("Source errors", style="red")

    for r in discovery["results"]:
        table.add_row(
            r["organization_name"],
            str(r["batch_id"] or "-"),
            r["status"],
            str(r["total_found"]),
            str(r["new_urls"]),
            str(r["duplicate_urls"]),
            ", ".join(sorted(r["adapter_errors"])) or r.get("error") or "",
        )
    console.print(table)


def print_processing(console: Console, processing: Dict[str, Any]) -> None:
    table = Table(title="Processing")
    table.add_column("Batch", justify="right")
    table.add_column("Organization", style="cyan")
    table.add_column("Status")
    table.add_column("Processed", justify="right")
    table.add_column("Successful", justify="right", style="green")
    table.add_column("Rejected", justify="right", style="yellow")
    table.add_column("Duplicates", justify="right")
    table.add_column("Failed", justify="right", style="red")

    for r in processing["results"]:
        table.add_row(
            str(r["batch_id"]),
            r["organization_name"],
            r["status"],
            str(r["processed"]),
            str(r["successful"]),
            str(r["rejected"]),
            str(r["duplicates"]),
            str(r["failed"]),
        )
    console.print(table)


async def main_async(args: argparse.Namespace) -> None:
    console = Console()
    await init_db()

    store = IngestionStore()
    rate_limiter = RateLimiter()

    if args.command == "discover":
        orchestrator = build_orchestrator(store, rate_limiter)
        print_discovery(console, await orchestrator.discover_bulk(args.org_id, args.timeframe))

    elif args.command == "process":
        manager = build_manager(store, rate_limiter, args.concurrency, args.batch_delay)
        print_processing(console, await manager.process_ready_batches(args.batch_id))

    elif args.command == "run":
        orchestrator = build_orchestrator(store, rate_limiter)
        manager = build_manager(store, rate_limiter, args.concurrency, args.batch_delay)
        result = await run_full_pipeline(orchestrator, manager, args.org_id, args.timeframe)
        print_discovery(console, result["discovery"])
        print_processing(console, result["processing"])


def main():
    """CLI entry point."""
    parser = argparse.ArgumentParser(
        description="Ingestion pipeline - discover and ingest organization news"
    )
    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    for name, help_text in (
        ("discover", "Discover candidate URLs and record discovery batches"),
        ("process", "Process discovery batches that are ready"),
        ("run", "Discover, then process the batches just created"),
    ):
        sub = subparsers.add_parser(name, help=help_text)
        if name in ("discover", "run"):
            sub.add_argument("--org-id", type=int, nargs="+", help="Organization IDs (default: all)")
            sub.add_argument("--timeframe", type=int, default=90, help="Lookback window in days")
        if name == "process":
            sub.add_argument("--batch-id", type=int, nargs="+", help="Batch IDs (default: oldest ready batches)")
        if name in ("process", "run"):
            sub.add_argument("--concurrency", type=int, default=None, help="URLs processed concurrently per chunk")
            sub.add_argument("--batch-delay", type=float, default=None, help="Seconds between chunks")

    args = parser.parse_args()
    if not args.command:
        parser.print_help()
        return

    logging.basicConfig(
        level=settings.log_level,
        format='%(asctime)s - %(levelname)s - %(message)s'
    )
    asyncio.run(main_async(args))


if __name__ == "__main__":
    main()
