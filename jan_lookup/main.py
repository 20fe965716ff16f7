# jan_lookup/main.py
import logging
from pathlib import Path
from typing import List, Optional

from rich.console import Console
from rich.table import Table

from . import config
from .delegates import BrowserPageDelegate, JsonProductStore
from .models import HarnessPolicy, ResolveResult
from .pipeline import HarnessSession, ProductResolver

logger = logging.getLogger(__name__)


def _mm(value: Optional[int]) -> str:
    return "-" if value is None else str(value)


def print_results(result: ResolveResult, console: Optional[Console] = None):
    console = console or Console()
    table = Table(title="Product lookup results")
    for column in ("JAN", "Name", "Maker", "Category", "Price", "W x H x D (mm)", "Source"):
        table.add_column(column)
    for record in result.records:
        if record.code in result.failures:
            source = f"[red]{result.failures[record.code].reason.value}[/red]"
        elif record.code in result.from_store:
            source = "store"
        else:
            source = "[green]AI[/green]"
        price = "-" if record.min_price is None else f"{record.min_price}-{record.max_price if record.max_price is not None else '?'}"
        size = f"{_mm(record.width_mm)} x {_mm(record.height_mm)} x {_mm(record.depth_mm)}"
        table.add_row(record.code, record.name, record.maker or "-", record.category or "-", price, size, source)
    console.print(table)


async def main(
    codes: List[str],
    store_path: Path = config.PRODUCT_STORE_PATH,
    save: bool = False,
    headless: bool = True,
    batch_size: int = config.MAX_BATCH_SIZE,
    export_path: Optional[Path] = None,
) -> Optional[ResolveResult]:
    """The main orchestrator: store lookup, AI sessions for the misses, optional save/export."""
    store = JsonProductStore(store_path)
    policy = HarnessPolicy.from_config(max_batch_size=batch_size)
    result = None

    if codes:
        async with BrowserPageDelegate(
            user_agent=config.USER_AGENT,
            viewport=config.VIEWPORT,
            headless=headless,
        ) as page_host:
            resolver = ProductResolver(
                store,
                lambda batch, label: HarnessSession(page_host, batch, policy=policy, label=label),
                policy=policy,
            )
            result = await resolver.resolve(codes)
            if page_host.console_errors:
                logger.debug("Page console errors during lookup: %s", list(page_host.console_errors))

        print_results(result)

        if save:
            new_records = [
                record for record in result.records
                if record.code not in result.failures and record.code not in result.from_store and not record.is_unknown
            ]
            if new_records:
                store.put_many(new_records)
            else:
                logger.info("No new products to save.")
    else:
        logger.info("No codes given, skipping lookup.")

    if export_path is not None:
        store.export_schema_json(export_path)

    logger.info("Lookup finished.")
    return result
