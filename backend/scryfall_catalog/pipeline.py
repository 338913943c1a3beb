"""End-to-end conversion of a scanner export into a Shopify catalog."""

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional

from .api_client import LookupService, create_client
from .batching import plan_batches
from .catalog import CATALOG_HEADER, build_catalog_rows
from .config import CatalogConfig, ScryfallConfig
from .csv_processor import parse_inventory, serialize_catalog
from .models import ParseResult, RunContext
from .progress import ProgressEvent, ProgressLog
from .reconcile import reconcile_batches

logger = logging.getLogger(__name__)


@dataclass
class PipelineResult:
    """Everything a run produced, including the diagnostics behind it."""
    parse: ParseResult
    run: RunContext
    rows: List[List[str]] = field(default_factory=list)
    csv_text: str = ""
    events: List[ProgressEvent] = field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        return not self.csv_text


async def run_pipeline(
    text: str,
    lookup: LookupService,
    scryfall_config: Optional[ScryfallConfig] = None,
    catalog_config: Optional[CatalogConfig] = None,
    sink: Optional[ProgressLog] = None,
) -> PipelineResult:
    """Parse, reconcile and export one inventory file.

    The catalog is only built once every batch has resolved, successfully
    or not. An empty result means nothing could be exported; check
    PipelineResult.is_empty before treating csv_text as a deliverable.
    """
    scryfall_config = scryfall_config or ScryfallConfig()
    sink = sink if sink is not None else ProgressLog()

    parsed = parse_inventory(text)
    for skipped in parsed.skipped:
        sink.warning(f"Skipped line {skipped.line_number}: {skipped.reason}")
    sink.info(f"Parsed {len(parsed.records)} cards from inventory")

    batches = plan_batches(parsed.records, scryfall_config.batch_size)
    result = PipelineResult(parse=parsed, run=RunContext(), events=sink.events)

    def export(run: RunContext) -> None:
        result.rows = build_catalog_rows(run.catalog, catalog_config, sink)
        result.csv_text = serialize_catalog(result.rows, CATALOG_HEADER, sink)
        if result.rows:
            sink.success(f"Catalog ready: {len(result.rows)} products")

    await reconcile_batches(
        batches,
        lookup,
        run=result.run,
        on_complete=export,
        config=scryfall_config,
        sink=sink,
    )
    return result


async def convert_file(
    input_path: Path,
    output_path: Path,
    scryfall_config: Optional[ScryfallConfig] = None,
    catalog_config: Optional[CatalogConfig] = None,
    lookup: Optional[LookupService] = None,
    sink: Optional[ProgressLog] = None,
) -> PipelineResult:
    """Convert an inventory file on disk and write the catalog CSV.

    Nothing is written when the catalog comes out empty.
    """
    scryfall_config = scryfall_config or ScryfallConfig.from_env()
    lookup = lookup or create_client(scryfall_config)

    text = Path(input_path).read_text(encoding="utf-8-sig")
    result = await run_pipeline(text, lookup, scryfall_config, catalog_config, sink)

    if result.is_empty:
        logger.error(f"Catalog is empty; not writing {output_path}")
        return result

    Path(output_path).write_text(result.csv_text, encoding="utf-8")
    logger.info(f"Wrote {len(result.rows)} products to {output_path}")
    return result
