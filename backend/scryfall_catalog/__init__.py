"""Scryfall-enriched Shopify catalog export for card scanner inventories."""

from .models import (
    Batch,
    CanonicalRecord,
    LocalRecord,
    ParseResult,
    ReconciledRecord,
    RunContext,
    RunPhase,
)
from .csv_processor import load_inventory, parse_inventory, serialize_catalog
from .batching import plan_batches
from .api_client import LookupService, ScryfallClient, create_client
from .config import CatalogConfig, ScryfallConfig
from .reconcile import merge_batch, reconcile_batches
from .catalog import CATALOG_HEADER, build_catalog_rows, to_row
from .pipeline import PipelineResult, convert_file, run_pipeline

__all__ = [
    "Batch",
    "CanonicalRecord",
    "LocalRecord",
    "ParseResult",
    "ReconciledRecord",
    "RunContext",
    "RunPhase",
    "load_inventory",
    "parse_inventory",
    "serialize_catalog",
    "plan_batches",
    "LookupService",
    "ScryfallClient",
    "create_client",
    "CatalogConfig",
    "ScryfallConfig",
    "merge_batch",
    "reconcile_batches",
    "CATALOG_HEADER",
    "build_catalog_rows",
    "to_row",
    "PipelineResult",
    "convert_file",
    "run_pipeline",
]
