from fastapi import FastAPI, Depends, File, HTTPException, Request, UploadFile
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import StreamingResponse
from pathlib import Path

from scryfall_catalog.api_client import LookupService, create_client
from scryfall_catalog.config import ScryfallConfig
from scryfall_catalog.pipeline import PipelineResult, run_pipeline
from schemas import (
    BatchFailureResponse,
    CatalogRunResponse,
    ProgressEventResponse,
    SkippedLineResponse,
)

app = FastAPI(title="Scryfall Catalog API")

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.on_event("startup")
def startup_event():
    # One client for the whole app so its rate limiter covers concurrent uploads
    app.state.lookup = create_client()


def get_scryfall_config() -> ScryfallConfig:
    return ScryfallConfig.from_env()


def get_lookup(request: Request) -> LookupService:
    return request.app.state.lookup


async def _run_upload(
    file: UploadFile,
    lookup: LookupService,
    config: ScryfallConfig,
) -> PipelineResult:
    raw = await file.read()
    try:
        text = raw.decode("utf-8-sig")
    except UnicodeDecodeError:
        raise HTTPException(status_code=400, detail="Inventory file must be UTF-8 text")
    return await run_pipeline(text, lookup, scryfall_config=config)


@app.post("/api/catalog/export")
async def export_catalog(
    file: UploadFile = File(...),
    lookup: LookupService = Depends(get_lookup),
    config: ScryfallConfig = Depends(get_scryfall_config),
):
    """
    Convert an uploaded scanner export into a Shopify product CSV.

    Responds 422 when no card made it into the catalog, so an empty file is
    never offered as a download.
    """
    result = await _run_upload(file, lookup, config)
    if result.is_empty:
        raise HTTPException(
            status_code=422,
            detail=(
                f"No products to export: {len(result.parse.records)} cards parsed, "
                f"{len(result.run.failures)} of {result.run.total_batches} batches failed"
            ),
        )

    filename = f"{Path(file.filename or 'inventory').stem}_shopify.csv"
    return StreamingResponse(
        iter([result.csv_text]),
        media_type="text/csv",
        headers={"Content-Disposition": f"attachment; filename={filename}"}
    )


@app.post("/api/catalog/preview", response_model=CatalogRunResponse)
async def preview_catalog(
    file: UploadFile = File(...),
    lookup: LookupService = Depends(get_lookup),
    config: ScryfallConfig = Depends(get_scryfall_config),
):
    """Run the conversion and report what happened instead of returning the CSV."""
    result = await _run_upload(file, lookup, config)
    run = result.run

    return CatalogRunResponse(
        parsed_count=len(result.parse.records),
        skipped=[
            SkippedLineResponse(line_number=s.line_number, reason=s.reason)
            for s in result.parse.skipped
        ],
        total_batches=run.total_batches,
        completed_batches=run.completed_batches,
        failures=[
            BatchFailureResponse(batch_index=f.batch_index, reason=f.reason)
            for f in run.failures
        ],
        reconciled_count=len(run.catalog),
        product_count=len(result.rows),
        events=[
            ProgressEventResponse(
                timestamp=e.timestamp,
                level=e.level.value,
                message=e.message,
            )
            for e in result.events
        ],
    )
