from pydantic import BaseModel
from typing import List
from datetime import datetime


class SkippedLineResponse(BaseModel):
    line_number: int
    reason: str


class BatchFailureResponse(BaseModel):
    batch_index: int
    reason: str


class ProgressEventResponse(BaseModel):
    timestamp: datetime
    level: str
    message: str


class CatalogRunResponse(BaseModel):
    parsed_count: int
    skipped: List[SkippedLineResponse]
    total_batches: int
    completed_batches: int
    failures: List[BatchFailureResponse]
    reconciled_count: int
    product_count: int
    events: List[ProgressEventResponse]
