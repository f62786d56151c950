"""
Request/response models for the security event ledger API.
"""

from pydantic import BaseModel, ConfigDict, Field
from typing import Any, Dict, List, Optional


class EventModel(BaseModel):
    type: str
    source: str
    severity: str
    message: str
    timestamp: str
    details: Dict[str, Any]


class QueuedEventResponse(BaseModel):
    status: str = "queued"
    event: EventModel


class PendingResponse(BaseModel):
    count: int
    events: List[EventModel]


class BlockModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    index: int
    timestamp: str
    data: Any
    previous_hash: str = Field(alias="previousHash")
    nonce: int
    hash: str


class ChainResponse(BaseModel):
    length: int
    chain: List[BlockModel]


class VerifyResponse(BaseModel):
    valid: bool
    length: int


class HealthResponse(BaseModel):
    status: str
    valid: bool
    length: int
    version: str


class ScanResponse(BaseModel):
    status: str = "queued"
    domain: str
    event_count: int


class MonitoringConfigResponse(BaseModel):
    intervalMs: int
    roots: List[str]
    excludeDirs: List[str]


# List shape is validated by ScanConfig so rejections share one 400 error format
class RootsUpdateRequest(BaseModel):
    roots: Any = None


class ExcludesUpdateRequest(BaseModel):
    excludeDirs: Any = None


class ErrorResponse(BaseModel):
    error: str
    field: Optional[str] = None
