from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field


class OrderKey(BaseModel):
    """Just enough of an order document to identify it."""

    model_config = ConfigDict(extra="ignore", strict=True)

    order_uid: str = Field(min_length=1)


class Order(BaseModel):
    """Shape every ingested order document must have.

    Business fields beyond the required ones are kept as extras and never
    interpreted.
    """

    model_config = ConfigDict(extra="allow", strict=True)

    order_uid: str = Field(min_length=1)
    delivery: Dict[str, Any]
    payment: Dict[str, Any]
    items: List[Any] = Field(min_length=1)


class ValidatedOrder(BaseModel):
    """Key and exact payload bytes of an order that passed validation."""

    order_uid: str
    payload: bytes


class OrderEntry(BaseModel):
    order_uid: str
    data: Any


class IngestStatus(str, Enum):
    REJECTED = "rejected"
    PERSISTED = "persisted"
    PERSIST_FAILED = "persist_failed"


class IngestResult(BaseModel):
    sequence: int
    status: IngestStatus
    order_uid: Optional[str] = None
    error: Optional[str] = None
    processed_at: datetime = Field(default_factory=datetime.utcnow)


class IngestStats(BaseModel):
    received: int = 0
    rejected: int = 0
    persisted: int = 0
    persist_failed: int = 0
    last_sequence: Optional[int] = None
    last_result: Optional[IngestResult] = None


class BootstrapReport(BaseModel):
    store_count: Optional[int] = None
    warmed: int = 0
    seeded_order_uid: Optional[str] = None
    degraded: bool = False
    error: Optional[str] = None
