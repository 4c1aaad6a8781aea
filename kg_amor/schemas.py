"""Pydantic request/response schemas."""
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


class Priority(str, Enum):
    NORMAL = "normal"
    URGENT = "urgent"


class DocumentStatus(str, Enum):
    DRAFT = "draft"
    POSTED = "posted"
    VOID = "void"


def _required_text(value: str) -> str:
    value = value.strip()
    if not value:
        raise ValueError("must not be blank")
    return value


# ----------------------------------------------------------------------
# Networks
# ----------------------------------------------------------------------
class NetworkCreate(BaseModel):
    color: str = Field(..., max_length=50)
    description: Optional[str] = None
    hex: Optional[str] = Field(default=None, pattern=r"^#[0-9A-Fa-f]{6}$")

    @field_validator("color")
    @classmethod
    def strip_required(cls, value: str) -> str:
        return _required_text(value)


class NetworkResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    color: str
    description: Optional[str] = None
    hex: Optional[str] = None
    is_active: bool


# ----------------------------------------------------------------------
# Cells
# ----------------------------------------------------------------------
class CellBase(BaseModel):
    name: str = Field(..., max_length=255)
    leader: str = Field(..., max_length=255)
    supervisors: Optional[str] = None
    phone: Optional[str] = None
    address: Optional[str] = None
    network_id: int

    @field_validator("name", "leader")
    @classmethod
    def strip_required(cls, value: str) -> str:
        return _required_text(value)


class CellCreate(CellBase):
    # recorded as an opening delivery, not written to quantity_kg
    initial_kg: Optional[Decimal] = None


class CellUpdate(BaseModel):
    name: Optional[str] = None
    leader: Optional[str] = None
    supervisors: Optional[str] = None
    phone: Optional[str] = None
    address: Optional[str] = None
    network_id: Optional[int] = None

    # only runs for fields present in the payload; an explicit null is rejected too
    @field_validator("name", "leader")
    @classmethod
    def strip_required(cls, value: Optional[str]) -> str:
        if value is None:
            raise ValueError("must not be null")
        return _required_text(value)


class CellResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    leader: str
    supervisors: Optional[str] = None
    phone: Optional[str] = None
    address: Optional[str] = None
    network_id: int
    network: Optional[str] = None
    quantity_kg: float
    is_active: bool
    kg_updated_at: Optional[datetime] = None


class DeliveryCreate(BaseModel):
    quantity: Decimal
    delivered_at: Optional[datetime] = None
    # client supplied id makes a resubmitted form idempotent
    reference: Optional[str] = Field(default=None, max_length=80)


class HistoricoResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    cell_id: int
    quantity: float
    movement_type: str
    source_transaction_id: str
    delivered_at: datetime


# ----------------------------------------------------------------------
# Catalog
# ----------------------------------------------------------------------
class CategoryCreate(BaseModel):
    name: str = Field(..., max_length=100)
    color: Optional[str] = Field(default=None, pattern=r"^#[0-9A-Fa-f]{6}$")
    description: Optional[str] = None

    @field_validator("name")
    @classmethod
    def strip_required(cls, value: str) -> str:
        return _required_text(value)


class CategoryUpdate(BaseModel):
    name: Optional[str] = None
    color: Optional[str] = Field(default=None, pattern=r"^#[0-9A-Fa-f]{6}$")
    description: Optional[str] = None


class CategoryResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    color: Optional[str] = None
    description: Optional[str] = None


class ProductCreate(BaseModel):
    name: str = Field(..., max_length=255)
    unit: str = Field(default="kg", max_length=20)
    category_id: int
    barcode: Optional[str] = None

    @field_validator("name", "unit")
    @classmethod
    def strip_required(cls, value: str) -> str:
        return _required_text(value)


class ProductUpdate(BaseModel):
    name: Optional[str] = None
    unit: Optional[str] = None
    category_id: Optional[int] = None
    barcode: Optional[str] = None
    is_active: Optional[bool] = None


class ProductResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    unit: str
    category_id: int
    barcode: Optional[str] = None
    is_active: bool


# ----------------------------------------------------------------------
# Receipts / withdrawals
# ----------------------------------------------------------------------
class ReceiptItemIn(BaseModel):
    product_id: int
    quantity: Decimal
    unit: Optional[str] = None
    expires_at: Optional[date] = None
    priority: Priority = Priority.NORMAL
    barcode: Optional[str] = None
    lot_code: Optional[str] = None


class ReceiptCreate(BaseModel):
    reference: str = Field(..., max_length=80)
    notes: Optional[str] = None
    items: List[ReceiptItemIn]
    # False keeps the receipt as a draft
    post: bool = True

    @field_validator("reference")
    @classmethod
    def strip_required(cls, value: str) -> str:
        return _required_text(value)


class ReceiptItemResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    line_index: int
    product_id: int
    quantity: float
    unit: Optional[str] = None
    expires_at: Optional[date] = None
    priority: str
    barcode: Optional[str] = None
    lot_code: Optional[str] = None


class ReceiptResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    reference: str
    notes: Optional[str] = None
    status: DocumentStatus
    created_at: datetime
    posted_at: Optional[datetime] = None
    items: List[ReceiptItemResponse] = []
    posting: Optional[dict] = None


class WithdrawalItemIn(BaseModel):
    product_id: int
    quantity: Decimal
    unit: Optional[str] = None


class WithdrawalCreate(BaseModel):
    reference: str = Field(..., max_length=80)
    responsible_person: str = Field(..., max_length=255)
    sector: str = Field(..., max_length=255)
    notes: Optional[str] = None
    items: List[WithdrawalItemIn]

    @field_validator("reference", "responsible_person", "sector")
    @classmethod
    def strip_required(cls, value: str) -> str:
        return _required_text(value)


class WithdrawalItemResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    line_index: int
    product_id: int
    quantity: float
    unit: Optional[str] = None


class WithdrawalResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    reference: str
    responsible_person: str
    sector: str
    notes: Optional[str] = None
    status: DocumentStatus
    created_at: datetime
    posted_at: Optional[datetime] = None
    items: List[WithdrawalItemResponse] = []
    posting: Optional[dict] = None


# ----------------------------------------------------------------------
# Stock
# ----------------------------------------------------------------------
class StockBalanceResponse(BaseModel):
    product_id: int
    product_name: str
    unit: str
    category: Optional[str] = None
    quantity_on_hand: float
    version: int
    last_updated_at: Optional[datetime] = None


class StockMovementResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    product_id: int
    quantity_delta: float
    movement_type: str
    unit: Optional[str] = None
    source_transaction_id: str
    line_index: int
    created_at: datetime


class ReconcileResponse(BaseModel):
    key: int
    ledger_sum: float
    cached_balance: float
    drift: float
    repaired: bool


class ReconcileSweepResponse(BaseModel):
    checked: int
    drifted: int
    repaired: int
    reports: List[ReconcileResponse]


# ----------------------------------------------------------------------
# Dashboard
# ----------------------------------------------------------------------
class DashboardSummary(BaseModel):
    active_cells: int
    total_kg: float
    average_kg: float
    active_products: int
    receipts: int
    withdrawals: int
    recent_receipts: List[dict]


class RankingEntry(BaseModel):
    name: str
    kg: float
    network: Optional[str] = None
    leader: Optional[str] = None


class Rankings(BaseModel):
    cells: List[RankingEntry]
    supervisors: List[RankingEntry]
    networks: List[RankingEntry]


class NetworkActivity(BaseModel):
    network: str
    active: int
    inactive: int
    total: int


class ProductFlow(BaseModel):
    product: str
    quantity: float


class ActivityReport(BaseModel):
    start: date
    end: date
    networks: List[NetworkActivity]
    product_in: List[ProductFlow]
    product_out: List[ProductFlow]


class SeedResponse(BaseModel):
    networks_created: int
    categories_created: int
