"""
Pydantic Schemas for Request/Response Validation

Author: Khalil Bannouri
Version: 1.0.0
"""

from datetime import datetime
from enum import Enum
from typing import List, Optional

from pydantic import AliasChoices, BaseModel, Field, field_validator

from dineflow.services.orders.base import LineItem


# =============================================================================
# ENUMS
# =============================================================================

class OrderStatusEnum(str, Enum):
    NEW = "new"
    PREPARING = "preparing"
    READY = "ready"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


# =============================================================================
# REQUEST SCHEMAS
# =============================================================================

class LineItemCreate(BaseModel):
    """Single item in an order, priced by the menu at order time."""
    item_id: str = Field(
        default="",
        max_length=64,
        validation_alias=AliasChoices("item_id", "id"),
        examples=["5"],
    )
    name: str = Field(..., min_length=1, max_length=100, examples=["Butter Chicken"])
    price: int = Field(..., gt=0, examples=[320])
    quantity: int = Field(..., ge=1, examples=[2])

    @field_validator("item_id", mode="before")
    @classmethod
    def coerce_item_id(cls, v):
        return "" if v is None else str(v)

    def to_line_item(self) -> LineItem:
        return LineItem(
            item_id=self.item_id,
            name=self.name,
            price=self.price,
            quantity=self.quantity,
        )


class OrderCreate(BaseModel):
    """Request schema for placing a new order."""
    table_number: Optional[int] = Field(default=0, ge=0, examples=[7])
    customer_name: Optional[str] = Field(default="Guest", max_length=100, examples=["Asha"])
    notes: Optional[str] = Field(default="", max_length=500, examples=["Less spicy"])

    # Left optional so an empty cart reaches the lifecycle engine and is
    # rejected there as InvalidOrder
    items: Optional[List[LineItemCreate]] = Field(default=None)

    def line_items(self) -> list[LineItem]:
        return [item.to_line_item() for item in self.items or []]


class StatusUpdate(BaseModel):
    """Request to move an order to another status."""
    status: OrderStatusEnum


# =============================================================================
# RESPONSE SCHEMAS
# =============================================================================

class LineItemResponse(BaseModel):
    item_id: str
    name: str
    price: int
    quantity: int


class OrderResponse(BaseModel):
    """Response schema for a single order."""
    id: str
    order_number: int
    table_number: int
    customer_name: str
    notes: str
    items: List[LineItemResponse]
    total: int
    status: OrderStatusEnum
    created_at: datetime
    updated_at: datetime


class StatsResponse(BaseModel):
    """Dashboard metrics."""
    total_orders: int
    active_orders: int
    completed_today: int
    todays_revenue: int


class ErrorResponse(BaseModel):
    """Standard error response."""
    success: bool = False
    error: str
    detail: Optional[str] = None
    context: dict = Field(default_factory=dict)


class HealthResponse(BaseModel):
    """Health check response."""
    status: str
    order_store: str
    ledger_queue: str
    listeners: int
    timestamp: datetime
