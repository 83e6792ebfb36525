"""Request models for the alert admin API."""

from typing import List, Literal, Optional

from pydantic import BaseModel, Field, field_validator

from ...services.alerts.models import MAX_NOTES_LENGTH


class AlertActionRequest(BaseModel):
    """Actor and notes of an acknowledge or resolve request."""

    actor: str = Field(..., min_length=1, max_length=200, description="Who performs the action")
    notes: Optional[str] = Field(None, max_length=MAX_NOTES_LENGTH, description="Optional notes")


class DismissAlertRequest(BaseModel):
    """Actor and reason of a dismiss request."""

    actor: str = Field(..., min_length=1, max_length=200, description="Who dismisses the alert")
    # Stored as "Dismissed: <reason>"
    reason: Optional[str] = Field(None, max_length=MAX_NOTES_LENGTH - 11)


class BulkStatusRequest(BaseModel):
    """Move several alerts to one status."""

    alert_ids: List[int] = Field(..., min_length=1, max_length=500)
    status: Literal["acknowledged", "resolved", "dismissed"]
    actor: str = Field(..., min_length=1, max_length=200, description="Who performs the action")
    notes: Optional[str] = Field(None, max_length=MAX_NOTES_LENGTH - 11)


class BulkDeleteRequest(BaseModel):
    """Alerts to delete."""

    alert_ids: List[int] = Field(..., min_length=1, max_length=500)


class StockChangeRequest(BaseModel):
    """Inbound stock change pushed by the catalog."""

    owner_type: Literal["item", "variant"] = Field("item", description="Owner kind")
    owner_id: str = Field(..., min_length=1, description="Item or variant identifier")
    sku: str = Field(..., min_length=1, max_length=100, description="Stock keeping unit")
    current_stock: float = Field(..., ge=0, description="Quantity now in stock")
    threshold: Optional[float] = Field(
        None, ge=0, description="Low-stock threshold of the owner, default 5"
    )
    parent_item_id: Optional[str] = None
    categories: List[str] = Field(default_factory=list)
    brand: Optional[str] = None
    item_type: str = Field("simple", description="Catalog item type")
    changed_fields: List[str] = Field(default_factory=lambda: ["quantity"])

    @field_validator("sku")
    @classmethod
    def validate_sku(cls, v):
        """Normalize SKU."""
        v = v.strip()
        if not v:
            raise ValueError("SKU cannot be blank")
        return v.upper()
