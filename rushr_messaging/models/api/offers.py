from datetime import datetime
from decimal import Decimal
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from rushr_messaging.models.enums import OfferAction, OfferStatus


class OfferFields(BaseModel):
    """Commercial terms proposed in an offer message.

    Numeric bounds are checked by the service so that violations surface
    as InvalidOffer rather than a request validation error.
    """

    title: str = Field(..., description="Short label for the proposed work")
    price: Decimal = Field(..., description="Proposed price, must be positive")
    delivery_days: int = Field(..., description="Estimated days to deliver")
    notes: Optional[str] = Field(default=None, description="Free-form terms")
    expires_at: Optional[datetime] = Field(
        default=None, description="When a pending offer lapses"
    )


class CounterFields(BaseModel):
    """Modified terms sent back in response to a pending offer."""

    counter_price: Optional[Decimal] = None
    counter_days: Optional[int] = None
    counter_notes: Optional[str] = None


class RespondToOfferRequest(BaseModel):
    """Request model for accepting, declining or countering an offer."""

    action: OfferAction
    counter_price: Optional[Decimal] = None
    counter_days: Optional[int] = None
    counter_notes: Optional[str] = None

    def counter_fields(self) -> Optional[CounterFields]:
        if self.action != OfferAction.COUNTER:
            return None
        return CounterFields(
            counter_price=self.counter_price,
            counter_days=self.counter_days,
            counter_notes=self.counter_notes,
        )


class OfferResponse(BaseModel):
    """Response model for offer data."""

    id: UUID
    message_id: UUID
    conversation_id: UUID
    proposer_id: UUID
    title: str
    price: Decimal
    delivery_days: int
    notes: Optional[str]
    status: OfferStatus
    counter_price: Optional[Decimal]
    counter_days: Optional[int]
    counter_notes: Optional[str]
    expires_at: Optional[datetime]
    responded_by: Optional[UUID]
    responded_at: Optional[datetime]
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)
