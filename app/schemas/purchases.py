from pydantic import BaseModel, Field


class CheckoutIn(BaseModel):
    event_id: str = Field(..., min_length=1, description="Checkout session / payment reference")
    user_id: str
    course_id: str


class CheckoutOut(BaseModel):
    event_id: str
    recorded: bool


class ConfirmPurchaseIn(BaseModel):
    """Sent by the payment webhook handler after it has verified the provider signature."""

    event_id: str = Field(..., min_length=1)
    user_id: str
    course_id: str
    bound_version: int | None = Field(None, ge=1)
    free_upgrades: bool = False


class RevokeIn(BaseModel):
    user_id: str
    course_id: str
    reason: str = Field(..., min_length=3)
    actor_id: str | None = None


class RevokeOut(BaseModel):
    revoked: bool
