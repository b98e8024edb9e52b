from pydantic import BaseModel, ConfigDict, Field


class DonationCreate(BaseModel):
    """Amount and URLs are checked by the broker so bad input maps to 400."""

    amount: float | str | None = None
    currency: str | None = None
    success_url: str | None = None
    cancel_url: str | None = None


class CheckoutStartResponse(BaseModel):
    url: str
    id: str
    token: str


class DonationInfoResponse(BaseModel):
    paid: bool
    status: str
    amount: str | None = None
    currency: str | None = None
    reference: str | None = None


class ContactSendResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    ok: bool = True
    message_id: str = Field(..., alias="messageId")
    preview_url: str | None = Field(None, alias="previewUrl")


class ContactInfoResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    paid: bool
    status: str
    ok: bool | None = None
    message_id: str | None = Field(None, alias="messageId")
    preview_url: str | None = Field(None, alias="previewUrl")


class ContactFeeResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    fee_cents: int = Field(..., alias="feeCents")
    currency: str
    payment_required: bool = Field(..., alias="paymentRequired")
