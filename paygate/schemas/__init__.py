from paygate.schemas.checkout import (
    CheckoutStartResponse,
    ContactFeeResponse,
    ContactInfoResponse,
    ContactSendResponse,
    DonationCreate,
    DonationInfoResponse,
)
from paygate.schemas.upload import UploadResponse

__all__ = [
    "CheckoutStartResponse",
    "ContactFeeResponse",
    "ContactInfoResponse",
    "ContactSendResponse",
    "DonationCreate",
    "DonationInfoResponse",
    "UploadResponse",
]
