# storefront/api/delivery/schemas/schema_payment.py
from typing import Annotated, Any, List, Literal, Optional, Union

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel


class PaymentReadyPayload(BaseModel):
    """Body of the payment-ready call. Serialized with camelCase keys."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    reservation_codes: List[str]
    delivery_hour: int
    delivery_minute: int
    phone: str
    postal_code: str
    address1: str
    address2: str = ""
    latitude: float
    longitude: float
    scheduled_delivery_hour: Optional[int] = None
    scheduled_delivery_minute: Optional[int] = None
    idempotency_key: str


class PaymentReadyResponse(BaseModel):
    """
    Payment-ready answer. The backend has shipped both naming styles, and
    older builds return the order id instead of a code.
    """
    model_config = ConfigDict(extra="ignore")

    redirect_url: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("redirectUrl", "redirect_url"),
    )
    mobile_redirect_url: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("mobileRedirectUrl", "mobile_redirect_url"),
    )
    order_code: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("orderCode", "order_code", "orderId", "order_id"),
    )

    @field_validator("order_code", mode="before")
    @classmethod
    def _stringify_code(cls, v: Any):
        if v is None or v == "":
            return None
        return str(v)

    @field_validator("redirect_url", "mobile_redirect_url", mode="before")
    @classmethod
    def _blank_url_is_none(cls, v: Any):
        if isinstance(v, str) and not v.strip():
            return None
        return v


# ---------------------------------------------------------------------------
# Redirect plan: where the visitor goes after payment-ready
# ---------------------------------------------------------------------------

class DesktopRedirect(BaseModel):
    kind: Literal["desktop"] = "desktop"
    url: str


class MobileWithFallbackRedirect(BaseModel):
    """Open the app deep link; offer the fallback URL if the page is still visible after the delay."""
    kind: Literal["mobile_with_fallback"] = "mobile_with_fallback"
    deep_link: str
    fallback_url: str
    fallback_after_seconds: float = 2.0


class MobileOnlyRedirect(BaseModel):
    kind: Literal["mobile_only"] = "mobile_only"
    deep_link: str


class FallbackOnlyRedirect(BaseModel):
    """Mobile visitor without a deep link: the fallback URL is offered right away."""
    kind: Literal["fallback_only"] = "fallback_only"
    fallback_url: str


RedirectPlan = Annotated[
    Union[DesktopRedirect, MobileWithFallbackRedirect, MobileOnlyRedirect, FallbackOnlyRedirect],
    Field(discriminator="kind"),
]


class SubmitResponse(BaseModel):
    order_code: Optional[str] = None
    redirect: RedirectPlan
