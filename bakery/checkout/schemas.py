from typing import Any, Dict, Optional, Union
from datetime import date
from pydantic import BaseModel, Field, field_validator

class GuestData(BaseModel):
    # Champs optionnels ici: l'absence est signalée par le résolveur (MissingGuestDataError, 400)
    name: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    address: Optional[str] = None
    city: Optional[Union[int, str]] = None
    zone: Optional[Union[int, str]] = None
    additionalInfo: Optional[str] = None

class NewAddress(BaseModel):
    street_address: str = Field(min_length=1)
    additional_info: Optional[str] = None
    city_id: int
    zone_id: int

class CheckoutSelection(BaseModel):
    """Sélection commune à /confirm et /payment (panier, invité ou adresse du client)."""
    cartId: Optional[int] = None
    guestData: Optional[GuestData] = None
    selectedAddressId: Optional[int] = None
    useNewAddress: bool = False
    newAddress: Optional[NewAddress] = None
    saveAddress: bool = False
    promoCode: Optional[str] = None
    deliveryTimeSlotId: Optional[int] = None
    expectedDeliveryDate: Optional[date] = None

    @field_validator("promoCode")
    def strip_promo(cls, v: Optional[str]) -> Optional[str]:
        v = (v or "").strip().upper()
        return v or None

class CheckoutConfirmRequest(CheckoutSelection):
    pass

class CheckoutPaymentRequest(CheckoutSelection):
    paymentMethod: str
    # Écho du snapshot renvoyé par /confirm: affichage uniquement, jamais utilisé pour le prix
    orderData: Optional[Dict[str, Any]] = None
