import logging
from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, Request

from bakery.config import CART_COOKIE_NAME
from bakery.utils.rate_limit import optional_rate_limit
from bakery.utils.security import get_optional_user
from . import service
from .schemas import CheckoutConfirmRequest, CheckoutPaymentRequest

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/checkout", tags=["Checkout API"])

# module bakery.checkout.views
def _cart_id(request: Request, body_cart_id: Optional[int]) -> Optional[int]:
    """Panier du body en priorité, sinon cookie cart_id (ignoré s'il n'est pas numérique)."""
    if body_cart_id is not None:
        return body_cart_id
    raw = (request.cookies.get(CART_COOKIE_NAME) or "").strip()
    return int(raw) if raw.isascii() and raw.isdigit() else None

@router.post("/confirm", dependencies=[Depends(optional_rate_limit(times=20, seconds=60))])
def confirm_checkout(
    body: CheckoutConfirmRequest,
    request: Request,
    user: Optional[Dict[str, Any]] = Depends(get_optional_user),
) -> Dict[str, Any]:
    """
    Aperçu de la commande (aucune écriture).
    - Entrée JSON: cartId?, guestData?, selectedAddressId?, useNewAddress?, newAddress?, ...
    - Sortie: {success, message, data: {cart, deliveryAddress, customerInfo}}
    - Erreurs: 400 (panier, stock, validation), 404 (adresse/client introuvable)
    """
    return service.confirm_checkout(body, cart_id=_cart_id(request, body.cartId), session_user=user)

@router.post("/payment", dependencies=[Depends(optional_rate_limit(times=10, seconds=60))])
def create_payment(
    body: CheckoutPaymentRequest,
    request: Request,
    user: Optional[Dict[str, Any]] = Depends(get_optional_user),
) -> Dict[str, Any]:
    """
    Enregistre la commande puis lance le paiement.
    - Sortie: {success, message, data}; data = {orderId} (cod) ou {orderId, paymentUrl, paymentToken} (paymob)
    - Les prix sont recalculés côté serveur; orderData n'est qu'un écho d'affichage
    - Erreurs: 400 (validation, stock), 500 si la passerelle de paiement échoue
    """
    cart_id = _cart_id(request, body.cartId)
    result = service.process_payment(body, cart_id=cart_id, session_user=user)
    logger.info("checkout.payment method=%s cart=%s order=%s", body.paymentMethod, cart_id, result["data"].get("orderId"))
    return result
