"""
Cas d'usage 'checkout': orchestre snapshot, disponibilité, client/adresse, commande et paiement.
- confirm_checkout: aperçu sans écriture
- process_payment: recalcul complet côté serveur dans une transaction, puis paiement
"""
from datetime import date
from typing import Any, Dict, Optional
import logging

from sqlalchemy.engine import Connection

from bakery.infra import database
from . import repository as repo
from .availability import check_availability, format_out_of_stock_message, normalize_snapshot_items
from .commit import PAYMENT_METHODS, commit_order
from .customers import resolve_customer_and_address
from .errors import CartNotFoundError, StockUnavailableError, ValidationError
from .models import OrderExtras, PricedCartSnapshot, money
from .payments import dispatch_payment
from .schemas import CheckoutConfirmRequest, CheckoutPaymentRequest, CheckoutSelection
from .snapshot import build_snapshot

logger = logging.getLogger(__name__)

def _validate_selection(body: CheckoutSelection) -> None:
    if body.expectedDeliveryDate and body.expectedDeliveryDate < date.today():
        raise ValidationError("La date de livraison ne peut pas être dans le passé")

def _priced_available_snapshot(conn: Connection, cart_id: Optional[int]) -> PricedCartSnapshot:
    if cart_id is None or not repo.get_active_cart(conn, cart_id):
        raise CartNotFoundError()
    snapshot = build_snapshot(conn, cart_id)
    availability = check_availability(conn, normalize_snapshot_items(snapshot))
    if not availability.is_available:
        raise StockUnavailableError(
            [e.to_dict() for e in availability.out_of_stock_items],
            error=format_out_of_stock_message(availability.out_of_stock_items),
        )
    return snapshot

def _extras(body: CheckoutSelection) -> OrderExtras:
    return OrderExtras(
        promo_code=body.promoCode,
        delivery_time_slot_id=body.deliveryTimeSlotId,
        expected_delivery_date=body.expectedDeliveryDate.isoformat() if body.expectedDeliveryDate else None,
    )

def confirm_checkout(
    body: CheckoutConfirmRequest,
    *,
    cart_id: Optional[int],
    session_user: Optional[Dict[str, Any]],
) -> Dict[str, Any]:
    _validate_selection(body)
    with database.connect() as conn:
        snapshot = _priced_available_snapshot(conn, cart_id)
        resolved = resolve_customer_and_address(conn, session_user=session_user, request=body, persist=False)

    return {
        "success": True,
        "message": "Commande prête à être confirmée",
        "data": {
            "cart": snapshot.to_dict(delivery_fee=resolved.delivery_fee),
            "deliveryAddress": resolved.delivery_address.to_dict(),
            "customerInfo": resolved.customer.to_dict(),
        },
    }

def _log_client_mismatch(order_data: Optional[Dict[str, Any]], expected_total, cart_id: int) -> None:
    """orderData n'est qu'un écho d'affichage: un écart est tracé, jamais appliqué."""
    if not order_data:
        return
    echoed = (order_data.get("cart") or {}).get("total", order_data.get("total"))
    if echoed is None:
        return
    try:
        if money(echoed) != expected_total:
            logger.warning("total client %s différent du total serveur %s (panier %s)", echoed, expected_total, cart_id)
    except ArithmeticError:
        logger.warning("total client illisible %r (panier %s)", echoed, cart_id)

def process_payment(
    body: CheckoutPaymentRequest,
    *,
    cart_id: Optional[int],
    session_user: Optional[Dict[str, Any]],
) -> Dict[str, Any]:
    method = (body.paymentMethod or "").strip().lower()
    if method not in PAYMENT_METHODS:
        raise ValidationError(f"Méthode de paiement invalide: {body.paymentMethod}")
    _validate_selection(body)

    with database.transaction() as conn:
        snapshot = _priced_available_snapshot(conn, cart_id)
        resolved = resolve_customer_and_address(conn, session_user=session_user, request=body, persist=True)
        _log_client_mismatch(body.orderData, snapshot.subtotal + resolved.delivery_fee, snapshot.cart_id)
        order = commit_order(
            conn,
            cart_id=snapshot.cart_id,
            snapshot=snapshot,
            resolved=resolved,
            payment_method=method,
            extras=_extras(body),
        )

    payment = dispatch_payment(order=order, snapshot=snapshot, resolved=resolved, payment_method=method)
    message = "Commande enregistrée" if method == "cod" else "Paiement créé, redirection vers la passerelle"
    return {"success": True, "message": message, "data": payment}
