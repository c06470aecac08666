"""
Répartition du paiement après l'enregistrement de la commande.
- cod: email de confirmation (best-effort), retourne {"orderId"}
- paymob: commande + clé de paiement côté passerelle, jeton stocké sur la commande,
  retourne {"orderId", "paymentUrl", "paymentToken"}
"""
from typing import Any, Dict, List
import logging

from bakery.infra import database, mailer, paymob_client
from . import repository as repo
from .errors import PaymentGatewayError, ValidationError
from .models import CENT, CommittedOrder, PricedCartSnapshot, ResolvedCheckout

logger = logging.getLogger(__name__)

def _send_confirmation(order: CommittedOrder, snapshot: PricedCartSnapshot, resolved: ResolvedCheckout) -> None:
    try:
        sent = mailer.send_order_confirmation_email(
            resolved.customer.email,
            order_id=order.order_id,
            customer_name=resolved.customer.name,
            items=[i.to_dict() for i in snapshot.items],
            subtotal=float(order.subtotal),
            delivery_fee=float(order.delivery_fee),
            total=float(order.total),
            delivery_address=resolved.delivery_address.street_address,
        )
        if sent:
            logger.info("email de confirmation envoyé commande=%s", order.order_id)
    except Exception:
        logger.warning("email de confirmation non envoyé commande=%s", order.order_id, exc_info=True)

def _gateway_items(order: CommittedOrder, snapshot: PricedCartSnapshot) -> List[Dict[str, Any]]:
    items = [
        {
            "name": i.name,
            "amount": (i.total / i.quantity).quantize(CENT),
            "description": i.flavor_details or i.name,
            "quantity": i.quantity,
        }
        for i in snapshot.items
    ]
    if order.delivery_fee > 0:
        items.append({"name": "Livraison", "amount": order.delivery_fee, "description": "Frais de livraison", "quantity": 1})
    return items

def _start_gateway_payment(order: CommittedOrder, snapshot: PricedCartSnapshot, resolved: ResolvedCheckout) -> Dict[str, Any]:
    customer = resolved.customer
    try:
        auth_token = paymob_client.get_auth_token()
        gateway_order = paymob_client.create_order(
            auth_token=auth_token,
            amount=order.total,
            items=_gateway_items(order, snapshot),
            merchant_order_id=str(order.order_id),
        )
        billing = paymob_client.billing_data(
            first_name=customer.first_name,
            last_name=customer.last_name,
            email=customer.email,
            phone=customer.phone,
            street=resolved.delivery_address.street_address,
            city=resolved.delivery_address.city_name,
        )
        token = paymob_client.generate_payment_key(
            auth_token=auth_token,
            paymob_order_id=gateway_order["id"],
            amount=order.total,
            billing=billing,
        )
    except paymob_client.PaymobError as e:
        logger.exception("paiement paymob impossible commande=%s", order.order_id)
        raise PaymentGatewayError(error=str(e), payload={"orderId": order.order_id})

    database.run_in_transaction(lambda conn: repo.set_order_payment_token(conn, order.order_id, token))

    payment_url = paymob_client.get_payment_url(token, order_id=order.order_id)
    logger.info("paiement paymob créé commande=%s paymob_order=%s", order.order_id, gateway_order["id"])
    return {"orderId": order.order_id, "paymentUrl": payment_url, "paymentToken": token}

def dispatch_payment(
    *,
    order: CommittedOrder,
    snapshot: PricedCartSnapshot,
    resolved: ResolvedCheckout,
    payment_method: str,
) -> Dict[str, Any]:
    if payment_method == "cod":
        _send_confirmation(order, snapshot, resolved)
        return {"orderId": order.order_id}
    if payment_method == "paymob":
        return _start_gateway_payment(order, snapshot, resolved)
    raise ValidationError(f"Méthode de paiement invalide: {payment_method}")
