"""
Adaptateur Paymob (Accept): centralise les appels HTTP et la configuration.
Flux carte: get_auth_token -> create_order -> generate_payment_key -> get_payment_url.
Les montants sont passés en unité monétaire et convertis en centimes ici.
"""
from decimal import Decimal, ROUND_HALF_UP
from typing import Any, Dict, List, Optional, Union
import logging

import requests

from bakery.config import (
    BASE_URL,
    PAYMENT_CALLBACK_PATH,
    PAYMENT_WEBHOOK_PATH,
    PAYMOB_API_KEY,
    PAYMOB_BASE_URL,
    PAYMOB_COUNTRY,
    PAYMOB_CURRENCY,
    PAYMOB_IFRAME_ID,
    PAYMOB_INTEGRATION_ID,
    PAYMOB_TIMEOUT,
)

logger = logging.getLogger(__name__)

PAYMENT_KEY_EXPIRATION = 3600
Amount = Union[int, float, Decimal]

class PaymobError(RuntimeError):
    pass

# module bakery.infra.paymob_client
def to_cents(amount: Amount) -> int:
    return int((Decimal(str(amount)) * 100).quantize(Decimal("1"), rounding=ROUND_HALF_UP))

def _post(path: str, payload: Dict[str, Any]) -> Dict[str, Any]:
    url = f"{PAYMOB_BASE_URL}{path}"
    try:
        r = requests.post(url, json=payload, timeout=PAYMOB_TIMEOUT)
    except requests.RequestException as e:
        raise PaymobError(f"Paymob injoignable ({path}): {e}") from e
    if not r.ok:
        raise PaymobError(f"Paymob {path} a répondu {r.status_code}: {r.text[:500]}")
    try:
        return r.json()
    except ValueError as e:
        # requests.JSONDecodeError hérite de ValueError
        raise PaymobError(f"Réponse Paymob illisible ({path}): {r.text[:200]}") from e

def get_auth_token() -> str:
    if not PAYMOB_API_KEY:
        raise PaymobError("PAYMOB_API_KEY manquant")
    data = _post("/auth/tokens", {"api_key": PAYMOB_API_KEY})
    token = data.get("token")
    if not token:
        raise PaymobError("Réponse d'authentification Paymob sans token")
    return token

def create_order(
    *,
    auth_token: str,
    amount: Amount,
    items: List[Dict[str, Any]],
    merchant_order_id: Optional[str] = None,
    delivery_needed: bool = False,
) -> Dict[str, Any]:
    """
    Crée la commande côté Paymob.
    - items: [{"name", "amount", "description", "quantity"}] (amount en unité monétaire)
    Retour: dict commande (ex: {"id": 123456, ...})
    """
    payload: Dict[str, Any] = {
        "auth_token": auth_token,
        "delivery_needed": delivery_needed,
        "amount_cents": to_cents(amount),
        "currency": PAYMOB_CURRENCY,
        "items": [
            {
                "name": i.get("name") or "",
                "amount_cents": to_cents(i.get("amount") or 0),
                "description": i.get("description") or "",
                "quantity": int(i.get("quantity") or 1),
            }
            for i in items
        ],
    }
    if merchant_order_id:
        payload["merchant_order_id"] = merchant_order_id
    data = _post("/ecommerce/orders", payload)
    if not data.get("id"):
        raise PaymobError("Réponse de commande Paymob sans id")
    logger.info("paymob.create_order id=%s merchant_order_id=%s amount_cents=%s", data.get("id"), merchant_order_id, payload["amount_cents"])
    return data

def billing_data(*, first_name: str, last_name: str, email: str, phone: str, street: str = "", city: str = "") -> Dict[str, str]:
    """Paymob exige tous les champs: 'NA' pour ceux qu'on ne collecte pas."""
    return {
        "apartment": "NA",
        "email": email or "NA",
        "floor": "NA",
        "first_name": first_name or "NA",
        "street": street or "NA",
        "building": "NA",
        "phone_number": phone or "NA",
        "shipping_method": "NA",
        "postal_code": "NA",
        "city": city or "NA",
        "country": PAYMOB_COUNTRY,
        "last_name": last_name or "NA",
        "state": "NA",
    }

def generate_payment_key(
    *,
    auth_token: str,
    paymob_order_id: int,
    amount: Amount,
    billing: Dict[str, str],
) -> str:
    payload = {
        "auth_token": auth_token,
        "amount_cents": to_cents(amount),
        "expiration": PAYMENT_KEY_EXPIRATION,
        "order_id": paymob_order_id,
        "billing_data": billing,
        "currency": PAYMOB_CURRENCY,
        "integration_id": PAYMOB_INTEGRATION_ID,
        "lock_order_when_paid": True,
        "redirect_callback": f"{BASE_URL}{PAYMENT_CALLBACK_PATH}",
        "webhook_callback": f"{BASE_URL}{PAYMENT_WEBHOOK_PATH}",
    }
    data = _post("/acceptance/payment_keys", payload)
    token = data.get("token")
    if not token:
        raise PaymobError("Réponse de clé de paiement Paymob sans token")
    return token

def get_payment_url(payment_token: str, order_id: Optional[int] = None) -> str:
    """URL iframe si PAYMOB_IFRAME_ID est défini, sinon page de paiement hébergée."""
    if PAYMOB_IFRAME_ID:
        url = f"{PAYMOB_BASE_URL}/acceptance/iframes/{PAYMOB_IFRAME_ID}?payment_token={payment_token}"
    else:
        url = f"{PAYMOB_BASE_URL}/acceptance/payments/pay?payment_token={payment_token}"
    if order_id is not None:
        url += f"&order_id={order_id}"
    return url
