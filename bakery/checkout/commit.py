"""
Écriture de la commande, à exécuter dans la transaction ouverte par l'appelant:

    with database.transaction() as conn:
        order = commit_order(conn, ...)

Ordre: client -> en-tête -> (instance, parfums, ligne, décrément de stock) par article -> vidage du panier.
Toute erreur remonte et annule l'ensemble.
"""
from typing import List
import logging

from sqlalchemy.engine import Connection

from . import repository as repo
from .availability import allows_out_of_stock
from .customers import ensure_customer_id
from .errors import StockUnavailableError, ValidationError
from .models import CommittedOrder, OrderExtras, OutOfStockEntry, PricedCartSnapshot, ResolvedCheckout, SnapshotItem

logger = logging.getLogger(__name__)

PAYMENT_METHODS = ("cod", "paymob")
PACK_TYPE = "cookie_pack"
SINGLE_TYPE = "single"

def stored_payment_method(payment_method: str) -> str:
    return "cash" if payment_method == "cod" else "card"

def _decrement_product(conn: Connection, item: SnapshotItem) -> None:
    unconditional = allows_out_of_stock(conn, item.allow_out_of_stock)
    updated = repo.decrement_product_stock(conn, item.product_id, item.quantity, conditional=not unconditional)
    if not updated:
        available = repo.get_product_stock(conn, item.product_id) or 0
        entry = OutOfStockEntry("product", item.product_id, item.name, item.quantity, available)
        raise StockUnavailableError([entry.to_dict()], error=f"Stock insuffisant pour {item.name}")
    if unconditional:
        remaining = repo.get_product_stock(conn, item.product_id)
        if remaining is not None and remaining < 0:
            logger.warning("stock négatif produit=%s stock=%s", item.product_id, remaining)

def _materialize_pack(conn: Connection, item: SnapshotItem) -> int:
    """Instance de pack + un enregistrement par parfum, chacun avec son décrément de stock."""
    instance_id = repo.insert_product_instance(
        conn, product_id=item.product_id, product_type=PACK_TYPE, size_id=item.pack_size.size_id
    )
    column = item.pack_size.stock_column
    for flavor in item.flavors:
        repo.insert_product_instance_flavor(
            conn, instance_id=instance_id, flavor_id=flavor.id, size_id=flavor.size.size_id, quantity=flavor.quantity
        )
        unconditional = allows_out_of_stock(conn, flavor.allow_out_of_stock)
        updated = repo.decrement_flavor_stock(conn, flavor.id, column, flavor.quantity, conditional=not unconditional)
        if not updated:
            available = repo.get_flavor_stock(conn, flavor.id, column) or 0
            entry = OutOfStockEntry("flavor", flavor.id, flavor.name, flavor.quantity, available)
            raise StockUnavailableError([entry.to_dict()], error=f"Stock insuffisant pour {flavor.name}")
        if unconditional:
            remaining = repo.get_flavor_stock(conn, flavor.id, column)
            if remaining is not None and remaining < 0:
                logger.warning("stock négatif parfum=%s colonne=%s stock=%s", flavor.id, column, remaining)
    return instance_id

def _materialize_item(conn: Connection, order_id: int, item: SnapshotItem) -> int:
    if item.is_pack:
        instance_id = _materialize_pack(conn, item)
        product_type = PACK_TYPE
    else:
        instance_id = repo.insert_product_instance(conn, product_id=item.product_id, product_type=SINGLE_TYPE, size_id=None)
        _decrement_product(conn, item)
        product_type = SINGLE_TYPE
    return repo.insert_order_item(conn, {
        "order_id": order_id,
        "product_instance_id": instance_id,
        "product_name": item.name,
        "product_type": product_type,
        "quantity": item.quantity,
        "unit_price": float(item.base_price),
        "total_price": float(item.total),
        "flavor_details": item.flavor_details or None,
    })

def commit_order(
    conn: Connection,
    *,
    cart_id: int,
    snapshot: PricedCartSnapshot,
    resolved: ResolvedCheckout,
    payment_method: str,
    extras: OrderExtras,
) -> CommittedOrder:
    if payment_method not in PAYMENT_METHODS:
        raise ValidationError(f"Méthode de paiement invalide: {payment_method}")

    customer_id = ensure_customer_id(conn, resolved.customer)
    address = resolved.delivery_address
    subtotal = snapshot.subtotal
    total = subtotal + address.delivery_fee
    method = stored_payment_method(payment_method)

    order_id = repo.insert_order(conn, {
        "customer_id": customer_id,
        "customer_name": resolved.customer.name,
        "customer_email": resolved.customer.email,
        "customer_phone": resolved.customer.phone,
        "delivery_address": address.street_address,
        "delivery_additional_info": address.additional_info,
        "delivery_city": address.city_name,
        "delivery_zone": address.zone_name,
        "subtotal": float(subtotal),
        "delivery_fee": float(address.delivery_fee),
        "total": float(total),
        "status": "pending",
        "payment_status": "pending",
        "payment_method": method,
        "promo_code": extras.promo_code,
        "delivery_time_slot_id": extras.delivery_time_slot_id,
        "expected_delivery_date": extras.expected_delivery_date,
    })

    item_ids: List[int] = [_materialize_item(conn, order_id, item) for item in snapshot.items]
    cleared = repo.clear_cart(conn, cart_id)

    logger.info(
        "commande %s enregistrée client=%s total=%s methode=%s lignes=%d panier=%s (%d supprimées)",
        order_id, customer_id, total, method, len(item_ids), cart_id, cleared,
    )
    return CommittedOrder(
        order_id=order_id,
        customer_id=customer_id,
        subtotal=subtotal,
        delivery_fee=address.delivery_fee,
        total=total,
        payment_method=method,
        item_ids=tuple(item_ids),
    )
