"""
Construction du snapshot chiffré d'un panier (aucune écriture).
Rejouable à volonté: /confirm l'utilise pour l'aperçu, /payment le recalcule dans sa transaction.
"""
from typing import List
import logging

from sqlalchemy.engine import Connection

from . import repository as repo
from .errors import EmptyCartError, ValidationError
from .models import PricedCartSnapshot, SnapshotFlavor, SnapshotItem, money
from .sizes import FlavorSize

logger = logging.getLogger(__name__)

def _build_item(conn: Connection, row: dict) -> SnapshotItem:
    if int(row["quantity"] or 0) <= 0:
        raise ValidationError(f"Quantité invalide pour {row['name']}: {row['quantity']}")
    is_pack = bool(row["is_pack"])
    pack_size = FlavorSize.parse(row.get("pack_size"))
    flavors: List[SnapshotFlavor] = []
    if is_pack:
        # Le prix du parfum suit la taille du pack, pas celle enregistrée sur la ligne
        for f in repo.fetch_cart_item_flavors(conn, row["id"], pack_size.price_column):
            if int(f["quantity"] or 0) <= 0:
                raise ValidationError(f"Quantité invalide pour {f['name']}: {f['quantity']}")
            flavors.append(SnapshotFlavor(
                id=int(f["id"]),
                name=f["name"],
                quantity=int(f["quantity"]),
                price=money(f["price"]),
                size=pack_size,
                allow_out_of_stock=bool(f["allow_out_of_stock_order"]),
            ))
    return SnapshotItem(
        id=int(row["id"]),
        product_id=int(row["product_id"]),
        name=row["name"],
        base_price=money(row["base_price"]),
        quantity=int(row["quantity"]),
        is_pack=is_pack,
        pack_size=pack_size,
        count=int(row["count"] or 0),
        image_url=row.get("image_url"),
        flavors=tuple(flavors),
        allow_out_of_stock=bool(row["allow_out_of_stock_order"]),
    )

def build_snapshot(conn: Connection, cart_id: int) -> PricedCartSnapshot:
    items = [_build_item(conn, row) for row in repo.fetch_cart_items(conn, cart_id)]
    if not items:
        raise EmptyCartError()
    snapshot = PricedCartSnapshot(cart_id=cart_id, items=tuple(items))
    logger.debug("snapshot cart=%s items=%d subtotal=%s", cart_id, len(items), snapshot.subtotal)
    return snapshot
