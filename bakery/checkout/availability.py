"""
Vérification de disponibilité (lecture seule).

- Produit simple: disponible si products.stock_quantity >= quantité demandée
- Pack: chaque parfum est vérifié sur la colonne de stock de la taille du pack,
  avec la quantité déjà totalisée pour la ligne du panier
- Toutes les ruptures sont rapportées en une passe

Le mode de commande (site_settings.order_mode) est mis en cache en mémoire:
en 'preorder' tout est disponible; les produits/parfums marqués
allow_out_of_stock_order ne bloquent jamais mais restent signalés.
"""
from typing import Iterable, List, Optional
import logging
import time

from sqlalchemy.engine import Connection

from bakery.config import ORDER_MODE_CACHE_SECONDS
from . import repository as repo
from .models import (
    AvailabilityResult,
    NormalizedCartItem,
    NormalizedFlavor,
    OutOfStockEntry,
    PricedCartSnapshot,
)

logger = logging.getLogger(__name__)

STOCK_BASED = "stock_based"
PREORDER = "preorder"
ORDER_MODES = (STOCK_BASED, PREORDER)

_order_mode_cache = {"value": None, "expires_at": 0.0}

def get_order_mode(conn: Connection) -> str:
    now = time.monotonic()
    cached = _order_mode_cache["value"]
    if cached and now < _order_mode_cache["expires_at"]:
        return cached
    raw = (repo.get_site_setting(conn, "order_mode") or "").strip().lower()
    mode = raw if raw in ORDER_MODES else STOCK_BASED
    if raw and raw != mode:
        logger.warning("order_mode inconnu '%s', repli sur %s", raw, STOCK_BASED)
    _order_mode_cache["value"] = mode
    _order_mode_cache["expires_at"] = now + ORDER_MODE_CACHE_SECONDS
    return mode

def clear_order_mode_cache() -> None:
    """À appeler après modification de site_settings.order_mode (et entre les tests)."""
    _order_mode_cache["value"] = None
    _order_mode_cache["expires_at"] = 0.0

def normalize_snapshot_items(snapshot: PricedCartSnapshot) -> List[NormalizedCartItem]:
    return [
        NormalizedCartItem(
            product_id=item.product_id,
            quantity=item.quantity,
            is_pack=item.is_pack,
            pack_size=item.pack_size,
            flavors=tuple(
                NormalizedFlavor(flavor_id=f.id, quantity=f.quantity, allow_out_of_stock=f.allow_out_of_stock)
                for f in item.flavors
            ) if item.is_pack else (),
            allow_out_of_stock=item.allow_out_of_stock,
        )
        for item in snapshot.items
    ]

def _collect_shortages(conn: Connection, items: List[NormalizedCartItem]) -> List[OutOfStockEntry]:
    products = repo.fetch_products_stock(conn, (i.product_id for i in items if not i.is_pack))
    flavors = repo.fetch_flavors_stock(conn, (f.flavor_id for i in items if i.is_pack for f in i.flavors))
    shortages: List[OutOfStockEntry] = []

    for item in items:
        if not item.is_pack:
            row = products.get(item.product_id)
            available = int(row["stock_quantity"] or 0) if row else 0
            if available < item.quantity:
                shortages.append(OutOfStockEntry(
                    type="product",
                    id=item.product_id,
                    name=row["name"] if row else f"Product {item.product_id}",
                    requested_quantity=item.quantity,
                    available_quantity=available,
                    allows_out_of_stock=bool(row and row["allow_out_of_stock_order"]) or item.allow_out_of_stock,
                ))
            continue

        column = item.pack_size.stock_column
        for flavor in item.flavors:
            row = flavors.get(flavor.flavor_id)
            available = int(row[column] or 0) if row else 0
            if available < flavor.quantity:
                shortages.append(OutOfStockEntry(
                    type="flavor",
                    id=flavor.flavor_id,
                    name=row["name"] if row else f"Flavor {flavor.flavor_id}",
                    requested_quantity=flavor.quantity,
                    available_quantity=available,
                    allows_out_of_stock=bool(row and row["allow_out_of_stock_order"]) or flavor.allow_out_of_stock,
                ))
    return shortages

def check_availability(conn: Connection, items: Iterable[NormalizedCartItem]) -> AvailabilityResult:
    items = list(items)
    shortages = _collect_shortages(conn, items)

    if get_order_mode(conn) == PREORDER:
        return AvailabilityResult(is_available=True, out_of_stock_items=shortages)

    blocking = [s for s in shortages if not s.allows_out_of_stock]
    if blocking:
        logger.info("checkout.availability: %d article(s) en rupture", len(blocking))
        return AvailabilityResult(is_available=False, out_of_stock_items=blocking)
    return AvailabilityResult(is_available=True, out_of_stock_items=shortages)

def allows_out_of_stock(conn: Connection, flag: bool) -> bool:
    """Un article peut passer sous zéro s'il est autorisé ou si la boutique est en précommande."""
    return flag or get_order_mode(conn) == PREORDER

def format_out_of_stock_message(entries: Iterable[OutOfStockEntry], prefix: Optional[str] = None) -> str:
    parts = [f"{e.name} (demandé: {e.requested_quantity}, disponible: {e.available_quantity})" for e in entries]
    return f"{prefix or 'Stock insuffisant pour'}: {', '.join(parts)}"
