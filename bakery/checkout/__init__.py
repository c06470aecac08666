"""
Module 'checkout' (feature-first): point d'entrée public.
Réunit snapshot du panier, disponibilité, résolution client/adresse, enregistrement de commande et paiement.
"""

from .availability import check_availability, normalize_snapshot_items, format_out_of_stock_message, get_order_mode
from .snapshot import build_snapshot
from .customers import resolve_customer_and_address, ensure_customer_id
from .commit import commit_order
from .payments import dispatch_payment
from .service import confirm_checkout, process_payment

__all__ = [
    # availability
    "check_availability",
    "normalize_snapshot_items",
    "format_out_of_stock_message",
    "get_order_mode",
    # snapshot
    "build_snapshot",
    # customers
    "resolve_customer_and_address",
    "ensure_customer_id",
    # commit
    "commit_order",
    # payments
    "dispatch_payment",
    # services
    "confirm_checkout",
    "process_payment",
]
