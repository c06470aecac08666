"""
Types du checkout (valeurs immuables, pas d'accès BD).
Les montants sont des Decimal arrondis au centime; to_dict() les convertit en float pour le JSON.
"""
from dataclasses import dataclass, field
from decimal import Decimal, ROUND_HALF_UP
from typing import Any, Dict, List, Optional, Tuple

from .sizes import FlavorSize

CENT = Decimal("0.01")


def money(value: Any) -> Decimal:
    """Convertit une valeur BD/JSON (str, int, float, Decimal, None) en Decimal au centime."""
    if value is None or value == "":
        return Decimal("0.00")
    return Decimal(str(value)).quantize(CENT, rounding=ROUND_HALF_UP)


# --- Snapshot du panier ---

@dataclass(frozen=True)
class SnapshotFlavor:
    id: int
    name: str
    quantity: int
    price: Decimal
    size: FlavorSize
    allow_out_of_stock: bool = False

    @property
    def total(self) -> Decimal:
        return self.price * self.quantity

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "quantity": self.quantity,
            "price": float(self.price),
            "size": self.size.value,
        }


@dataclass(frozen=True)
class SnapshotItem:
    id: int
    product_id: int
    name: str
    base_price: Decimal
    quantity: int
    is_pack: bool
    pack_size: FlavorSize
    count: int
    image_url: Optional[str]
    flavors: Tuple[SnapshotFlavor, ...] = ()
    allow_out_of_stock: bool = False

    @property
    def base_total(self) -> Decimal:
        return self.base_price * self.quantity

    @property
    def total(self) -> Decimal:
        return self.base_total + sum((f.total for f in self.flavors), Decimal("0.00"))

    @property
    def flavor_details(self) -> str:
        return ", ".join(f"{f.name} ({f.quantity}x)" for f in self.flavors)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "productId": self.product_id,
            "name": self.name,
            "basePrice": float(self.base_price),
            "quantity": self.quantity,
            "isPack": self.is_pack,
            "packSize": self.pack_size.value,
            "imageUrl": self.image_url,
            "count": self.count,
            "flavorDetails": self.flavor_details,
            "total": float(self.total),
            "flavors": [f.to_dict() for f in self.flavors],
        }


@dataclass(frozen=True)
class PricedCartSnapshot:
    cart_id: int
    items: Tuple[SnapshotItem, ...]

    @property
    def subtotal(self) -> Decimal:
        return sum((i.total for i in self.items), Decimal("0.00"))

    @property
    def item_count(self) -> int:
        return sum(i.quantity for i in self.items)

    def to_dict(self, delivery_fee: Optional[Decimal] = None) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "items": [i.to_dict() for i in self.items],
            "subtotal": float(self.subtotal),
            "itemCount": self.item_count,
        }
        if delivery_fee is not None:
            data["deliveryFee"] = float(delivery_fee)
            data["total"] = float(self.subtotal + delivery_fee)
        return data


# --- Disponibilité ---

@dataclass(frozen=True)
class NormalizedFlavor:
    flavor_id: int
    quantity: int
    allow_out_of_stock: bool = False


@dataclass(frozen=True)
class NormalizedCartItem:
    product_id: int
    quantity: int
    is_pack: bool
    pack_size: FlavorSize
    flavors: Tuple[NormalizedFlavor, ...] = ()
    allow_out_of_stock: bool = False


@dataclass(frozen=True)
class OutOfStockEntry:
    type: str  # "product" | "flavor"
    id: int
    name: str
    requested_quantity: int
    available_quantity: int
    allows_out_of_stock: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return {
            "type": self.type,
            "id": self.id,
            "name": self.name,
            "requestedQuantity": self.requested_quantity,
            "availableQuantity": self.available_quantity,
            "allowsOutOfStock": self.allows_out_of_stock,
        }


@dataclass(frozen=True)
class AvailabilityResult:
    is_available: bool
    out_of_stock_items: List[OutOfStockEntry] = field(default_factory=list)


# --- Client / adresse ---

@dataclass(frozen=True)
class DeliveryAddress:
    street_address: str
    city_name: str
    zone_name: str
    delivery_fee: Decimal
    additional_info: Optional[str] = None
    city_id: Optional[int] = None
    zone_id: Optional[int] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "street_address": self.street_address,
            "additional_info": self.additional_info,
            "city_name": self.city_name,
            "zone_name": self.zone_name,
            "delivery_fee": float(self.delivery_fee),
        }


@dataclass(frozen=True)
class CustomerInfo:
    name: str
    email: str
    phone: str
    type: str  # "guest" | "registered"
    id: Optional[int] = None

    @property
    def first_name(self) -> str:
        return self.name.split(" ")[0] if self.name else ""

    @property
    def last_name(self) -> str:
        return " ".join(self.name.split(" ")[1:])

    def to_dict(self) -> Dict[str, Any]:
        return {"name": self.name, "email": self.email, "phone": self.phone}


@dataclass(frozen=True)
class ResolvedCheckout:
    """Résultat du résolveur: l'adresse n'est jamais None (sinon une erreur est levée)."""
    customer: CustomerInfo
    delivery_address: DeliveryAddress

    @property
    def delivery_fee(self) -> Decimal:
        return self.delivery_address.delivery_fee


# --- Commande ---

@dataclass(frozen=True)
class OrderExtras:
    """Métadonnées transmises telles quelles à la commande (validées en amont)."""
    promo_code: Optional[str] = None
    delivery_time_slot_id: Optional[int] = None
    expected_delivery_date: Optional[str] = None


@dataclass(frozen=True)
class CommittedOrder:
    order_id: int
    customer_id: int
    subtotal: Decimal
    delivery_fee: Decimal
    total: Decimal
    payment_method: str
    item_ids: Tuple[int, ...] = ()
