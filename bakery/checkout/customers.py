"""
Résolution du client et de l'adresse de livraison.

Trois cas:
1. client connecté + nouvelle adresse (zone -> ville/frais, enregistrement optionnel)
2. client connecté + adresse enregistrée (toujours restreinte à ce client)
3. invité (nom, email, téléphone, adresse, ville, zone obligatoires)

Chaque branche retourne un ResolvedCheckout complet ou lève une CheckoutError.
"""
from typing import Any, Dict, Optional
import logging

from sqlalchemy.engine import Connection

from . import repository as repo
from .errors import (
    AddressNotFoundError,
    CustomerNotFoundError,
    MissingGuestDataError,
    ValidationError,
    ZoneNotFoundError,
)
from .models import CustomerInfo, DeliveryAddress, ResolvedCheckout, money
from .schemas import CheckoutSelection, GuestData, NewAddress

logger = logging.getLogger(__name__)

GUEST_REQUIRED_FIELDS = ("name", "email", "phone", "address", "city", "zone")

def _clean(value: Optional[str]) -> Optional[str]:
    value = (value or "").strip()
    return value or None

def coerce_zone_id(value: Any) -> int:
    """Accepte 12 ou "12"; tout le reste est une ValidationError."""
    if isinstance(value, bool):
        raise ValidationError("Zone invalide")
    if isinstance(value, int):
        return value
    text = str(value or "").strip()
    # isdigit() accepte aussi "²" ou les chiffres arabes-indiens, que int() refuse
    if not (text.isascii() and text.isdigit()):
        raise ValidationError(f"Zone invalide: {value}")
    return int(text)

def _address_from_zone(conn: Connection, zone_id: int, street_address: str, additional_info: Optional[str]) -> DeliveryAddress:
    zone = repo.get_zone(conn, zone_id)
    if not zone:
        raise ZoneNotFoundError(error=f"Zone {zone_id} introuvable")
    return DeliveryAddress(
        street_address=street_address,
        additional_info=additional_info,
        city_name=zone["city_name"],
        zone_name=zone["zone_name"],
        delivery_fee=money(zone["delivery_fee"]),
        city_id=int(zone["city_id"]),
        zone_id=int(zone["zone_id"]),
    )

def _registered_customer(conn: Connection, session_user: Dict[str, Any]) -> CustomerInfo:
    email = (session_user.get("email") or "").strip().lower()
    row = repo.get_customer_by_email(conn, email) if email else None
    if not row:
        raise CustomerNotFoundError(error=f"Aucun client pour {email or 'la session'}")
    name = " ".join(p for p in (row.get("first_name"), row.get("last_name")) if p).strip()
    return CustomerInfo(
        name=name,
        email=row["email"],
        phone=row.get("phone") or "",
        type=row.get("type") or "registered",
        id=int(row["id"]),
    )

def _resolve_new_address(conn: Connection, customer: CustomerInfo, payload: NewAddress, *, save: bool) -> DeliveryAddress:
    street = payload.street_address.strip()
    info = _clean(payload.additional_info)
    address = _address_from_zone(conn, payload.zone_id, street, info)
    if address.city_id != payload.city_id:
        raise ValidationError("La zone n'appartient pas à la ville choisie")
    if save:
        key = dict(customer_id=customer.id, street_address=street, city_id=address.city_id, zone_id=address.zone_id, additional_info=info)
        if repo.find_customer_address(conn, **key):
            logger.debug("adresse déjà enregistrée pour le client %s", customer.id)
        else:
            address_id = repo.insert_customer_address(conn, **key)
            logger.info("adresse %s enregistrée pour le client %s", address_id, customer.id)
    return address

def _resolve_saved_address(conn: Connection, customer: CustomerInfo, address_id: int) -> DeliveryAddress:
    row = repo.get_customer_address(conn, address_id, customer.id)
    if not row:
        raise AddressNotFoundError(error=f"Adresse {address_id} introuvable pour ce client")
    return DeliveryAddress(
        street_address=row["street_address"],
        additional_info=row.get("additional_info"),
        city_name=row["city_name"],
        zone_name=row["zone_name"],
        delivery_fee=money(row["delivery_fee"]),
        city_id=int(row["city_id"]),
        zone_id=int(row["zone_id"]),
    )

def _check_guest_city(city: Any, address: DeliveryAddress) -> None:
    """La ville invitée (id ou nom) doit être celle de la zone choisie."""
    text = str(city).strip()
    if text.isascii() and text.isdigit():
        matches = int(text) == address.city_id
    else:
        matches = text.casefold() == (address.city_name or "").strip().casefold()
    if not matches:
        raise ValidationError("La zone n'appartient pas à la ville choisie", error=f"Ville {city} incompatible avec la zone {address.zone_id}")

def _resolve_guest(conn: Connection, guest: Optional[GuestData]) -> ResolvedCheckout:
    data = guest.model_dump() if guest else {}
    missing = [k for k in GUEST_REQUIRED_FIELDS if data.get(k) in (None, "")]
    if missing:
        raise MissingGuestDataError(error=f"Champs manquants: {', '.join(missing)}")
    email = data["email"].strip().lower()
    if "@" not in email:
        raise ValidationError("Email invalide")
    zone_id = coerce_zone_id(data["zone"])
    address = _address_from_zone(conn, zone_id, data["address"].strip(), _clean(data.get("additionalInfo")))
    _check_guest_city(data["city"], address)
    customer = CustomerInfo(
        name=data["name"].strip(),
        email=email,
        phone=data["phone"].strip(),
        type="guest",
    )
    return ResolvedCheckout(customer=customer, delivery_address=address)

def resolve_customer_and_address(
    conn: Connection,
    *,
    session_user: Optional[Dict[str, Any]],
    request: CheckoutSelection,
    persist: bool = False,
) -> ResolvedCheckout:
    """
    - persist: autorise l'écriture d'une nouvelle adresse (seulement dans la transaction de paiement,
      et seulement si saveAddress est demandé)
    """
    if not session_user:
        return _resolve_guest(conn, request.guestData)

    customer = _registered_customer(conn, session_user)
    if request.useNewAddress and request.newAddress:
        address = _resolve_new_address(conn, customer, request.newAddress, save=persist and request.saveAddress)
    elif request.selectedAddressId is not None:
        address = _resolve_saved_address(conn, customer, request.selectedAddressId)
    else:
        raise ValidationError("Adresse de livraison requise")
    return ResolvedCheckout(customer=customer, delivery_address=address)

def ensure_customer_id(conn: Connection, customer: CustomerInfo) -> int:
    """Id existant, sinon client trouvé par email (tout type), sinon création d'un client 'guest'."""
    if customer.id is not None:
        return customer.id
    row = repo.get_customer_by_email(conn, customer.email)
    if row:
        return int(row["id"])
    customer_id = repo.insert_guest_customer(
        conn,
        first_name=customer.first_name,
        last_name=customer.last_name,
        email=customer.email,
        phone=customer.phone,
    )
    logger.info("client invité %s créé (%s)", customer_id, customer.email)
    return customer_id
