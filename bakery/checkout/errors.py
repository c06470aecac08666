"""
Taxonomie d'erreurs du checkout.
Chaque erreur porte son code HTTP; le handler de l'application
(bakery.app_setup.exception_handlers) les transforme en JSON {success: false, ...}.
"""
from typing import Any, Dict, List, Optional


class CheckoutError(Exception):
    status_code = 400
    default_message = "Erreur de checkout"

    def __init__(self, message: Optional[str] = None, *, error: Optional[str] = None, payload: Optional[Dict[str, Any]] = None):
        self.message = message or self.default_message
        self.error = error or self.message
        self.payload = payload or {}
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        body: Dict[str, Any] = {"success": False, "message": self.message, "error": self.error}
        body.update(self.payload)
        return body


# --- Validation (400) ---

class ValidationError(CheckoutError):
    status_code = 400
    default_message = "Données invalides"


class MissingGuestDataError(ValidationError):
    default_message = "Informations invité requises"


# --- Introuvable ---

class NotFoundError(CheckoutError):
    status_code = 404
    default_message = "Ressource introuvable"


class CartNotFoundError(NotFoundError):
    status_code = 400
    default_message = "Panier introuvable"


class EmptyCartError(NotFoundError):
    status_code = 400
    default_message = "Le panier est vide"


class AddressNotFoundError(NotFoundError):
    default_message = "Adresse de livraison introuvable"


class ZoneNotFoundError(NotFoundError):
    status_code = 400
    default_message = "Zone de livraison introuvable"


class CustomerNotFoundError(NotFoundError):
    default_message = "Client introuvable"


# --- Stock (400) ---

class StockUnavailableError(CheckoutError):
    status_code = 400
    default_message = "Certains articles sont en rupture de stock"

    def __init__(self, out_of_stock_items: List[Dict[str, Any]], message: Optional[str] = None, error: Optional[str] = None):
        self.out_of_stock_items = out_of_stock_items
        super().__init__(message, error=error, payload={"outOfStockItems": out_of_stock_items})


# --- Services externes ---

class ExternalServiceError(CheckoutError):
    status_code = 500
    default_message = "Service externe indisponible"


class PaymentGatewayError(ExternalServiceError):
    default_message = "Échec de la création du paiement"
