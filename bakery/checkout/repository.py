"""
Accès données pour la feature 'checkout' (SQL brut, sans ORM).
Toutes les fonctions reçoivent la connexion: elles s'exécutent donc dans la
transaction de l'appelant quand il y en a une (voir bakery.infra.database.transaction).
"""
from typing import Any, Dict, Iterable, List, Optional

from sqlalchemy.engine import Connection

from bakery.infra.database import execute, first, insert_returning_id, rows
from .sizes import PRICE_COLUMNS, STOCK_COLUMNS

# module bakery.checkout.repository

def _in_clause(prefix: str, values: Iterable[Any]) -> tuple:
    """Construit ':p0, :p1, ...' et le dict de paramètres associé (IN portable)."""
    params = {f"{prefix}{i}": v for i, v in enumerate(values)}
    return ", ".join(f":{k}" for k in params), params

# --- Panier ---

def get_active_cart(conn: Connection, cart_id: int) -> Optional[dict]:
    return first(conn, "SELECT id, session_id, status FROM carts WHERE id = :id AND status = 'active'", {"id": cart_id})

def fetch_cart_items(conn: Connection, cart_id: int) -> List[dict]:
    """Lignes du panier jointes aux produits actifs (les produits désactivés sont ignorés)."""
    return rows(
        conn,
        """
        SELECT ci.id, ci.quantity, ci.product_id,
               p.name, p.base_price, p.image_url, p.is_pack, p.count,
               p.flavor_size AS pack_size, p.stock_quantity, p.allow_out_of_stock_order
        FROM cart_items ci
        JOIN products p ON ci.product_id = p.id
        WHERE ci.cart_id = :cart_id AND p.is_active = TRUE
        ORDER BY ci.id DESC
        """,
        {"cart_id": cart_id},
    )

def fetch_cart_item_flavors(conn: Connection, cart_item_id: int, price_column: str) -> List[dict]:
    if price_column not in PRICE_COLUMNS:
        raise ValueError(f"Colonne de prix inconnue: {price_column}")
    return rows(
        conn,
        f"""
        SELECT f.id, f.name, cif.quantity, f.{price_column} AS price, f.allow_out_of_stock_order
        FROM cart_item_flavors cif
        JOIN flavors f ON cif.flavor_id = f.id
        WHERE cif.cart_item_id = :cart_item_id
        ORDER BY cif.id
        """,
        {"cart_item_id": cart_item_id},
    )

def clear_cart(conn: Connection, cart_id: int) -> int:
    """Supprime les lignes (et leurs parfums) du panier; retourne le nombre de lignes supprimées."""
    execute(
        conn,
        "DELETE FROM cart_item_flavors WHERE cart_item_id IN (SELECT id FROM cart_items WHERE cart_id = :cart_id)",
        {"cart_id": cart_id},
    )
    return execute(conn, "DELETE FROM cart_items WHERE cart_id = :cart_id", {"cart_id": cart_id})

# --- Stock ---

def fetch_products_stock(conn: Connection, product_ids: Iterable[int]) -> Dict[int, dict]:
    ids = sorted(set(product_ids))
    if not ids:
        return {}
    placeholders, params = _in_clause("p", ids)
    found = rows(
        conn,
        f"SELECT id, name, stock_quantity, allow_out_of_stock_order FROM products WHERE id IN ({placeholders})",
        params,
    )
    return {int(r["id"]): r for r in found}

def fetch_flavors_stock(conn: Connection, flavor_ids: Iterable[int]) -> Dict[int, dict]:
    ids = sorted(set(flavor_ids))
    if not ids:
        return {}
    placeholders, params = _in_clause("f", ids)
    found = rows(
        conn,
        f"""
        SELECT id, name, stock_quantity_mini, stock_quantity_medium, stock_quantity_large,
               allow_out_of_stock_order
        FROM flavors WHERE id IN ({placeholders})
        """,
        params,
    )
    return {int(r["id"]): r for r in found}

def decrement_product_stock(conn: Connection, product_id: int, quantity: int, *, conditional: bool = True) -> int:
    """
    Décrémente products.stock_quantity.
    - conditional: n'applique la décrémentation que si le stock suffit (0 ligne sinon)
    """
    sql = "UPDATE products SET stock_quantity = stock_quantity - :qty WHERE id = :id"
    if conditional:
        sql += " AND stock_quantity >= :qty"
    return execute(conn, sql, {"qty": quantity, "id": product_id})

def decrement_flavor_stock(conn: Connection, flavor_id: int, stock_column: str, quantity: int, *, conditional: bool = True) -> int:
    if stock_column not in STOCK_COLUMNS:
        raise ValueError(f"Colonne de stock inconnue: {stock_column}")
    sql = f"UPDATE flavors SET {stock_column} = {stock_column} - :qty WHERE id = :id"
    if conditional:
        sql += f" AND {stock_column} >= :qty"
    return execute(conn, sql, {"qty": quantity, "id": flavor_id})

def get_product_stock(conn: Connection, product_id: int) -> Optional[int]:
    row = first(conn, "SELECT stock_quantity FROM products WHERE id = :id", {"id": product_id})
    return int(row["stock_quantity"]) if row else None

def get_flavor_stock(conn: Connection, flavor_id: int, stock_column: str) -> Optional[int]:
    if stock_column not in STOCK_COLUMNS:
        raise ValueError(f"Colonne de stock inconnue: {stock_column}")
    row = first(conn, f"SELECT {stock_column} AS stock FROM flavors WHERE id = :id", {"id": flavor_id})
    return int(row["stock"]) if row else None

# --- Paramètres du site ---

def get_site_setting(conn: Connection, key: str) -> Optional[str]:
    """None si la ligne manque. Une erreur SQL remonte: dans la transaction de paiement,
    l'avaler laisserait la transaction Postgres dans un état avorté."""
    row = first(conn, "SELECT setting_value FROM site_settings WHERE setting_key = :key", {"key": key})
    return row["setting_value"] if row else None

# --- Zones / clients / adresses ---

def get_zone(conn: Connection, zone_id: int) -> Optional[dict]:
    return first(
        conn,
        """
        SELECT z.id AS zone_id, z.name AS zone_name, z.delivery_fee, c.id AS city_id, c.name AS city_name
        FROM zones z
        JOIN cities c ON z.city_id = c.id
        WHERE z.id = :zone_id
        """,
        {"zone_id": zone_id},
    )

def get_customer_by_email(conn: Connection, email: str) -> Optional[dict]:
    return first(
        conn,
        """
        SELECT id, first_name, last_name, email, phone, type
        FROM customers WHERE LOWER(email) = LOWER(:email)
        ORDER BY id LIMIT 1
        """,
        {"email": email},
    )

def insert_guest_customer(conn: Connection, *, first_name: str, last_name: str, email: str, phone: str) -> int:
    return insert_returning_id(
        conn,
        """
        INSERT INTO customers (first_name, last_name, email, phone, password, type)
        VALUES (:first_name, :last_name, :email, :phone, '', 'guest')
        RETURNING id
        """,
        {"first_name": first_name, "last_name": last_name, "email": email, "phone": phone},
    )

def get_customer_address(conn: Connection, address_id: int, customer_id: int) -> Optional[dict]:
    """Adresse enregistrée, toujours restreinte au client authentifié."""
    return first(
        conn,
        """
        SELECT ca.id, ca.street_address, ca.additional_info, ca.city_id, ca.zone_id,
               c.name AS city_name, z.name AS zone_name, z.delivery_fee
        FROM customer_addresses ca
        JOIN cities c ON ca.city_id = c.id
        JOIN zones z ON ca.zone_id = z.id
        WHERE ca.id = :address_id AND ca.customer_id = :customer_id
        """,
        {"address_id": address_id, "customer_id": customer_id},
    )

def find_customer_address(
    conn: Connection,
    *,
    customer_id: int,
    street_address: str,
    city_id: int,
    zone_id: int,
    additional_info: Optional[str],
) -> Optional[dict]:
    """Doublon éventuel (rue + ville + zone + complément, NULL égal à NULL)."""
    sql = """
        SELECT id FROM customer_addresses
        WHERE customer_id = :customer_id AND street_address = :street
          AND city_id = :city_id AND zone_id = :zone_id
    """
    params: Dict[str, Any] = {"customer_id": customer_id, "street": street_address, "city_id": city_id, "zone_id": zone_id}
    if additional_info is None:
        sql += " AND additional_info IS NULL"
    else:
        sql += " AND additional_info = :additional_info"
        params["additional_info"] = additional_info
    return first(conn, sql, params)

def insert_customer_address(
    conn: Connection,
    *,
    customer_id: int,
    street_address: str,
    city_id: int,
    zone_id: int,
    additional_info: Optional[str],
) -> int:
    return insert_returning_id(
        conn,
        """
        INSERT INTO customer_addresses (customer_id, street_address, additional_info, city_id, zone_id, is_default)
        VALUES (:customer_id, :street, :additional_info, :city_id, :zone_id, FALSE)
        RETURNING id
        """,
        {
            "customer_id": customer_id,
            "street": street_address,
            "additional_info": additional_info,
            "city_id": city_id,
            "zone_id": zone_id,
        },
    )

# --- Commandes ---

def insert_order(conn: Connection, values: Dict[str, Any]) -> int:
    return insert_returning_id(
        conn,
        """
        INSERT INTO orders (
            customer_id, customer_name, customer_email, customer_phone,
            delivery_address, delivery_additional_info, delivery_city, delivery_zone,
            subtotal, delivery_fee, total, status, payment_status, payment_method,
            promo_code, delivery_time_slot_id, expected_delivery_date
        ) VALUES (
            :customer_id, :customer_name, :customer_email, :customer_phone,
            :delivery_address, :delivery_additional_info, :delivery_city, :delivery_zone,
            :subtotal, :delivery_fee, :total, :status, :payment_status, :payment_method,
            :promo_code, :delivery_time_slot_id, :expected_delivery_date
        )
        RETURNING id
        """,
        values,
    )

def insert_product_instance(conn: Connection, *, product_id: int, product_type: str, size_id: Optional[int]) -> int:
    return insert_returning_id(
        conn,
        """
        INSERT INTO product_instance (product_id, product_type, size_id)
        VALUES (:product_id, :product_type, :size_id)
        RETURNING id
        """,
        {"product_id": product_id, "product_type": product_type, "size_id": size_id},
    )

def insert_product_instance_flavor(conn: Connection, *, instance_id: int, flavor_id: int, size_id: int, quantity: int) -> int:
    return insert_returning_id(
        conn,
        """
        INSERT INTO product_instance_flavor (product_instance_id, flavor_id, size_id, quantity)
        VALUES (:instance_id, :flavor_id, :size_id, :quantity)
        RETURNING id
        """,
        {"instance_id": instance_id, "flavor_id": flavor_id, "size_id": size_id, "quantity": quantity},
    )

def insert_order_item(conn: Connection, values: Dict[str, Any]) -> int:
    return insert_returning_id(
        conn,
        """
        INSERT INTO order_items (
            order_id, product_instance_id, product_name, product_type,
            quantity, unit_price, total_price, flavor_details
        ) VALUES (
            :order_id, :product_instance_id, :product_name, :product_type,
            :quantity, :unit_price, :total_price, :flavor_details
        )
        RETURNING id
        """,
        values,
    )

def set_order_payment_token(conn: Connection, order_id: int, token: str) -> int:
    """Stocke le jeton passerelle, relu plus tard par le webhook de vérification."""
    return execute(
        conn,
        "UPDATE orders SET payment_token = :token WHERE id = :id",
        {"token": token, "id": order_id},
    )
