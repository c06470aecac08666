import os

# Avant tout import applicatif: pas de Redis, pas d'email, base en mémoire
os.environ.setdefault("DISABLE_FASTAPI_LIMITER_INIT_FOR_TESTS", "1")
os.environ.setdefault("EMAIL_ENABLED", "0")
os.environ.setdefault("DATABASE_URL", "sqlite://")

from pathlib import Path
from typing import Any, Dict, Generator, Iterable, Optional, Tuple

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.pool import StaticPool

from bakery.infra import database
from bakery.checkout.availability import clear_order_mode_cache
from bakery.utils.security import get_optional_user

SCHEMA_PATH = Path(__file__).parent / "schema.sql"

# Marquage automatique selon le dossier
def pytest_collection_modifyitems(config, items):
    for item in items:
        nodeid = item.nodeid.replace("\\", "/")
        if "tests/unit/" in nodeid:
            item.add_marker(pytest.mark.unit)
        elif "tests/integration/" in nodeid:
            item.add_marker(pytest.mark.integration)
        elif "tests/functional/" in nodeid:
            item.add_marker(pytest.mark.functional)

@pytest.fixture(autouse=True)
def engine():
    """Base SQLite en mémoire, neuve pour chaque test, installée comme engine global."""
    eng = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
        future=True,
    )
    raw = eng.raw_connection()
    try:
        raw.executescript(SCHEMA_PATH.read_text(encoding="utf-8"))
        raw.commit()
    finally:
        raw.close()
    database.set_engine(eng)
    clear_order_mode_cache()
    try:
        yield eng
    finally:
        database.set_engine(None)
        clear_order_mode_cache()
        eng.dispose()

def q(sql: str, params: Optional[Dict[str, Any]] = None):
    return database.query(sql, params)

def scalar(sql: str, params: Optional[Dict[str, Any]] = None):
    found = database.query(sql, params)
    return list(found[0].values())[0] if found else None

@pytest.fixture
def seed(engine) -> Dict[str, int]:
    """
    Catalogue minimal:
    - ville Cairo, zones 12 (Maadi, 30.00) et 13 (Zamalek, 45.00)
    - clients enregistrés sara (adresse 1) et omar (adresse 2)
    - produit simple 'Classic Box' (50.00, stock 10) et pack 'Large Pack' (Large, 20.00)
    - parfums Chocolate Chip (large 25.00, stock large 4) et Red Velvet (large 30.00, stock large 5)
    - panier actif 1
    """
    q("INSERT INTO cities (id, name) VALUES (1, 'Cairo')")
    q("INSERT INTO zones (id, city_id, name, delivery_fee) VALUES (12, 1, 'Maadi', 30.00), (13, 1, 'Zamalek', 45.00)")
    q(
        "INSERT INTO customers (id, first_name, last_name, email, phone, password, type) VALUES "
        "(1, 'Sara', 'Ali', 'sara@example.com', '01000000001', 'hash', 'registered'), "
        "(2, 'Omar', 'Nabil', 'omar@example.com', '01000000002', 'hash', 'registered')"
    )
    q(
        "INSERT INTO customer_addresses (id, customer_id, city_id, zone_id, street_address, additional_info, is_default) VALUES "
        "(1, 1, 1, 12, '10 Road 9', 'Floor 2', TRUE), "
        "(2, 2, 1, 13, '5 Nile Street', NULL, TRUE)"
    )
    q(
        "INSERT INTO products (id, name, base_price, is_pack, count, flavor_size, stock_quantity, image_url) VALUES "
        "(1, 'Classic Box', 50.00, FALSE, 1, 'Mini', 10, '/img/classic.png'), "
        "(2, 'Large Pack', 20.00, TRUE, 5, 'Large', 0, '/img/pack.png')"
    )
    q(
        "INSERT INTO flavors (id, name, mini_price, medium_price, large_price, "
        "stock_quantity_mini, stock_quantity_medium, stock_quantity_large) VALUES "
        "(1, 'Chocolate Chip', 10.00, 15.00, 25.00, 50, 50, 4), "
        "(2, 'Red Velvet', 12.00, 18.00, 30.00, 50, 50, 5)"
    )
    q("INSERT INTO carts (id, session_id, status) VALUES (1, 'sess-1', 'active')")
    return {"cart_id": 1, "single_id": 1, "pack_id": 2, "choc_id": 1, "velvet_id": 2, "zone_id": 12}

def add_cart_item(cart_id: int, product_id: int, quantity: int, flavors: Iterable[Tuple[int, int]] = ()) -> int:
    """Ajoute une ligne au panier; flavors: [(flavor_id, quantité totale de la ligne)]."""
    flavors = list(flavors)
    rows = q(
        "INSERT INTO cart_items (cart_id, product_id, quantity, is_pack) VALUES (:c, :p, :q, :pack) RETURNING id",
        {"c": cart_id, "p": product_id, "q": quantity, "pack": bool(flavors)},
    )
    item_id = rows[0]["id"]
    for flavor_id, qty in flavors:
        q(
            "INSERT INTO cart_item_flavors (cart_item_id, flavor_id, quantity, size) VALUES (:i, :f, :q, 'Large')",
            {"i": item_id, "f": flavor_id, "q": qty},
        )
    return item_id

@pytest.fixture
def app():
    from bakery.app import app as fastapi_app
    return fastapi_app

@pytest.fixture()
def client(app) -> Generator[TestClient, None, None]:
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()

@pytest.fixture
def as_user(app):
    """Simule une session Supabase: as_user("sara@example.com")."""
    def _login(email: str) -> Dict[str, Any]:
        user = {"id": f"uid-{email}", "email": email, "metadata": {}, "token": "fake-token"}
        app.dependency_overrides[get_optional_user] = lambda: user
        return user
    yield _login
    app.dependency_overrides.pop(get_optional_user, None)

@pytest.fixture(autouse=True)
def sent_emails(monkeypatch):
    sent = []
    def _fake_send(to_email, **order):
        sent.append({"to": to_email, **order})
        return True
    monkeypatch.setattr("bakery.infra.mailer.send_order_confirmation_email", _fake_send)
    return sent

@pytest.fixture
def fake_paymob(monkeypatch):
    """Passerelle Paymob simulée; calls enregistre les appels pour vérification."""
    calls: Dict[str, Any] = {}

    def _auth():
        calls["auth"] = True
        return "auth-token"

    def _create_order(**kwargs):
        calls["create_order"] = kwargs
        return {"id": 987654}

    def _payment_key(**kwargs):
        calls["payment_key"] = kwargs
        return "pay-token-123"

    monkeypatch.setattr("bakery.infra.paymob_client.get_auth_token", _auth)
    monkeypatch.setattr("bakery.infra.paymob_client.create_order", _create_order)
    monkeypatch.setattr("bakery.infra.paymob_client.generate_payment_key", _payment_key)
    return calls

class _Db:
    """Accès direct à la base de test pour préparer et vérifier les scénarios."""
    query = staticmethod(q)
    scalar = staticmethod(scalar)
    add_cart_item = staticmethod(add_cart_item)

    def stock(self, product_id: int) -> int:
        return scalar("SELECT stock_quantity FROM products WHERE id = :id", {"id": product_id})

    def flavor_stock(self, flavor_id: int, column: str = "stock_quantity_large") -> int:
        return scalar(f"SELECT {column} FROM flavors WHERE id = :id", {"id": flavor_id})

    def count(self, table: str, where: str = "1=1", params: Optional[Dict[str, Any]] = None) -> int:
        return scalar(f"SELECT COUNT(*) AS n FROM {table} WHERE {where}", params)

@pytest.fixture
def db(seed) -> _Db:
    return _Db()
