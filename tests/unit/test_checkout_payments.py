import pytest

from bakery.infra import database, paymob_client
from bakery.checkout.commit import commit_order
from bakery.checkout.customers import resolve_customer_and_address
from bakery.checkout.errors import PaymentGatewayError, ValidationError
from bakery.checkout.models import OrderExtras
from bakery.checkout.payments import dispatch_payment
from bakery.checkout.schemas import CheckoutSelection
from bakery.checkout.snapshot import build_snapshot

GUEST = {
    "name": "Mona Hassan",
    "email": "mona@example.com",
    "phone": "01100000000",
    "address": "3 Tahrir Square",
    "city": "Cairo",
    "zone": 12,
}

@pytest.fixture
def committed(db):
    db.add_cart_item(1, 1, 2)

    def _run(method):
        with database.transaction() as conn:
            snapshot = build_snapshot(conn, 1)
            resolved = resolve_customer_and_address(conn, session_user=None, request=CheckoutSelection(guestData=GUEST))
            order = commit_order(conn, cart_id=1, snapshot=snapshot, resolved=resolved, payment_method=method, extras=OrderExtras())
        return order, snapshot, resolved
    return _run

def test_cod_sends_confirmation(committed, sent_emails):
    order, snapshot, resolved = committed("cod")

    result = dispatch_payment(order=order, snapshot=snapshot, resolved=resolved, payment_method="cod")

    assert result == {"orderId": order.order_id}
    assert sent_emails[0]["to"] == "mona@example.com"
    assert sent_emails[0]["order_id"] == order.order_id
    assert sent_emails[0]["total"] == 130.0

def test_cod_email_failure_is_not_fatal(committed, monkeypatch):
    order, snapshot, resolved = committed("cod")

    def _smtp_down(*args, **kwargs):
        raise OSError("connection refused")
    monkeypatch.setattr("bakery.infra.mailer.send_order_confirmation_email", _smtp_down)

    assert dispatch_payment(order=order, snapshot=snapshot, resolved=resolved, payment_method="cod") == {"orderId": order.order_id}

def test_paymob_stores_token_and_returns_url(committed, fake_paymob, db):
    order, snapshot, resolved = committed("paymob")

    result = dispatch_payment(order=order, snapshot=snapshot, resolved=resolved, payment_method="paymob")

    assert result["orderId"] == order.order_id
    assert result["paymentToken"] == "pay-token-123"
    assert "payment_token=pay-token-123" in result["paymentUrl"]
    assert result["paymentUrl"].endswith(f"&order_id={order.order_id}")
    assert db.scalar("SELECT payment_token FROM orders WHERE id = :id", {"id": order.order_id}) == "pay-token-123"

    created = fake_paymob["create_order"]
    assert created["merchant_order_id"] == str(order.order_id)
    assert created["amount"] == order.total
    # ligne produit + frais de livraison
    assert [i["name"] for i in created["items"]] == ["Classic Box", "Livraison"]
    billing = fake_paymob["payment_key"]["billing"]
    assert billing["first_name"] == "Mona"
    assert billing["floor"] == "NA"

def test_paymob_failure_leaves_order_pending_without_token(committed, monkeypatch, db):
    order, snapshot, resolved = committed("paymob")
    monkeypatch.setattr(paymob_client, "get_auth_token", lambda: "auth")

    def _down(**kwargs):
        raise paymob_client.PaymobError("Paymob /ecommerce/orders a répondu 503")
    monkeypatch.setattr(paymob_client, "create_order", _down)

    with pytest.raises(PaymentGatewayError) as exc:
        dispatch_payment(order=order, snapshot=snapshot, resolved=resolved, payment_method="paymob")

    assert exc.value.status_code == 500
    row = db.query("SELECT status, payment_token FROM orders WHERE id = :id", {"id": order.order_id})[0]
    assert row == {"status": "pending", "payment_token": None}

def test_unknown_method(committed):
    order, snapshot, resolved = committed("cod")
    with pytest.raises(ValidationError):
        dispatch_payment(order=order, snapshot=snapshot, resolved=resolved, payment_method="cheque")
