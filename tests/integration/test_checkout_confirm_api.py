GUEST = {
    "name": "Mona Hassan",
    "email": "mona@example.com",
    "phone": "01100000000",
    "address": "3 Tahrir Square",
    "city": "Cairo",
    "zone": "12",
}

def test_confirm_guest_returns_priced_preview(client, db):
    db.add_cart_item(1, 1, 2)
    db.add_cart_item(1, 2, 1, flavors=[(1, 3), (2, 2)])

    r = client.post("/api/checkout/confirm", json={"cartId": 1, "guestData": GUEST})

    assert r.status_code == 200, r.text
    body = r.json()
    assert body["success"] is True
    cart = body["data"]["cart"]
    assert cart["subtotal"] == 255.0
    assert cart["deliveryFee"] == 30.0
    assert cart["total"] == 285.0
    assert cart["itemCount"] == 3
    assert body["data"]["deliveryAddress"]["zone_name"] == "Maadi"
    assert body["data"]["customerInfo"] == {"name": "Mona Hassan", "email": "mona@example.com", "phone": "01100000000"}
    assert r.headers["Cache-Control"] == "no-store"
    # aperçu: aucune écriture
    assert db.count("orders") == 0
    assert db.count("customers") == 2

def test_confirm_reads_cart_from_cookie(client, db):
    db.add_cart_item(1, 1, 1)
    client.cookies.set("cart_id", "1")

    r = client.post("/api/checkout/confirm", json={"guestData": GUEST})

    assert r.status_code == 200
    assert r.json()["data"]["cart"]["items"][0]["name"] == "Classic Box"

def test_confirm_without_cart(client, db):
    r = client.post("/api/checkout/confirm", json={"guestData": GUEST})
    assert r.status_code == 400
    assert r.json() == {"success": False, "message": "Panier introuvable", "error": "Panier introuvable"}

def test_confirm_empty_cart(client, db):
    r = client.post("/api/checkout/confirm", json={"cartId": 1, "guestData": GUEST})
    assert r.status_code == 400
    assert r.json()["message"] == "Le panier est vide"

def test_confirm_out_of_stock_lists_items(client, db):
    db.query("UPDATE flavors SET stock_quantity_large = 2 WHERE id = 1")
    db.add_cart_item(1, 2, 1, flavors=[(1, 3), (2, 2)])

    r = client.post("/api/checkout/confirm", json={"cartId": 1, "guestData": GUEST})

    assert r.status_code == 400
    body = r.json()
    assert body["success"] is False
    assert body["outOfStockItems"] == [{
        "type": "flavor", "id": 1, "name": "Chocolate Chip",
        "requestedQuantity": 3, "availableQuantity": 2, "allowsOutOfStock": False,
    }]
    assert "Chocolate Chip" in body["error"]

def test_confirm_guest_bad_zone(client, db):
    db.add_cart_item(1, 1, 1)
    r = client.post("/api/checkout/confirm", json={"cartId": 1, "guestData": {**GUEST, "zone": "abc"}})
    assert r.status_code == 400
    assert r.json()["success"] is False

def test_confirm_registered_saved_address(client, db, as_user):
    db.add_cart_item(1, 1, 1)
    as_user("sara@example.com")

    r = client.post("/api/checkout/confirm", json={"cartId": 1, "selectedAddressId": 1})

    assert r.status_code == 200
    assert r.json()["data"]["deliveryAddress"]["street_address"] == "10 Road 9"

def test_confirm_foreign_address_is_404(client, db, as_user):
    db.add_cart_item(1, 1, 1)
    as_user("sara@example.com")

    r = client.post("/api/checkout/confirm", json={"cartId": 1, "selectedAddressId": 2})

    assert r.status_code == 404

def test_confirm_past_delivery_date(client, db):
    db.add_cart_item(1, 1, 1)
    r = client.post("/api/checkout/confirm", json={"cartId": 1, "guestData": GUEST, "expectedDeliveryDate": "2000-01-01"})
    assert r.status_code == 400

def test_confirm_unicode_digit_zone_is_400(client, db):
    db.add_cart_item(1, 1, 1)

    r = client.post("/api/checkout/confirm", json={"cartId": 1, "guestData": {**GUEST, "zone": "²"}})

    assert r.status_code == 400
    assert r.json()["success"] is False

def test_confirm_unicode_digit_cart_cookie_is_ignored(client, db):
    db.add_cart_item(1, 1, 1)
    client.cookies.set("cart_id", "²")

    r = client.post("/api/checkout/confirm", json={"guestData": GUEST})

    assert r.status_code == 400
    assert r.json()["message"] == "Panier introuvable"

def test_confirm_guest_city_outside_zone_is_400(client, db):
    db.add_cart_item(1, 1, 1)

    r = client.post("/api/checkout/confirm", json={"cartId": 1, "guestData": {**GUEST, "city": "Alexandria"}})

    assert r.status_code == 400
    assert r.json()["message"] == "La zone n'appartient pas à la ville choisie"
