"""Cart, checkout and customer order history."""

from decimal import Decimal
from pathlib import Path

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import select
from sqlalchemy.orm import sessionmaker

from shop.core.config import settings
from shop.db import session as db_session
from shop.db.base import Base
from shop.db.session import build_engine
from shop.main import app
from shop.models import CartItem, Order, Product, ProductTranslation


def _setup_db(tmp_path: Path, monkeypatch) -> sessionmaker:
    engine = build_engine(f"sqlite:///{tmp_path / 'cart.db'}")
    session_local = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    Base.metadata.create_all(bind=engine)
    monkeypatch.setattr(db_session, "engine", engine)
    monkeypatch.setattr(db_session, "SessionLocal", session_local)
    monkeypatch.setattr("shop.main.engine", engine)
    monkeypatch.setattr("shop.main.SessionLocal", session_local)
    monkeypatch.setattr(settings, "media_root", str(tmp_path / "media"))
    return session_local


def _create_product(session_local: sessionmaker, price: str, name: str, zh_name: str | None = None) -> int:
    with session_local() as db:
        product = Product(price=Decimal(price))
        product.translations.append(ProductTranslation(language="en", name=name, description=f"{name}!"))
        if zh_name:
            product.translations.append(ProductTranslation(language="zh", name=zh_name, description=""))
        db.add(product)
        db.commit()
        return product.id


def _register(client: TestClient, email: str) -> dict[str, str]:
    response = client.post("/api/auth/register", json={"email": email, "password": "password123"})
    assert response.status_code == 201
    return {"Authorization": f"Bearer {response.json()['token']}"}


def test_register_login_add_to_cart_line_total(tmp_path: Path, monkeypatch) -> None:
    session_local = _setup_db(tmp_path, monkeypatch)
    product_id = _create_product(session_local, "19.99", "Mug")

    with TestClient(app) as client:
        client.post("/api/auth/register", json={"email": "a@x.com", "password": "password123"})
        login = client.post("/api/auth/login", json={"email": "a@x.com", "password": "password123"})
        headers = {"Authorization": f"Bearer {login.json()['token']}"}
        added = client.post("/api/cart/items", json={"productId": product_id, "quantity": 2}, headers=headers)
        cart = client.get("/api/cart", headers=headers)

    assert added.status_code == 200
    items = cart.json()["items"]
    assert len(items) == 1
    assert items[0]["productId"] == product_id
    assert items[0]["quantity"] == 2
    assert items[0]["lineTotal"] == pytest.approx(2 * 19.99)
    assert cart.json()["totalAmount"] == pytest.approx(39.98)
    assert cart.json()["totalQuantity"] == 2


def test_adding_same_product_merges_quantity(tmp_path: Path, monkeypatch) -> None:
    session_local = _setup_db(tmp_path, monkeypatch)
    product_id = _create_product(session_local, "5.00", "Spoon", zh_name="勺子")

    with TestClient(app) as client:
        headers = _register(client, "merge@x.com")
        client.post("/api/cart/items", json={"productId": product_id}, headers=headers)
        merged = client.post(
            "/api/cart/items", params={"lang": "zh"}, json={"productId": product_id, "quantity": 3}, headers=headers
        )
        unknown = client.post("/api/cart/items", json={"productId": 999, "quantity": 1}, headers=headers)
        zero = client.post("/api/cart/items", json={"productId": product_id, "quantity": 0}, headers=headers)

    assert merged.json()["items"][0]["quantity"] == 4
    assert merged.json()["items"][0]["name"] == "勺子"
    assert unknown.status_code == 404
    assert zero.status_code == 400

    with session_local() as db:
        assert len(db.scalars(select(CartItem)).all()) == 1


def test_cart_items_are_private_to_their_owner(tmp_path: Path, monkeypatch) -> None:
    session_local = _setup_db(tmp_path, monkeypatch)
    product_id = _create_product(session_local, "3.00", "Fork")

    with TestClient(app) as client:
        owner = _register(client, "owner@x.com")
        intruder = _register(client, "intruder@x.com")
        item_id = client.post("/api/cart/items", json={"productId": product_id}, headers=owner).json()["items"][0]["id"]

        foreign_update = client.put(f"/api/cart/items/{item_id}", json={"quantity": 9}, headers=intruder)
        foreign_delete = client.delete(f"/api/cart/items/{item_id}", headers=intruder)
        own_update = client.put(f"/api/cart/items/{item_id}", json={"quantity": 5}, headers=owner)
        after_update = client.get("/api/cart", headers=owner).json()
        own_delete = client.delete(f"/api/cart/items/{item_id}", headers=owner)
        after_delete = client.get("/api/cart", headers=owner).json()

    assert foreign_update.status_code == 404
    assert foreign_update.json()["code"] == "not_found_or_unauthorized"
    assert foreign_delete.status_code == 404
    assert own_update.status_code == 200
    assert after_update["items"][0]["quantity"] == 5
    assert own_delete.status_code == 200
    assert after_delete["items"] == []


def test_checkout_uses_stored_cart_and_ignores_client_items(tmp_path: Path, monkeypatch) -> None:
    session_local = _setup_db(tmp_path, monkeypatch)
    mug = _create_product(session_local, "10.00", "Mug")
    cheap = _create_product(session_local, "0.01", "Sticker")

    with TestClient(app) as client:
        headers = _register(client, "buyer@x.com")
        client.post("/api/cart/items", json={"productId": mug, "quantity": 3}, headers=headers)
        checkout = client.post(
            "/api/cart/checkout",
            json={"items": [{"productId": cheap, "quantity": 100, "price": 0}], "totalAmount": 0},
            headers=headers,
        )
        cart_after = client.get("/api/cart", headers=headers).json()
        orders = client.get("/api/orders", headers=headers).json()
        detail = client.get(f"/api/orders/{checkout.json()['orderId']}", headers=headers)

    assert checkout.status_code == 201
    assert checkout.json()["success"] is True
    assert checkout.json()["totalAmount"] == pytest.approx(30.0)
    assert cart_after["items"] == []
    assert orders["pagination"]["total"] == 1
    assert detail.json()["status"] == "pending"
    assert detail.json()["items"] == [
        {
            "id": detail.json()["items"][0]["id"],
            "productId": mug,
            "productName": "Mug",
            "quantity": 3,
            "pricePerItem": 10.0,
            "subtotal": 30.0,
        }
    ]

    with session_local() as db:
        order = db.scalar(select(Order))
        assert order.total_amount == Decimal("30.00")
        assert [item.product_id for item in order.items] == [mug]


def test_order_keeps_price_snapshot_after_price_change(tmp_path: Path, monkeypatch) -> None:
    session_local = _setup_db(tmp_path, monkeypatch)
    product_id = _create_product(session_local, "4.00", "Plate")

    with TestClient(app) as client:
        headers = _register(client, "snap@x.com")
        client.post("/api/cart/items", json={"productId": product_id, "quantity": 2}, headers=headers)
        order_id = client.post("/api/cart/checkout", headers=headers).json()["orderId"]

        with session_local() as db:
            db.get(Product, product_id).price = Decimal("99.00")
            db.commit()

        detail = client.get(f"/api/orders/{order_id}", headers=headers).json()

    assert detail["totalAmount"] == pytest.approx(8.0)
    assert detail["items"][0]["pricePerItem"] == pytest.approx(4.0)


def test_checkout_empty_cart_and_foreign_order(tmp_path: Path, monkeypatch) -> None:
    session_local = _setup_db(tmp_path, monkeypatch)
    product_id = _create_product(session_local, "2.00", "Cup")

    with TestClient(app) as client:
        buyer = _register(client, "empty@x.com")
        other = _register(client, "other@x.com")
        empty = client.post("/api/cart/checkout", headers=buyer)
        client.post("/api/cart/items", json={"productId": product_id}, headers=buyer)
        order_id = client.post("/api/cart/checkout", headers=buyer).json()["orderId"]
        foreign = client.get(f"/api/orders/{order_id}", headers=other)
        anonymous = client.post("/api/cart/checkout")

    assert empty.status_code == 400
    assert empty.json() == {"error": "Cart is empty", "code": "validation_error"}
    assert foreign.status_code == 404
    assert foreign.json()["code"] == "not_found_or_unauthorized"
    assert anonymous.status_code == 401


def test_checkout_snapshots_owned_address(tmp_path: Path, monkeypatch) -> None:
    session_local = _setup_db(tmp_path, monkeypatch)
    product_id = _create_product(session_local, "7.00", "Bowl")
    address = {
        "title": "Home",
        "recipientName": "Lin",
        "recipientPhone": "555-0100",
        "country": "CN",
        "province": "Zhejiang",
        "city": "Hangzhou",
        "streetAddress": "1 West Lake Rd",
    }

    with TestClient(app) as client:
        buyer = _register(client, "addr@x.com")
        other = _register(client, "nosy@x.com")
        address_id = client.post("/api/addresses", json=address, headers=buyer).json()["id"]
        client.post("/api/cart/items", json={"productId": product_id}, headers=buyer)
        client.post("/api/cart/items", json={"productId": product_id}, headers=other)
        foreign = client.post("/api/cart/checkout", json={"addressId": address_id}, headers=other)
        order_id = client.post("/api/cart/checkout", json={"addressId": address_id}, headers=buyer).json()["orderId"]
        client.put(f"/api/addresses/{address_id}", json={"city": "Shanghai"}, headers=buyer)
        detail = client.get(f"/api/orders/{order_id}", headers=buyer).json()

    assert foreign.status_code == 404
    assert foreign.json()["code"] == "not_found_or_unauthorized"
    assert detail["shippingAddress"]["city"] == "Hangzhou"
    assert detail["shippingAddress"]["recipientName"] == "Lin"


def test_clear_cart(tmp_path: Path, monkeypatch) -> None:
    session_local = _setup_db(tmp_path, monkeypatch)
    product_id = _create_product(session_local, "1.50", "Napkin")

    with TestClient(app) as client:
        headers = _register(client, "clear@x.com")
        client.post("/api/cart/items", json={"productId": product_id, "quantity": 4}, headers=headers)
        cleared = client.delete("/api/cart", headers=headers)
        cart = client.get("/api/cart", headers=headers).json()

    assert cleared.status_code == 200
    assert cart["items"] == []
    assert cart["totalAmount"] == 0
