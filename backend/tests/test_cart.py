"""
Cart tests.

Verifies:
- add_to_cart replaces the quantity (one line per user/product)
- Quantity and product validation
- Removal, including a repeat removal
- Lines are private to their owner
"""

import pytest

from storefront.models import MAX_STOCK, AuditLog, CartItem
from storefront.services import cart_service
from storefront.errors import InvalidQuantity, NotFound

from conftest import add_to_cart


class TestAddToCart:

    def test_add_creates_line(self, client, customer, customer_headers, product):
        resp = add_to_cart(client, customer_headers, product.id, 2)

        assert resp.status_code == 200
        assert resp.json['data']['product_id'] == product.id
        assert resp.json['data']['quantity'] == 2

    def test_add_again_replaces_quantity(self, client, db_session, customer, customer_headers, product):
        add_to_cart(client, customer_headers, product.id, 2)
        add_to_cart(client, customer_headers, product.id, 5)
        add_to_cart(client, customer_headers, product.id, 5)

        lines = db_session.query(CartItem).filter_by(user_id=customer.id).all()
        assert len(lines) == 1
        assert lines[0].quantity == 5

    @pytest.mark.parametrize("quantity", [0, -1, 1.5, "2", True, None, MAX_STOCK + 1, 2**63])
    def test_invalid_quantity(self, client, db_session, customer_headers, product, quantity):
        resp = add_to_cart(client, customer_headers, product.id, quantity)

        assert resp.status_code == 400
        assert resp.json['error']['code'] == 'INVALID_QUANTITY'
        assert db_session.query(CartItem).count() == 0

    def test_unknown_product(self, client, customer_headers, db_session):
        resp = add_to_cart(client, customer_headers, 'no-such-product', 1)
        assert resp.status_code == 404
        assert resp.json['error']['code'] == 'NOT_FOUND'

    def test_deleted_user_with_live_token(self, client, db_session, customer, customer_headers, product):
        db_session.delete(customer)
        db_session.commit()

        resp = add_to_cart(client, customer_headers, product.id, 1)

        assert resp.status_code == 404
        assert resp.json['error']['code'] == 'NOT_FOUND'
        assert resp.json['message'] == 'User not found'
        assert db_session.query(CartItem).count() == 0

    def test_max_quantity_is_accepted(self, client, db_session, customer_headers, product):
        resp = add_to_cart(client, customer_headers, product.id, MAX_STOCK)
        assert resp.status_code == 200
        assert db_session.query(CartItem).one().quantity == MAX_STOCK

    def test_quantity_above_stock_is_allowed_until_checkout(self, client, customer_headers, product_factory):
        scarce = product_factory(name="Scarce", stock=1)
        resp = add_to_cart(client, customer_headers, scarce.id, 3)
        assert resp.status_code == 200

    def test_add_writes_audit_row(self, client, db_session, customer, customer_headers, product):
        add_to_cart(client, customer_headers, product.id, 2)
        entry = db_session.query(AuditLog).filter_by(action='cart_update').one()
        assert entry.user_id == customer.id
        assert entry.metadata_json == {'product_id': product.id, 'quantity': 2}


class TestListAndRemove:

    def test_list_includes_product_snapshot(self, client, customer_headers, product):
        add_to_cart(client, customer_headers, product.id, 3)

        resp = client.get('/api/cart', headers=customer_headers)

        assert resp.status_code == 200
        items = resp.json['data']['items']
        assert len(items) == 1
        assert items[0]['product']['name'] == 'Product A'
        assert resp.json['meta'] == {'page': 1, 'per_page': 20, 'total': 1}

    def test_cart_is_private(self, client, customer_headers, other_headers, product):
        add_to_cart(client, customer_headers, product.id, 1)

        resp = client.get('/api/cart', headers=other_headers)
        assert resp.json['data']['items'] == []

        resp = client.delete(f'/api/cart/{product.id}', headers=other_headers)
        assert resp.status_code == 404

    def test_remove_then_remove_again(self, client, db_session, customer_headers, product):
        add_to_cart(client, customer_headers, product.id, 1)

        first = client.delete(f'/api/cart/{product.id}', headers=customer_headers)
        second = client.delete(f'/api/cart/{product.id}', headers=customer_headers)

        assert first.status_code == 200
        assert second.status_code == 404
        assert db_session.query(CartItem).count() == 0


class TestCartService:

    def test_validate_quantity(self, app):
        assert cart_service.validate_quantity(3) == 3
        with pytest.raises(InvalidQuantity):
            cart_service.validate_quantity(0)
        with pytest.raises(InvalidQuantity):
            cart_service.validate_quantity(MAX_STOCK + 1)

    def test_clear_cart_only_touches_owner(self, app, db_session, customer, other_customer, product):
        cart_service.add_to_cart(customer.id, product.id, 1)
        cart_service.add_to_cart(other_customer.id, product.id, 2)

        assert cart_service.clear_cart(customer.id) == 1
        db_session.commit()

        assert cart_service.get_cart_lines(customer.id) == []
        assert [line.quantity for line in cart_service.get_cart_lines(other_customer.id)] == [2]

    def test_remove_missing_line(self, app, customer, product):
        with pytest.raises(NotFound):
            cart_service.remove_from_cart(customer.id, product.id)
