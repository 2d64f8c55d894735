"""
Admin tests.

Verifies:
- Status changes follow the state machine; cancel restores stock, refund does not
- Stock adjustments never go negative
- Low-stock report honors the threshold
"""

import pytest

from storefront.errors import InvalidAdjustment, InvalidInput
from storefront.models import MAX_STOCK, AuditLog, Product
from storefront.services import inventory_service

from conftest import add_to_cart, checkout


def set_status(client, headers, order_id, status):
    return client.patch(f'/api/admin/orders/{order_id}/status', json={'status': status}, headers=headers)


@pytest.fixture
def order_of_three(client, customer_headers, product):
    add_to_cart(client, customer_headers, product.id, 3)
    return checkout(client, customer_headers).json['data']['order']


# =============================================================================
# ORDER STATUS
# =============================================================================


class TestOrderStatus:

    def test_cancel_restores_stock(self, client, db_session, admin_headers, product, order_of_three):
        assert db_session.get(Product, product.id).stock == 7

        resp = set_status(client, admin_headers, order_of_three['id'], 'cancelled')

        assert resp.status_code == 200
        assert resp.json['data']['status'] == 'cancelled'
        assert db_session.get(Product, product.id).stock == 10

    def test_cancel_twice_is_invalid(self, client, db_session, admin_headers, product, order_of_three):
        set_status(client, admin_headers, order_of_three['id'], 'cancelled')

        resp = set_status(client, admin_headers, order_of_three['id'], 'cancelled')

        assert resp.status_code == 409
        assert resp.json['error']['code'] == 'INVALID_TRANSITION'
        assert db_session.get(Product, product.id).stock == 10

    def test_full_lifecycle(self, client, admin_headers, order_of_three):
        order_id = order_of_three['id']
        for status in ('paid', 'shipped', 'completed'):
            resp = set_status(client, admin_headers, order_id, status)
            assert resp.status_code == 200, status
            assert resp.json['data']['status'] == status

        assert set_status(client, admin_headers, order_id, 'refunded').status_code == 409

    def test_admin_paid_sets_payment_metadata(self, client, admin_headers, order_of_three):
        resp = set_status(client, admin_headers, order_of_three['id'], 'paid')

        order = resp.json['data']
        assert order['payment_status'] == 'paid'
        assert order['invoice_number'].startswith('INV-20260115-')
        assert order['paid_at'] == '2026-01-15T12:00:00Z'

    def test_refund_keeps_stock(self, client, db_session, admin_headers, product, order_of_three):
        set_status(client, admin_headers, order_of_three['id'], 'paid')

        resp = set_status(client, admin_headers, order_of_three['id'], 'refunded')

        assert resp.json['data']['status'] == 'refunded'
        assert resp.json['data']['payment_status'] == 'refunded'
        assert db_session.get(Product, product.id).stock == 7

    def test_paid_order_cannot_be_cancelled(self, client, admin_headers, order_of_three):
        set_status(client, admin_headers, order_of_three['id'], 'paid')
        resp = set_status(client, admin_headers, order_of_three['id'], 'cancelled')
        assert resp.status_code == 409
        assert resp.json['error']['details']['allowed'] == ['refunded', 'shipped']

    @pytest.mark.parametrize("body", [{}, {'status': ''}, {'status': 'lost'}, {'status': 5}])
    def test_bad_status_body(self, client, admin_headers, order_of_three, body):
        resp = client.patch(f"/api/admin/orders/{order_of_three['id']}/status", json=body, headers=admin_headers)
        assert resp.status_code == 400

    def test_unknown_order(self, client, admin_headers):
        assert set_status(client, admin_headers, 'nope', 'cancelled').status_code == 404

    def test_status_change_is_audited(self, client, db_session, admin, admin_headers, order_of_three):
        set_status(client, admin_headers, order_of_three['id'], 'cancelled')
        entry = db_session.query(AuditLog).filter_by(action='order_status_update').one()
        assert entry.user_id == admin.id
        assert entry.metadata_json == {'order_id': order_of_three['id'], 'status': 'cancelled'}

    def test_admin_lists_all_orders(self, client, admin_headers, other_headers, product, order_of_three):
        add_to_cart(client, other_headers, product.id, 1)
        checkout(client, other_headers)

        resp = client.get('/api/admin/orders', headers=admin_headers)
        assert resp.json['meta']['total'] == 2

        resp = client.get(f"/api/admin/orders/{order_of_three['id']}", headers=admin_headers)
        assert resp.status_code == 200
        assert resp.json['data']['items'][0]['quantity'] == 3


# =============================================================================
# INVENTORY
# =============================================================================


class TestStockAdjustment:

    def test_adjust_sequence(self, client, db_session, admin_headers, product_factory):
        widget = product_factory(name="Widget", stock=5)

        resp = client.patch(f'/api/admin/products/{widget.id}/stock', json={'delta': -3}, headers=admin_headers)
        assert resp.status_code == 200
        assert resp.json['data']['stock'] == 2

        resp = client.patch(f'/api/admin/products/{widget.id}/stock', json={'delta': -10}, headers=admin_headers)
        assert resp.status_code == 409
        assert resp.json['error']['code'] == 'INVALID_ADJUSTMENT'
        assert db_session.get(Product, widget.id).stock == 2

        resp = client.patch(f'/api/admin/products/{widget.id}/stock', json={'delta': 8}, headers=admin_headers)
        assert resp.json['data']['stock'] == 10

    @pytest.mark.parametrize("delta", [0, "3", 1.5, None, True, 2**63, -(2**63), MAX_STOCK + 1])
    def test_invalid_delta(self, client, admin_headers, product, delta):
        resp = client.patch(f'/api/admin/products/{product.id}/stock', json={'delta': delta}, headers=admin_headers)
        assert resp.status_code == 400

    def test_unknown_product(self, client, admin_headers):
        resp = client.patch('/api/admin/products/nope/stock', json={'delta': 1}, headers=admin_headers)
        assert resp.status_code == 404

    def test_service_raises_invalid_adjustment(self, app, product):
        with pytest.raises(InvalidAdjustment):
            inventory_service.adjust_stock(product.id, -11)
        assert inventory_service.adjust_stock(product.id, -10).stock == 0

    def test_adjust_cannot_pass_stock_ceiling(self, client, db_session, admin_headers, product):
        resp = client.patch(f'/api/admin/products/{product.id}/stock', json={'delta': MAX_STOCK}, headers=admin_headers)

        assert resp.status_code == 409
        assert resp.json['error']['code'] == 'INVALID_ADJUSTMENT'
        assert db_session.get(Product, product.id).stock == 10

        resp = client.patch(f'/api/admin/products/{product.id}/stock', json={'delta': MAX_STOCK - 10}, headers=admin_headers)
        assert resp.json['data']['stock'] == MAX_STOCK


class TestLowStock:

    def test_default_threshold(self, client, admin_headers, product_factory):
        product_factory(name="Plenty", stock=50)
        five = product_factory(name="Five", stock=5)
        zero = product_factory(name="Zero", stock=0)

        resp = client.get('/api/admin/inventory/low-stock', headers=admin_headers)

        assert resp.status_code == 200
        assert [p['id'] for p in resp.json['data']['items']] == [zero.id, five.id]
        assert resp.json['meta']['total'] == 2

    def test_explicit_threshold(self, client, admin_headers, product_factory):
        product_factory(name="Five", stock=5)
        zero = product_factory(name="Zero", stock=0)

        resp = client.get('/api/admin/inventory/low-stock?threshold=0', headers=admin_headers)
        assert [p['id'] for p in resp.json['data']['items']] == [zero.id]

    @pytest.mark.parametrize("threshold", ["abc", "-1"])
    def test_bad_threshold(self, client, admin_headers, threshold):
        resp = client.get(f'/api/admin/inventory/low-stock?threshold={threshold}', headers=admin_headers)
        assert resp.status_code == 400

    def test_service_rejects_negative(self, app):
        with pytest.raises(InvalidInput):
            inventory_service.list_low_stock(-1, None)
