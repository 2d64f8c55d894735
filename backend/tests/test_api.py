"""
Cross-cutting API behavior: envelope, request ids, CORS, health and the
inbound concurrency cap.
"""

import logging

import pytest

from storefront import create_app
from storefront.config import TestingConfig
from storefront.errors import ServiceUnavailable
from storefront.extensions import db
from storefront.logging_config import RequestIdFilter
from storefront.response import Pagination
from storefront.services.concurrency import RequestLimiter


class TestEnvelope:

    def test_success_envelope(self, client, db_session):
        body = client.get('/api/products').json
        assert set(body) == {'message', 'data', 'meta'}

    def test_error_envelope_carries_request_id(self, client, db_session):
        resp = client.get('/api/products/nope', headers={'X-Request-ID': 'req-123'})

        assert resp.status_code == 404
        assert resp.headers['X-Request-ID'] == 'req-123'
        assert resp.json == {
            'message': 'Product not found',
            'data': None,
            'error': {'code': 'NOT_FOUND', 'details': {}},
            'request_id': 'req-123',
        }

    def test_request_id_generated(self, client, db_session):
        resp = client.get('/api/products')
        assert len(resp.headers['X-Request-ID']) == 32

    def test_unknown_route_uses_envelope(self, client):
        resp = client.get('/api/nothing-here')
        assert resp.status_code == 404
        assert resp.json['error']['code'] == 'NOT_FOUND'
        assert resp.json['data'] is None

    def test_wrong_method_uses_envelope(self, client):
        resp = client.put('/api/products')
        assert resp.status_code == 405
        assert resp.json['error']['code'] == 'METHOD_NOT_ALLOWED'


class TestCors:

    def test_allowed_origin(self, client, db_session):
        resp = client.get('/api/products', headers={'Origin': 'http://localhost:5173'})
        assert resp.headers['Access-Control-Allow-Origin'] == 'http://localhost:5173'

    def test_unknown_origin(self, client, db_session):
        resp = client.get('/api/products', headers={'Origin': 'http://evil.example'})
        assert 'Access-Control-Allow-Origin' not in resp.headers


class TestHealth:

    def test_health(self, client, db_session):
        resp = client.get('/health')
        assert resp.status_code == 200
        assert resp.json['data']['status'] == 'ok'
        assert resp.json['data']['checks']['database']['status'] == 'healthy'
        assert resp.json['data']['time'] == '2026-01-15T12:00:00Z'


class TestConcurrencyCap:

    def test_limiter_times_out(self):
        limiter = RequestLimiter(max_inflight=1, timeout=0.01)
        limiter.acquire()
        with pytest.raises(ServiceUnavailable):
            limiter.acquire()
        limiter.release()
        limiter.acquire()

    def test_full_server_returns_503(self):
        app = create_app(
            {'MAX_INFLIGHT_REQUESTS': 1, 'INFLIGHT_ACQUIRE_TIMEOUT_SECONDS': 0.01},
            config_object=TestingConfig,
        )
        with app.app_context():
            db.create_all()
        client = app.test_client()
        limiter = app.extensions['request_limiter']

        limiter.acquire()
        try:
            resp = client.get('/api/products')
            assert resp.status_code == 503
            assert resp.json['error']['code'] == 'SERVICE_UNAVAILABLE'

            assert client.get('/health').status_code == 200
        finally:
            limiter.release()

        assert client.get('/api/products').status_code == 200

    def test_slot_released_after_each_request(self):
        app = create_app({'MAX_INFLIGHT_REQUESTS': 1, 'INFLIGHT_ACQUIRE_TIMEOUT_SECONDS': 0.01}, config_object=TestingConfig)
        with app.app_context():
            db.create_all()
        client = app.test_client()

        statuses = [client.get('/api/products/nope').status_code for _ in range(5)]
        assert statuses == [404] * 5


def test_request_id_filter_outside_request():
    record = logging.LogRecord('storefront', logging.INFO, __file__, 1, 'msg', None, None)
    assert RequestIdFilter().filter(record)
    assert record.request_id == '-'


def test_pagination_offset():
    assert Pagination(page=3, per_page=20).offset == 40
    assert Pagination(page=1, per_page=5).meta(7) == {'page': 1, 'per_page': 5, 'total': 7}
