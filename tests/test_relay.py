import json

import httpx
from fastapi.testclient import TestClient

from outfit_rater.config import RelaySettings
from outfit_rater.relay import RATE_PATH, create_app


def install_async_transport(monkeypatch, handler):
    transport = httpx.MockTransport(handler)

    class MockAsyncClient(httpx.AsyncClient):
        def __init__(self, *args, **kwargs):
            kwargs['transport'] = transport
            super().__init__(*args, **kwargs)

    monkeypatch.setattr(httpx, 'AsyncClient', MockAsyncClient)


def make_settings(**overrides) -> RelaySettings:
    values = {
        'rating_api_key': 'sk-relay-secret',
        'rating_api_url': 'https://rating.local/v1/messages',
        'anthropic_version': '2023-06-01',
    }
    values.update(overrides)
    return RelaySettings(**values)


def test_relay_forwards_body_verbatim_with_credential(monkeypatch):
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen['url'] = str(request.url)
        seen['headers'] = request.headers
        seen['body'] = request.content
        return httpx.Response(200, json={'type': 'message', 'content': [{'type': 'text', 'text': '{"score": 9, "feedback": "wow"}'}]})

    install_async_transport(monkeypatch, handler)
    body = json.dumps({'model': 'claude-test', 'max_tokens': 300, 'messages': [{'role': 'user', 'content': 'hi'}]}).encode()

    with TestClient(create_app(make_settings())) as client:
        response = client.post(RATE_PATH, content=body, headers={'content-type': 'application/json'})

    assert response.status_code == 200
    assert response.json()['content'][0]['text'] == '{"score": 9, "feedback": "wow"}'
    assert seen['url'] == 'https://rating.local/v1/messages'
    assert seen['body'] == body
    assert seen['headers']['x-api-key'] == 'sk-relay-secret'
    assert seen['headers']['anthropic-version'] == '2023-06-01'


def test_relay_returns_upstream_error_unchanged(monkeypatch):
    upstream = {'type': 'error', 'error': {'type': 'authentication_error', 'message': 'invalid x-api-key'}}
    install_async_transport(monkeypatch, lambda request: httpx.Response(401, json=upstream))

    with TestClient(create_app(make_settings())) as client:
        response = client.post(RATE_PATH, json={'model': 'claude-test'})

    assert response.status_code == 401
    assert response.json() == upstream


def test_relay_transport_failure_returns_error_object(monkeypatch):
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError('connection refused', request=request)

    install_async_transport(monkeypatch, handler)

    with TestClient(create_app(make_settings())) as client:
        response = client.post(RATE_PATH, json={'model': 'claude-test'})

    assert response.status_code == 500
    assert response.json() == {'error': 'Failed to rate outfit'}


def test_relay_rejects_oversized_body(monkeypatch):
    def handler(request: httpx.Request) -> httpx.Response:
        raise AssertionError('upstream must not be called')

    install_async_transport(monkeypatch, handler)

    with TestClient(create_app(make_settings(max_body_bytes=16))) as client:
        response = client.post(RATE_PATH, json={'model': 'claude-test', 'padding': 'x' * 64})

    assert response.status_code == 413
    assert 'error' in response.json()


def test_relay_rejects_declared_oversized_body_before_reading(monkeypatch):
    def handler(request: httpx.Request) -> httpx.Response:
        raise AssertionError('upstream must not be called')

    install_async_transport(monkeypatch, handler)

    with TestClient(create_app(make_settings(max_body_bytes=16))) as client:
        response = client.post(
            RATE_PATH,
            content=b'{}',
            headers={'content-type': 'application/json', 'content-length': '1048576'},
        )

    assert response.status_code == 413
    assert response.json() == {'error': 'Request body too large. Max 16 bytes.'}


def test_relay_rejects_oversized_body_without_declared_length(monkeypatch):
    def handler(request: httpx.Request) -> httpx.Response:
        raise AssertionError('upstream must not be called')

    install_async_transport(monkeypatch, handler)

    def chunks():
        yield b'{"padding": "'
        yield b'x' * 64
        yield b'"}'

    with TestClient(create_app(make_settings(max_body_bytes=16))) as client:
        response = client.post(RATE_PATH, content=chunks(), headers={'content-type': 'application/json'})

    assert response.status_code == 413


def test_relay_allows_cross_origin_callers(monkeypatch):
    install_async_transport(monkeypatch, lambda request: httpx.Response(200, json={'content': []}))

    with TestClient(create_app(make_settings())) as client:
        response = client.post(RATE_PATH, json={}, headers={'origin': 'http://localhost:3000'})

    assert response.headers.get('access-control-allow-origin') == '*'


def test_relay_health_does_not_expose_credential():
    with TestClient(create_app(make_settings())) as client:
        response = client.get('/health')

    assert response.status_code == 200
    body = response.json()
    assert body['ok'] is True
    assert body['credential_configured'] is True
    assert 'sk-relay-secret' not in response.text
