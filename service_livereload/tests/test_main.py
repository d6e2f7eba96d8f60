"""
Unit tests for the live-reload service.
"""

import asyncio
import pytest
import httpx
from fastapi.testclient import TestClient

import sys
import os
sys.path.append(os.path.join(os.path.dirname(__file__), '..', '..'))

from service_livereload.app.main import LiveReloadService, create_app
from service_livereload.app.sse.framing import RELOAD_MESSAGE
from shared.config import get_config
from shared.test_helpers import ASGIStreamClient, NonFlushableWriter, RecordingChannel, wait_until


INDEX_HTML = "<html><head><title>t</title></head><body>hi</body></html>"


@pytest.fixture
def site(tmp_path):
    """Directory with a page and a stylesheet."""
    (tmp_path / "index.html").write_text(INDEX_HTML)
    (tmp_path / "style.css").write_text("body { color: red; }")
    return tmp_path


@pytest.fixture
def config(site):
    """Service configuration pointing at the test site."""
    return get_config(root_dir=str(site), port=3000)


@pytest.fixture
def service(config):
    """Create LiveReloadService instance."""
    return LiveReloadService(config)


@pytest.fixture
def client(service):
    """Create test client."""
    return TestClient(service.app)


class TestLiveReloadService:
    """Test cases for LiveReloadService."""

    def test_service_initialization(self, service):
        """Test service initialization."""
        assert service.name == "livereload"
        assert service.port == 3000
        assert service.broker is not None
        assert service.subscription_handler.broker is service.broker
        assert len(service.broker) == 0

    def test_create_app(self, config):
        """Test the app factory exposes the service on app state."""
        app = create_app(config)
        assert isinstance(app.state.livereload_service, LiveReloadService)

    def test_health_endpoint(self, client):
        """Test health endpoint."""
        response = client.get("/_livereload/health")
        assert response.status_code == 200
        data = response.json()
        assert data["service"] == "livereload"
        assert data["status"] == "ok"
        assert data["dependencies"]["root_dir"] == "ok"
        assert data["dependencies"]["subscribers"] == 0

    def test_stats_endpoint(self, client, site):
        """Test stats endpoint."""
        response = client.get("/_livereload/stats")
        assert response.status_code == 200
        data = response.json()
        assert data["sse"]["total_subscribers"] == 0
        assert data["sse_path"] == "/sse"
        assert data["reload_path"] == "/sse/reload"

    def test_metrics_endpoint(self, client):
        """Test Prometheus metrics endpoint."""
        client.post("/sse/reload")

        response = client.get("/_livereload/metrics")
        assert response.status_code == 200
        assert "broadcasts_total 1.0" in response.text
        assert "active_subscribers 0.0" in response.text

    @pytest.mark.parametrize("method", ["GET", "POST", "PUT", "DELETE", "TRACE", "RELOAD", "PURGE"])
    def test_trigger_accepts_any_method(self, client, method):
        """Test the trigger answers 200 with an empty body for any method."""
        response = client.request(method, "/sse/reload")
        assert response.status_code == 200
        assert response.content == b""

        metrics = client.get("/_livereload/metrics")
        assert "broadcasts_total 1.0" in metrics.text

    def test_static_file(self, client):
        """Test non-HTML files are served untouched."""
        response = client.get("/style.css")
        assert response.status_code == 200
        assert response.text == "body { color: red; }"

    def test_missing_file(self, client):
        """Test unknown paths are 404."""
        response = client.get("/nope.html")
        assert response.status_code == 404

    def test_html_gets_reload_script(self, client):
        """Test HTML pages are served with the client script injected."""
        response = client.get("/")
        assert response.status_code == 200
        assert 'new EventSource("/sse")' in response.text
        assert response.text.index("EventSource") < response.text.index("</head>")
        assert int(response.headers["content-length"]) == len(response.content)

    def test_injection_disabled(self, site):
        """Test pages are untouched when injection is off."""
        service = LiveReloadService(get_config(root_dir=str(site), inject_script=False))
        response = TestClient(service.app).get("/index.html")
        assert response.text == INDEX_HTML

    def test_non_flushable_transport_is_server_error(self, service, client):
        """Test a transport that cannot stream gives 500 and no registration."""
        service.channel_factory = lambda receive, send: NonFlushableWriter()

        response = client.get("/sse")

        assert response.status_code == 500
        assert response.json()["code"] == "STREAMING_UNSUPPORTED"
        assert len(service.broker) == 0

    @pytest.mark.asyncio
    async def test_trigger_reaches_registered_channel(self, service):
        """Test the trigger endpoint broadcasts through the broker."""
        channel = RecordingChannel()
        await service.broker.register("x", channel)

        transport = httpx.ASGITransport(app=service.app)
        async with httpx.AsyncClient(transport=transport, base_url="http://testserver") as http:
            response = await http.post("/sse/reload")

        assert response.status_code == 200
        assert channel.written == [RELOAD_MESSAGE]

    @pytest.mark.asyncio
    async def test_event_stream_lifecycle(self, service):
        """Test subscribe, reload and disconnect over the ASGI interface."""
        stream = ASGIStreamClient(service.app, "/sse")
        await stream.connect()
        await wait_until(lambda: len(service.broker) == 1)

        assert stream.status == 200
        assert stream.headers["content-type"] == "text/event-stream"
        assert stream.headers["cache-control"] == "no-cache"
        assert stream.headers["connection"] == "keep-alive"
        assert stream.headers["access-control-allow-origin"] == "*"

        result = await service.broker.broadcast()
        assert result.delivered == 1
        assert await stream.wait_for_body(RELOAD_MESSAGE) == b"data: reload\n\n"

        await stream.disconnect()
        assert len(service.broker) == 0
        assert stream.messages[-1]["more_body"] is True

    @pytest.mark.asyncio
    async def test_server_side_close_completes_response(self, service):
        """Test a subscriber dropped by the broker gets a final body message."""
        stream = ASGIStreamClient(service.app, "/sse")
        await stream.connect()
        await wait_until(lambda: len(service.broker) == 1)

        client_key = service.broker.client_keys()[0]
        service.broker.get_subscriber(client_key).channel.close()
        await asyncio.wait_for(stream.task, timeout=2.0)

        last = stream.messages[-1]
        assert last["type"] == "http.response.body"
        assert last["more_body"] is False
        assert len(service.broker) == 0

    @pytest.mark.asyncio
    async def test_failed_write_completes_response(self, service):
        """Test a timed-out write unregisters and completes the response."""
        stream = ASGIStreamClient(service.app, "/sse")
        await stream.connect()
        await wait_until(lambda: len(service.broker) == 1)

        service.broker.write_timeout = 0.05
        original_send = stream._send

        async def stalled_send(message):
            if message.get("body"):
                await asyncio.sleep(1.0)
            await original_send(message)

        subscriber = service.broker.get_subscriber(service.broker.client_keys()[0])
        subscriber.channel._send = stalled_send

        result = await service.broker.broadcast()
        assert result.failed_count == 1
        await asyncio.wait_for(stream.task, timeout=2.0)

        assert stream.messages[-1]["more_body"] is False
        assert len(service.broker) == 0
