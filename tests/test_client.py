"""GardenClient against the real Flask app, over httpx's WSGI transport."""

import httpx
import pytest

from api.rest_server import GardenAPI
from client.garden_client import GardenClient


@pytest.fixture
def api():
    return GardenAPI(port=0)


@pytest.fixture
def client(api):
    c = GardenClient(transport=httpx.WSGITransport(app=api.app))
    yield c
    c.close()


def test_push_snapshot(api, client):
    result = client.push_snapshot({"totalPages": 120, "khatms": 0})
    assert result["stage"] == "youngTree"
    assert api.mailbox.drain().snapshot.total_pages == 120


def test_growth_override_and_clear(api, client):
    client.set_growth_override(0.3)
    assert api.mailbox.drain().override.growth == pytest.approx(0.3)
    client.clear_override()
    pending = api.mailbox.drain()
    assert pending.override_changed and pending.override is None


def test_set_hour(api, client):
    assert client.set_hour(20.25)["hour"] == 20.25
    assert client.set_hour(None)["hour"] is None
    assert api.mailbox.drain().hour is None


def test_stages(client):
    assert len(client.get_stages()) == 5


def test_errors_raise(client):
    with pytest.raises(httpx.HTTPStatusError):
        client.get_status()
    with pytest.raises(httpx.HTTPStatusError):
        client.set_override({"growth": 0.5, "twist": 0.1})


def test_wait_for_stage(api, client):
    api.mailbox.publish_status({"stage": "sprout"})
    assert client.wait_for_stage("sprout", timeout=1.0)
    assert not client.wait_for_stage("ancientTree", timeout=0.3)
