import json

import pytest

from api.rest_server import GardenAPI, InputMailbox
from growth.params import GrowthParameters, GrowthSource


@pytest.fixture
def api():
    return GardenAPI(port=0)


@pytest.fixture
def client(api):
    return api.app.test_client()


class TestMailbox:

    def test_drain_resets(self):
        box = InputMailbox()
        assert box.drain().empty
        box.post_hour(3.0)
        pending = box.drain()
        assert pending.hour_changed and pending.hour == 3.0
        assert box.drain().empty

    def test_latest_post_wins(self):
        box = InputMailbox()
        box.post_override(GrowthParameters.from_growth(0.2))
        box.post_override(None)
        pending = box.drain()
        assert pending.override_changed
        assert pending.override is None

    def test_status_is_copied(self):
        box = InputMailbox()
        status = {"stage": "seed"}
        box.publish_status(status)
        status["stage"] = "sprout"
        assert box.status() == {"stage": "seed"}


class TestEndpoints:

    def test_index(self, client):
        resp = client.get("/")
        assert resp.status_code == 200
        assert "POST   /time {hour}" in resp.get_json()["endpoints"]

    def test_status_before_viewer_ready(self, client):
        assert client.get("/status").status_code == 503

    def test_status_after_publish(self, api, client):
        api.mailbox.publish_status({"stage": "sprout", "progress": 0.25})
        assert client.get("/status").get_json() == {"stage": "sprout", "progress": 0.25}

    def test_stages(self, client):
        stages = client.get("/stages").get_json()["stages"]
        assert [s["key"] for s in stages] == [
            "seed", "sprout", "youngTree", "fullBloom", "ancientTree"]
        assert stages[3]["min_khatms"] == 3

    def test_snapshot(self, api, client):
        resp = client.post("/snapshot", json={"totalPages": 60, "dayStreak": 3})
        assert resp.status_code == 200
        assert resp.get_json() == {"ok": True, "stage": "sprout", "progress": 0.5}
        snapshot = api.mailbox.drain().snapshot
        assert snapshot.total_pages == 60
        assert snapshot.day_streak == 3

    def test_snapshot_rejects_non_objects(self, client):
        assert client.post("/snapshot", json=[1, 2]).status_code == 400
        assert client.post("/snapshot", data="pages=3").status_code == 400

    def test_growth_override(self, api, client):
        resp = client.post("/override", json={"growth": 0.75})
        assert resp.get_json()["growth"] == 0.75
        pending = api.mailbox.drain()
        assert pending.override_changed
        assert pending.override.source is GrowthSource.OVERRIDE
        assert pending.override.growth == 0.75

    def test_full_override(self, api, client):
        values = GrowthParameters.from_growth(0.4).to_dict()
        assert client.post("/override", json=values).status_code == 200
        assert api.mailbox.drain().override == GrowthParameters.from_growth(0.4)

    def test_non_finite_override_rejected(self, api, client):
        values = GrowthParameters.from_growth(0.4).to_dict()
        values["trunk_length"] = float("nan")
        # json.dumps writes a bare NaN token, which Flask's parser accepts
        resp = client.post("/override", data=json.dumps(values),
                           content_type="application/json")
        assert resp.status_code == 400
        assert "trunk_length" in resp.get_json()["error"]
        assert api.mailbox.drain().empty

    @pytest.mark.parametrize("body", [
        {"growth": "tall"},
        {"growth": None},
        {"trunk_length": 1.0},
    ])
    def test_bad_override(self, api, client, body):
        resp = client.post("/override", json=body)
        assert resp.status_code == 400
        assert "error" in resp.get_json()
        assert api.mailbox.drain().empty

    def test_clear_override(self, api, client):
        assert client.delete("/override").status_code == 200
        pending = api.mailbox.drain()
        assert pending.override_changed
        assert pending.override is None

    @pytest.mark.parametrize("sent,stored", [(21.5, 21.5), (25, 1.0), (None, None)])
    def test_time(self, api, client, sent, stored):
        resp = client.post("/time", json={"hour": sent})
        assert resp.get_json()["hour"] == stored
        assert api.mailbox.drain().hour == stored

    @pytest.mark.parametrize("body", [{}, {"hour": "noon"}, {"hour": float("inf")}])
    def test_bad_time(self, client, body):
        assert client.post("/time", json=body).status_code == 400
