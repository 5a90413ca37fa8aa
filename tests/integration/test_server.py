"""Integration tests for photoprompt.server: the Flask gateway front.

Providers are faked; storage is the in-memory bucket from conftest. Every
request builds a fresh gateway through the factory, as in production.
"""

import pytest

from photoprompt.errors import ProviderError
from photoprompt.models import TaskStatus
from photoprompt.server import create_app

NESTED = [{"image_url": {"url": "https://gen/primary.png"}}]


@pytest.fixture
def build_client(make_gateway):
    def _build(**gateway_kwargs):
        gateways = []

        def factory():
            gateway = make_gateway(**gateway_kwargs)
            gateways.append(gateway)
            return gateway

        app = create_app(factory)
        app.config["TESTING"] = True
        client = app.test_client()
        client.gateways = gateways
        return client

    return _build


@pytest.mark.integration
class TestCors:
    def test_preflight(self, build_client):
        resp = build_client().options(
            "/functions/v1/generate-image",
            headers={
                "Origin": "https://app.example",
                "Access-Control-Request-Method": "POST",
                "Access-Control-Request-Headers": "authorization, content-type, apikey",
            },
        )
        assert resp.status_code == 200
        assert resp.headers["Access-Control-Allow-Origin"] == "*"
        assert "POST" in resp.headers["Access-Control-Allow-Methods"]
        allowed = resp.headers["Access-Control-Allow-Headers"].lower()
        assert "authorization" in allowed
        assert "apikey" in allowed
        assert "content-type" in allowed

    def test_preflight_runs_no_generation(self, build_client):
        client = build_client()
        client.options(
            "/functions/v1/generate-image",
            headers={"Origin": "https://app.example", "Access-Control-Request-Method": "POST"},
        )
        assert client.gateways == []

    def test_actual_response_has_cors_header(self, build_client, fake_primary):
        resp = build_client(primary=fake_primary(images=NESTED)).post(
            "/functions/v1/generate-image",
            json={"prompt": "p"},
            headers={"Origin": "https://app.example"},
        )
        assert resp.headers["Access-Control-Allow-Origin"] == "*"


@pytest.mark.integration
class TestGenerateImageEndpoint:
    def test_success(self, build_client, fake_primary):
        client = build_client(primary=fake_primary(images=NESTED))
        resp = client.post("/functions/v1/generate-image", json={"prompt": "a red balloon", "images": []})

        assert resp.status_code == 200
        data = resp.get_json()
        assert data["success"] is True
        assert data["images_url"] == "https://gen/primary.png"
        assert "message" in data
        client.gateways[0].primary.close.assert_awaited_once()

    def test_extra_fields_are_ignored(self, build_client, fake_primary):
        resp = build_client(primary=fake_primary(images=NESTED)).post(
            "/functions/v1/generate-image",
            json={"prompt": "p", "num_inference_steps": 9, "guidance_scale": 1.5, "seed": 7},
        )
        assert resp.status_code == 200

    def test_missing_prompt(self, build_client, fake_primary):
        primary = fake_primary(images=NESTED)
        resp = build_client(primary=primary).post("/functions/v1/generate-image", json={"images": []})
        assert resp.status_code == 400
        assert resp.get_json() == {"success": False, "error": "A prompt is required"}
        primary.generate.assert_not_awaited()

    def test_empty_body(self, build_client):
        resp = build_client().post("/functions/v1/generate-image", data="not json")
        assert resp.status_code == 400
        assert resp.get_json()["success"] is False

    def test_invalid_body_types(self, build_client):
        resp = build_client().post("/functions/v1/generate-image", json={"prompt": "p", "images": "x"})
        assert resp.status_code == 400
        assert resp.get_json()["error"].startswith("Invalid request body")

    def test_invalid_body_still_cleans_up_inputs(self, build_client, fake_primary, bucket):
        primary = fake_primary(images=NESTED)
        client = build_client(primary=primary)
        resp = client.post(
            "/functions/v1/generate-image",
            json={"prompt": 123, "images": ["https://store/x.jpg", 7, "https://store/y.jpg"]},
        )

        assert resp.status_code == 400
        assert resp.get_json()["error"].startswith("Invalid request body")
        assert bucket.removed == ["x.jpg", "y.jpg"]
        primary.generate.assert_not_awaited()
        client.gateways[0].primary.close.assert_awaited_once()

    def test_invalid_body_without_images_builds_no_gateway(self, build_client):
        client = build_client()
        resp = client.post("/functions/v1/generate-image", json={"prompt": ["p"]})
        assert resp.status_code == 400
        assert client.gateways == []

    def test_provider_failure(self, build_client, fake_primary, bucket):
        client = build_client(
            primary=fake_primary(error=ProviderError("OpenRouter API error: 500 - down", status_code=500))
        )
        resp = client.post(
            "/functions/v1/generate-image",
            json={"prompt": "p", "images": ["https://store/x.jpg"]},
        )
        assert resp.status_code == 400
        data = resp.get_json()
        assert data["success"] is False
        assert "500" in data["error"]
        assert bucket.removed == ["x.jpg"]


@pytest.mark.integration
class TestCheckTaskStatusEndpoint:
    def test_completed(self, build_client, fake_secondary):
        secondary = fake_secondary()
        secondary.check_status.return_value = TaskStatus(state="completed", images=[{"url": "https://done"}])
        resp = build_client(secondary=secondary).post(
            "/functions/v1/check-task-status", json={"task_id": "app::r1"}
        )
        assert resp.status_code == 200
        assert resp.get_json() == {
            "success": True,
            "task_id": "app::r1",
            "image_url": "https://done",
            "status": "completed",
        }

    def test_missing_task_id(self, build_client):
        resp = build_client().post("/functions/v1/check-task-status", json={})
        assert resp.status_code == 400
        assert resp.get_json()["error"] == "task_id is required"


def test_unknown_route_returns_json_404(build_client):
    resp = build_client().get("/nope")
    assert resp.status_code == 404
    assert resp.get_json() == {"success": False, "error": "Endpoint not found"}
