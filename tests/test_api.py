"""Tests for the FastAPI webhook."""

import time
from urllib.parse import urlencode

import pytest
from fastapi.testclient import TestClient
from slack_sdk.signature import SignatureVerifier

from coffeebot.core.config import Settings
from coffeebot.main import create_app
from coffeebot.storage import MemoryBlobStore

FORM = {"content-type": "application/x-www-form-urlencoded"}


def slash_body(text: str = "", **overrides) -> str:
    fields = {
        "command": "/coffee",
        "text": text,
        "user_id": "U0001",
        "user_name": "alice",
        "team_id": "T0001",
        "team_domain": "roasters",
        "channel_id": "C0001",
    }
    fields.update(overrides)
    return urlencode(fields)


def make_settings(database_url: str, **overrides) -> Settings:
    values = {
        "DATABASE_URL_OVERRIDE": database_url,
        "AUTH_KEY": "secret",
        "ADMIN_KEY": "sesame",
        "SLACK_SIGNING_SECRET": None,
        "MIGRATION_ALLOWED_USER_IDS": "",
        "BACKUP_SCHEDULE_ENABLED": False,
    }
    values.update(overrides)
    return Settings(**values)


@pytest.fixture
def client(database_url, clock):
    app = create_app(make_settings(database_url), blob_store=MemoryBlobStore(), clock=clock)
    with TestClient(app) as test_client:
        yield test_client


class TestWebhook:
    """POST /slack/commands and /addCoffee."""

    def test_missing_key_is_refused(self, client):
        response = client.post("/slack/commands", content=slash_body(), headers=FORM)

        assert response.status_code == 200
        assert response.json() == {"result": "nope"}

    def test_wrong_key_is_refused(self, client):
        response = client.post("/slack/commands?key=guess", content=slash_body(), headers=FORM)

        assert response.json() == {"result": "nope"}

    def test_non_ascii_key_is_refused(self, client):
        response = client.post("/slack/commands?key=caf%C3%A9", content=slash_body(), headers=FORM)

        assert response.status_code == 200
        assert response.json() == {"result": "nope"}

    def test_migrations_gate_commands(self, client):
        response = client.post("/slack/commands?key=secret", content=slash_body("count"), headers=FORM)

        assert response.json() == {"response_type": "ephemeral", "text": "Migrations must be run before continuing"}

    def test_migrate_then_add_coffee(self, client):
        migrate = client.post("/addCoffee?key=secret", content=slash_body("migrate"), headers=FORM)
        coffee = client.post("/addCoffee?key=secret", content=slash_body(""), headers=FORM)
        count = client.post("/slack/commands?key=secret", content=slash_body("count"), headers=FORM)

        assert migrate.json()["text"] == "Migrations ran successfully"
        assert coffee.json() == {
            "response_type": "ephemeral",
            "text": "That's coffee number 1 for you today, and number 1 for workspace members today",
        }
        assert count.json()["response_type"] == "in_channel"
        assert count.json()["blocks"][0]["text"]["text"] == "*Today*, workspace members have consumed 1 coffees"

    def test_wrong_slash_command(self, client):
        response = client.post(
            "/slack/commands?key=secret", content=slash_body("migrate", command="/tea"), headers=FORM
        )

        assert response.json()["text"] == "Something has gone horribly wrong"

    def test_malformed_payload(self, client):
        response = client.post("/slack/commands?key=secret", content=urlencode({"text": "count"}), headers=FORM)

        assert response.status_code == 200
        assert response.json()["text"].startswith("I'm afraid I don't understand your command")

    def test_undecodable_body(self, client):
        response = client.post("/slack/commands?key=secret", content=b"command=%2Fcoffee&text=\xff\xfe", headers=FORM)

        assert response.status_code == 200
        assert response.json()["text"].startswith("I'm afraid I don't understand your command")


class TestSignedRequests:
    """Requests signed with the Slack signing secret."""

    @pytest.fixture
    def signed_client(self, database_url, clock):
        settings = make_settings(database_url, AUTH_KEY=None, SLACK_SIGNING_SECRET="shh")
        app = create_app(settings, blob_store=MemoryBlobStore(), clock=clock)
        with TestClient(app) as test_client:
            yield test_client

    def test_valid_signature_is_accepted(self, signed_client):
        body = slash_body("migrate")
        timestamp = str(int(time.time()))
        signature = SignatureVerifier("shh").generate_signature(timestamp=timestamp, body=body)

        response = signed_client.post(
            "/slack/commands",
            content=body,
            headers={**FORM, "X-Slack-Request-Timestamp": timestamp, "X-Slack-Signature": signature},
        )

        assert response.json()["text"] == "Migrations ran successfully"

    def test_bad_signature_is_refused(self, signed_client):
        response = signed_client.post(
            "/slack/commands",
            content=slash_body("migrate"),
            headers={**FORM, "X-Slack-Request-Timestamp": str(int(time.time())), "X-Slack-Signature": "v0=bad"},
        )

        assert response.json() == {"result": "nope"}


class TestHealth:
    """Status endpoints."""

    def test_root(self, client):
        assert client.get("/").json() == {"message": "CoffeeBot project is running!"}

    def test_health_reports_pending_migrations(self, client):
        before = client.get("/health").json()
        client.post("/slack/commands?key=secret", content=slash_body("migrate"), headers=FORM)
        after = client.get("/health").json()

        assert before == {
            "status": "healthy",
            "database": "connected",
            "backup_store": "healthy",
            "migrations_pending": True,
        }
        assert after["migrations_pending"] is False
