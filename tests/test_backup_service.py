"""Tests for backups, the blob stores and the daily scheduler."""

import json
from datetime import datetime
from unittest.mock import AsyncMock, MagicMock

import pytest
import pytest_asyncio
from botocore.exceptions import ClientError
from sqlalchemy import select

from coffeebot.core.clock import Clock
from coffeebot.models import Backup, SlackResponse
from coffeebot.services import BackupScheduler, BackupService
from coffeebot.storage import BlobStoreFactory, MemoryBlobStore, S3BlobStore


@pytest_asyncio.fixture
async def alice(migrated, identity, make_command):
    return await identity.resolve(make_command())


async def backup_rows(session_factory):
    async with session_factory() as session:
        return (await session.execute(select(Backup).order_by(Backup.id))).scalars().all()


async def uploaded_lines(blob_store, key):
    body = await blob_store.get(key)
    return [json.loads(line) for line in body.decode("utf-8").splitlines()]


def key_from(response) -> str:
    return response.text.split("Filename: ")[1].rstrip(".")


class TestBackupService:
    """JSON lines backups of the normalized tables."""

    @pytest.mark.asyncio
    async def test_full_backup_contains_every_row(self, backup_service, coffee_service, blob_store, clock, alice):
        await coffee_service.add_coffee(alice, 2)

        response = await backup_service.create_full_backup()

        key = key_from(response)
        assert response.text.startswith("5 rows backed up.")
        assert key == f"backups/{clock.now().isoformat()}.v2.rows.full.json"
        lines = await uploaded_lines(blob_store, key)
        assert sorted(line["tableName"] for line in lines) == [
            "abstract_user_v2", "drink_v2", "drink_v2", "team_v2", "user_v2",
        ]
        drink = next(line for line in lines if line["tableName"] == "drink_v2")
        assert drink["abstract_user_id"] == alice.db_abstract_user_id
        assert drink["drink"] == "coffee"

    @pytest.mark.asyncio
    async def test_incremental_backup_starts_after_last_success(
        self, backup_service, coffee_service, blob_store, clock, alice
    ):
        first = await backup_service.create_backup()
        clock.advance(hours=1)
        await coffee_service.add_coffee(alice, 1)

        second = await backup_service.create_backup()

        assert first.text.startswith("3 rows backed up.")
        assert key_from(second).endswith(".v2.rows.incremental.json")
        lines = await uploaded_lines(blob_store, key_from(second))
        assert [line["tableName"] for line in lines] == ["drink_v2"]

    @pytest.mark.asyncio
    async def test_each_attempt_is_recorded(self, backup_service, session_factory, clock, alice):
        await backup_service.create_backup()

        rows = await backup_rows(session_factory)
        assert len(rows) == 1
        assert rows[0].successful is True
        assert clock.localize(rows[0].backup_until) == clock.now()

    @pytest.mark.asyncio
    async def test_failed_upload_is_recorded(self, session_factory, clock, alice):
        broken_store = MemoryBlobStore()
        broken_store.put = AsyncMock(side_effect=RuntimeError("bucket gone"))
        service = BackupService(session_factory, broken_store, clock)

        response = await service.create_backup()

        assert response.text == "Incremental backup failed. Check the logs for details."
        rows = await backup_rows(session_factory)
        assert [row.successful for row in rows] == [False]
        assert rows[0].message == "bucket gone"

    @pytest.mark.asyncio
    async def test_failed_backup_is_retried_in_full_next_time(self, session_factory, blob_store, clock, alice):
        broken_store = MemoryBlobStore()
        broken_store.put = AsyncMock(side_effect=RuntimeError("bucket gone"))
        await BackupService(session_factory, broken_store, clock).create_backup()
        clock.advance(hours=1)

        response = await BackupService(session_factory, blob_store, clock).create_backup()

        assert response.text.startswith("3 rows backed up.")


class TestBlobStores:
    """Blob store implementations and factory."""

    @pytest.mark.asyncio
    async def test_memory_store_round_trip(self):
        store = MemoryBlobStore()

        location = await store.put("backups/a.json", b"{}", content_type="application/json")

        assert location == "memory://backups/a.json"
        assert await store.get("backups/a.json") == b"{}"
        assert await store.get("backups/missing.json") is None
        assert await store.list_keys("backups/") == ["backups/a.json"]
        assert (await store.health_check())["status"] == "healthy"

    @pytest.mark.asyncio
    async def test_s3_store_uses_bucket(self):
        client = MagicMock()
        store = S3BlobStore(bucket_name="coffee-backups", client=client)

        location = await store.put("backups/a.json", b"{}", content_type="application/x-ndjson")

        assert location == "s3://coffee-backups/backups/a.json"
        client.put_object.assert_called_once_with(
            Bucket="coffee-backups", Key="backups/a.json", Body=b"{}", ContentType="application/x-ndjson"
        )

    @pytest.mark.asyncio
    async def test_s3_health_check(self):
        client = MagicMock()
        store = S3BlobStore(bucket_name="coffee-backups", client=client)

        health = await store.health_check()

        assert health["status"] == "healthy"
        assert health["bucket"] == "coffee-backups"
        client.head_bucket.assert_called_once_with(Bucket="coffee-backups")

    @pytest.mark.asyncio
    async def test_s3_health_check_reports_missing_bucket(self):
        client = MagicMock()
        client.head_bucket.side_effect = ClientError({"Error": {"Code": "404", "Message": "Not Found"}}, "HeadBucket")
        store = S3BlobStore(bucket_name="coffee-backups", client=client)

        health = await store.health_check()

        assert health["status"] == "unhealthy"
        assert "Not Found" in health["error"]

    def test_factory_backends(self):
        assert isinstance(BlobStoreFactory.create_store("memory"), MemoryBlobStore)
        assert isinstance(BlobStoreFactory.create_store("carrier-pigeon"), MemoryBlobStore)


class TestBackupScheduler:
    """Daily incremental backups."""

    def test_waits_until_backup_hour(self):
        clock = MagicMock(spec=Clock)
        now = datetime(2026, 3, 10, 9, 30)
        clock.now.return_value = now
        clock.next_occurrence.return_value = datetime(2026, 3, 11, 2, 0)
        scheduler = BackupScheduler(MagicMock(), clock, hour=2)

        assert scheduler.seconds_until_next_run() == 16.5 * 3600
        clock.next_occurrence.assert_called_once_with(2, after=now)

    @pytest.mark.asyncio
    async def test_run_once_survives_errors(self, clock):
        service = MagicMock()
        service.create_backup = AsyncMock(side_effect=RuntimeError("no network"))
        scheduler = BackupScheduler(service, clock)

        await scheduler.run_once()

        service.create_backup.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_start_and_stop(self, clock):
        service = MagicMock()
        service.create_backup = AsyncMock(return_value=SlackResponse.ephemeral("ok"))
        scheduler = BackupScheduler(service, clock)

        scheduler.start()
        assert scheduler.running
        await scheduler.stop()

        assert not scheduler.running
        service.create_backup.assert_not_called()


class TestClock:
    """Next occurrence of the backup hour."""

    def test_later_today(self, clock):
        assert clock.next_occurrence(17).date() == clock.now().date()

    def test_tomorrow_when_hour_has_passed(self, clock):
        next_run = clock.next_occurrence(2)
        assert next_run.hour == 2
        assert (next_run.date() - clock.now().date()).days == 1
