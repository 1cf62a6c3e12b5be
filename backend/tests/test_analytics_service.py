"""
Tests for the accounting ledger.
"""
import asyncio

import pytest
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from app.models.base import Base
from app.services.analytics_service import AnalyticsService

KEY = "2026-10-18/videos/0b7c1f9e-3f6a-4c1e-9a57-2f1d8c4e5b6a-clip.mp4"


class TestRecordUpload:
    """Tests for row creation."""

    @pytest.mark.asyncio
    async def test_creates_zeroed_record(self, analytics: AnalyticsService):
        record = await analytics.record_upload(KEY, "Clip.mp4", "video/mp4", 1000)

        assert record.id is not None
        assert record.object_key == KEY
        assert record.original_name == "Clip.mp4"
        assert record.download_count == 0
        assert record.bandwidth_usage == 0
        assert record.last_access_time is None
        assert record.upload_time is not None

    @pytest.mark.asyncio
    async def test_one_row_per_key(self, analytics: AnalyticsService):
        await analytics.record_upload(KEY, "Clip.mp4", "video/mp4", 1000)

        with pytest.raises(IntegrityError):
            await analytics.record_upload(KEY, "Clip.mp4", "video/mp4", 1000)


class TestRecordAccess:
    """Tests for additive counter updates."""

    @pytest.mark.asyncio
    async def test_full_downloads_accumulate(self, analytics: AnalyticsService):
        await analytics.record_upload(KEY, "Clip.mp4", "video/mp4", 1000)

        for _ in range(3):
            assert await analytics.record_access(KEY, 1000) is True

        record = await analytics.get_record(KEY)
        assert record.download_count == 3
        assert record.bandwidth_usage == 3000
        assert record.last_access_time is not None

    @pytest.mark.asyncio
    async def test_partial_download_adds_only_served_bytes(self, analytics: AnalyticsService):
        await analytics.record_upload(KEY, "Clip.mp4", "video/mp4", 1000)
        await analytics.record_access(KEY, 1000)

        await analytics.record_access(KEY, 100)

        record = await analytics.get_record(KEY)
        assert record.download_count == 2
        assert record.bandwidth_usage == 1100

    @pytest.mark.asyncio
    async def test_unknown_key_is_a_noop(self, analytics: AnalyticsService):
        assert await analytics.record_access("missing/key", 10) is False
        assert await analytics.get_record("missing/key") is None

    @pytest.mark.asyncio
    async def test_negative_bytes_rejected(self, analytics: AnalyticsService):
        with pytest.raises(ValueError):
            await analytics.record_access(KEY, -1)

    @pytest.mark.asyncio
    async def test_concurrent_reads_are_all_counted(self, tmp_path):
        """Simultaneous reads of one key each add their delta; none is lost."""
        engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'ledger.db'}")
        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
        ledger = AnalyticsService(async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False))

        try:
            await ledger.record_upload(KEY, "Clip.mp4", "video/mp4", 1000)

            readers = 50
            results = await asyncio.gather(*(ledger.record_access(KEY, 100) for _ in range(readers)))

            assert all(results)
            record = await ledger.get_record(KEY)
            assert record.download_count == readers
            assert record.bandwidth_usage == readers * 100
        finally:
            await engine.dispose()


class TestReports:
    """Tests for overview and aggregate queries."""

    @pytest.mark.asyncio
    async def test_overview_empty(self, analytics: AnalyticsService):
        assert await analytics.get_overview() == {
            "totalFiles": 0,
            "totalSize": 0,
            "totalBandwidth": 0,
        }

    @pytest.mark.asyncio
    async def test_overview_and_rankings(self, analytics: AnalyticsService):
        await analytics.record_upload("k/a", "a.png", "image/png", 100)
        await analytics.record_upload("k/b", "b.png", "image/png", 200)
        await analytics.record_upload("k/c", "c.pdf", "application/pdf", 300)

        await analytics.record_access("k/b", 200)
        await analytics.record_access("k/b", 200)
        await analytics.record_access("k/c", 50)

        overview = await analytics.get_overview()
        assert overview == {"totalFiles": 3, "totalSize": 600, "totalBandwidth": 450}

        top = await analytics.get_top_downloads(limit=2)
        assert [r.object_key for r in top] == ["k/b", "k/c"]

        by_type = await analytics.get_storage_by_mimetype()
        assert by_type == [
            {"mimetype": "application/pdf", "totalSize": 300},
            {"mimetype": "image/png", "totalSize": 300},
        ]
