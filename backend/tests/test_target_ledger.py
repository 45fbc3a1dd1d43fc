"""
╔══════════════════════════════════════════════════════════════════════════════╗
║  Sales CRM - Target Ledger Tests                                             ║
║                                                                              ║
║  1. FIFO allocation (oldest target first, capacity respected)                ║
║  2. Overflow onto today's target (created or reused, one per date)           ║
║  3. LIFO reversal (never below 0, leftovers reported)                        ║
║  4. Target CRUD + main summary                                               ║
╚══════════════════════════════════════════════════════════════════════════════╝
"""

import pytest
from pymongo.errors import DuplicateKeyError

from config import today_iso
from server import ensure_indexes
from services.target_ledger import (
    allocate_profit,
    reverse_profit,
    create_target,
    update_target,
    delete_target,
    list_targets,
    get_main_target_summary,
    TargetNotFoundError,
    DuplicateTargetDateError,
)
from tests.fake_mongo import seed_target, target_by_date


class TestAllocateProfit:

    @pytest.mark.asyncio
    async def test_fifo_oldest_target_absorbs_small_profit(self, db):
        seed_target(db, "2024-01-03", 1000)
        seed_target(db, "2024-01-01", 1000)
        seed_target(db, "2024-01-02", 1000)

        result = await allocate_profit(db, 300, "user-1")

        assert result["success"] is True
        assert result["total_allocated"] == 300
        assert len(result["updated_targets"]) == 1
        assert target_by_date(db, "2024-01-01")["achieved"] == 300
        assert target_by_date(db, "2024-01-02")["achieved"] == 0
        assert target_by_date(db, "2024-01-03")["achieved"] == 0

    @pytest.mark.asyncio
    async def test_same_date_ties_broken_by_creation_order(self, db):
        later = seed_target(db, "2024-01-01", 100, created_at="2024-01-01T10:00:00+00:00")
        earlier = seed_target(db, "2024-01-01", 100, created_at="2024-01-01T09:00:00+00:00")

        result = await allocate_profit(db, 50, "user-1")

        assert result["updated_targets"][0]["target_id"] == earlier["id"]
        assert later["achieved"] == 0

    @pytest.mark.asyncio
    async def test_concrete_scenario_with_overflow(self, db):
        """Jan1 1000/500, Jan2 800/800, profit 600 -> Jan1 full, 100 on today"""
        seed_target(db, "2024-01-01", 1000, 500)
        seed_target(db, "2024-01-02", 800, 800)

        result = await allocate_profit(db, 600, "user-1")

        assert target_by_date(db, "2024-01-01")["achieved"] == 1000
        assert target_by_date(db, "2024-01-02")["achieved"] == 800
        today = target_by_date(db, today_iso())
        assert today["achieved"] == 100
        assert today["amount"] == 100
        assert today["auto_created"] is True
        assert today["created_by"] == "user-1"

        entries = result["updated_targets"]
        assert [e["allocated"] for e in entries] == [500, 100]
        assert entries[0]["is_complete"] is True
        assert entries[1]["is_new_target"] is True
        assert result["total_allocated"] == 600

    @pytest.mark.asyncio
    async def test_overflow_adds_to_existing_today_target(self, db):
        seed_target(db, today_iso(), 50, 50)

        result = await allocate_profit(db, 80, "user-1")

        today = target_by_date(db, today_iso())
        assert today["achieved"] == 130  # over-fill allowed
        assert today["amount"] == 50
        assert len(db.targets.docs) == 1
        assert result["updated_targets"][0]["is_existing_target"] is True

    @pytest.mark.asyncio
    async def test_only_one_auto_created_target_per_date(self, db):
        await ensure_indexes(db)
        await allocate_profit(db, 100, "user-1")

        with pytest.raises(DuplicateKeyError):
            await db.targets.insert_one({
                "id": "rival", "date": today_iso(), "amount": 50, "achieved": 50, "auto_created": True
            })

        # manual targets sharing a date are still accepted by the store
        await db.targets.insert_one({"id": "m-1", "date": "2024-01-01", "auto_created": False})
        await db.targets.insert_one({"id": "m-2", "date": "2024-01-01", "auto_created": False})
        assert len(db.targets.docs) == 3

    @pytest.mark.asyncio
    async def test_today_target_with_capacity_is_filled_in_fifo_pass(self, db):
        seed_target(db, "2024-01-01", 100, 100)
        seed_target(db, today_iso(), 200, 0)

        result = await allocate_profit(db, 150, "user-1")

        assert target_by_date(db, today_iso())["achieved"] == 150
        assert len(result["updated_targets"]) == 1

    @pytest.mark.asyncio
    async def test_conservation_and_capacity_bounds(self, db):
        seed_target(db, "2024-01-01", 100.10, 0)
        seed_target(db, "2024-01-02", 49.95, 10)
        seed_target(db, "2024-01-03", 10, 25)  # already over-filled

        result = await allocate_profit(db, 333.33, "user-1")

        entries = result["updated_targets"]
        assert sum(e["allocated"] for e in entries) == pytest.approx(333.33, abs=0.01)
        for entry in entries:
            if not entry.get("is_new_target") and not entry.get("is_existing_target"):
                capacity = entry["target_amount"] - entry["previous_achieved"]
                assert entry["allocated"] <= capacity + 1e-9
        assert target_by_date(db, "2024-01-03")["achieved"] == 25

    @pytest.mark.asyncio
    @pytest.mark.parametrize("amount", [0, -50, None])
    async def test_non_positive_profit_is_a_noop(self, db, amount):
        seed_target(db, "2024-01-01", 1000)

        result = await allocate_profit(db, amount, "user-1")

        assert result == {
            "success": True,
            "message": "No profit to allocate",
            "updated_targets": [],
            "total_allocated": 0,
            "remaining_profit": 0
        }
        assert db.targets.write_count == 0


class TestReverseProfit:

    @pytest.mark.asyncio
    async def test_lifo_most_recent_date_drained_first(self, db):
        seed_target(db, "2024-01-01", 1000, 1000)
        seed_target(db, "2024-01-03", 500, 200)
        seed_target(db, "2024-01-02", 500, 500)

        result = await reverse_profit(db, 400, "user-1")

        assert target_by_date(db, "2024-01-03")["achieved"] == 0
        assert target_by_date(db, "2024-01-02")["achieved"] == 300
        assert target_by_date(db, "2024-01-01")["achieved"] == 1000
        assert [e["removed"] for e in result["updated_targets"]] == [200, 200]
        assert result["total_removed"] == 400
        assert result["remaining_to_remove"] == 0

    @pytest.mark.asyncio
    async def test_empty_targets_are_skipped(self, db):
        seed_target(db, "2024-02-01", 500, 0)
        seed_target(db, "2024-01-01", 500, 100)

        result = await reverse_profit(db, 50, "user-1")

        assert len(result["updated_targets"]) == 1
        assert target_by_date(db, "2024-01-01")["achieved"] == 50

    @pytest.mark.asyncio
    async def test_never_below_zero_and_reports_leftover(self, db):
        seed_target(db, "2024-01-01", 100, 30)
        seed_target(db, "2024-01-02", 100, 20.5)

        result = await reverse_profit(db, 100, "user-1")

        assert all(t["achieved"] >= 0 for t in db.targets.docs)
        assert result["success"] is True
        assert result["total_removed"] == 50.5
        assert result["remaining_to_remove"] == 49.5

    @pytest.mark.asyncio
    async def test_non_positive_amount_is_a_noop(self, db):
        seed_target(db, "2024-01-01", 100, 30)

        result = await reverse_profit(db, 0, "user-1")

        assert result["updated_targets"] == []
        assert result["total_removed"] == 0
        assert db.targets.write_count == 0


class TestTargetCrud:

    @pytest.mark.asyncio
    async def test_create_normalizes_date(self, db):
        target = await create_target(
            db, {"date": "2024-03-05T15:30:00Z", "amount": 1000}, "admin-1"
        )
        assert target["date"] == "2024-03-05"
        assert target["achieved"] == 0
        assert target["auto_created"] is False

    @pytest.mark.asyncio
    async def test_one_target_per_date(self, db):
        seed_target(db, "2024-03-05", 100)
        with pytest.raises(DuplicateTargetDateError):
            await create_target(db, {"date": "2024-03-05", "amount": 10}, "admin-1")

    @pytest.mark.asyncio
    async def test_update_and_delete(self, db):
        target = seed_target(db, "2024-03-05", 100)

        updated = await update_target(db, target["id"], {"amount": 250, "description": "Q1"})
        assert updated["amount"] == 250
        assert updated["description"] == "Q1"

        await delete_target(db, target["id"])
        assert await list_targets(db) == []

        with pytest.raises(TargetNotFoundError):
            await delete_target(db, target["id"])

    @pytest.mark.asyncio
    async def test_update_to_taken_date_is_rejected(self, db):
        seed_target(db, "2024-03-05", 100)
        other = seed_target(db, "2024-03-06", 100)
        with pytest.raises(DuplicateTargetDateError):
            await update_target(db, other["id"], {"date": "2024-03-05"})

    @pytest.mark.asyncio
    async def test_list_is_most_recent_first(self, db):
        seed_target(db, "2024-01-01", 1)
        seed_target(db, "2024-06-01", 1)
        dates = [t["date"] for t in await list_targets(db)]
        assert dates == ["2024-06-01", "2024-01-01"]


class TestMainTargetSummary:

    @pytest.mark.asyncio
    async def test_totals(self, db):
        seed_target(db, "2024-01-01", 1000, 500)
        seed_target(db, "2024-01-02", 800, 300)

        summary = await get_main_target_summary(db)

        assert summary == {"total": 1800, "achieved": 800, "remaining": 1000, "percentage": 44}

    @pytest.mark.asyncio
    async def test_empty_ledger(self, db):
        summary = await get_main_target_summary(db)
        assert summary["percentage"] == 0
        assert summary["total"] == 0
