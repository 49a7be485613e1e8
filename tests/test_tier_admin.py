"""
Tests for commission tier administration.

Covers:
- Input validation before any write
- Broker tier uniqueness, percentage update, soft delete
- Manager tier audit trail (create/update/toggle) and hard delete
- Audit failures do not roll back the tier mutation
"""

from decimal import Decimal
from unittest.mock import patch

import pytest
from sqlalchemy import func, select
from sqlalchemy.exc import OperationalError

from kaza.models import BrokerLevel, BrokerTier, ManagerTier, TierChangeAction, TierChangeEvent
from kaza.services import tier_admin
from kaza.services.errors import NotFoundError, TierConflictError, TierValidationError


async def _events(db):
    result = await db.execute(select(TierChangeEvent).order_by(TierChangeEvent.id))
    return list(result.scalars().all())


# ── Validation ───────────────────────────────────────────


class TestValidation:
    def test_percentage_bounds(self):
        assert tier_admin.validate_percentage("0") == Decimal("0")
        assert tier_admin.validate_percentage(100) == Decimal("100")
        for bad in (-1, "100.01", 250):
            with pytest.raises(TierValidationError):
                tier_admin.validate_percentage(bad)

    def test_percentage_required_and_numeric(self):
        for bad in (None, "", "abc", "NaN"):
            with pytest.raises(TierValidationError):
                tier_admin.validate_percentage(bad)

    def test_positive_int(self):
        assert tier_admin.validate_positive_int("3", "sequence_number") == 3
        assert tier_admin.validate_positive_int(2.0, "sequence_number") == 2
        for bad in (0, -2, 1.5, True, None, "x"):
            with pytest.raises(TierValidationError):
                tier_admin.validate_positive_int(bad, "sequence_number")

    def test_manager_range(self):
        assert tier_admin.validate_manager_range(6, 10) == (6, 10)
        assert tier_admin.validate_manager_range(11, None) == (11, None)
        assert tier_admin.validate_manager_range(4, 4) == (4, 4)
        with pytest.raises(TierValidationError):
            tier_admin.validate_manager_range(10, 6)
        with pytest.raises(TierValidationError):
            tier_admin.validate_manager_range(0, None)

    def test_labels(self):
        label = tier_admin.format_manager_tier_label
        assert label(ManagerTier(range_start=11, range_end=None)) == "11+ vendas"
        assert label(ManagerTier(range_start=1, range_end=1)) == "1 venda"
        assert label(ManagerTier(range_start=3, range_end=3)) == "3 vendas"
        assert label(ManagerTier(range_start=1, range_end=5)) == "1 a 5 vendas"


# ── Broker tiers ─────────────────────────────────────────


class TestBrokerTiers:
    @pytest.mark.asyncio
    async def test_create_and_list(self, db_session):
        await tier_admin.create_broker_tier(db_session, BrokerLevel.SENIOR, 3, "15")
        await tier_admin.create_broker_tier(db_session, BrokerLevel.SENIOR, 1, "10")
        await tier_admin.create_broker_tier(db_session, BrokerLevel.JUNIOR, 1, "5")

        senior = await tier_admin.list_broker_tiers(db_session, BrokerLevel.SENIOR)
        assert [t.sequence_number for t in senior] == [1, 3]
        assert len(await tier_admin.list_broker_tiers(db_session)) == 3

    @pytest.mark.asyncio
    async def test_duplicate_rejected(self, db_session):
        await tier_admin.create_broker_tier(db_session, BrokerLevel.PLENO, 2, "12")
        with pytest.raises(TierConflictError):
            await tier_admin.create_broker_tier(db_session, BrokerLevel.PLENO, 2, "13")

    @pytest.mark.asyncio
    async def test_same_sequence_other_level_allowed(self, db_session):
        await tier_admin.create_broker_tier(db_session, BrokerLevel.PLENO, 2, "12")
        tier = await tier_admin.create_broker_tier(db_session, BrokerLevel.CLOSER, 2, "12")
        assert tier.id is not None

    @pytest.mark.asyncio
    async def test_storage_constraint_reported_as_conflict(self, db_session):
        await tier_admin.create_broker_tier(db_session, BrokerLevel.SENIOR, 1, "10")

        # Simulate a concurrent creator that passed the pre-check
        with patch.object(db_session, "scalar", return_value=None):
            with pytest.raises(TierConflictError):
                await tier_admin.create_broker_tier(db_session, BrokerLevel.SENIOR, 1, "11")

        count = await db_session.scalar(select(func.count()).select_from(BrokerTier))
        assert count == 1

    @pytest.mark.asyncio
    async def test_invalid_input_not_written(self, db_session):
        with pytest.raises(TierValidationError):
            await tier_admin.create_broker_tier(db_session, BrokerLevel.SENIOR, 0, "10")
        with pytest.raises(TierValidationError):
            await tier_admin.create_broker_tier(db_session, "INTERN", 1, "10")
        with pytest.raises(TierValidationError):
            await tier_admin.create_broker_tier(db_session, BrokerLevel.SENIOR, 1, "101")

        count = await db_session.scalar(select(func.count()).select_from(BrokerTier))
        assert count == 0

    @pytest.mark.asyncio
    async def test_update_percentage(self, db_session):
        tier = await tier_admin.create_broker_tier(db_session, BrokerLevel.SENIOR, 1, "10")
        updated = await tier_admin.update_broker_tier_percentage(db_session, tier.id, "11.5")
        assert updated.percentage == Decimal("11.5")

    @pytest.mark.asyncio
    async def test_deactivate_is_soft(self, db_session):
        tier = await tier_admin.create_broker_tier(db_session, BrokerLevel.SENIOR, 1, "10")
        await tier_admin.deactivate_broker_tier(db_session, tier.id)

        assert await tier_admin.list_broker_tiers(db_session, BrokerLevel.SENIOR) == []
        row = await db_session.get(BrokerTier, tier.id)
        assert row is not None
        assert row.active is False

        with pytest.raises(NotFoundError):
            await tier_admin.update_broker_tier_percentage(db_session, tier.id, "12")

    @pytest.mark.asyncio
    async def test_sequence_reusable_after_deactivation(self, db_session):
        tier = await tier_admin.create_broker_tier(db_session, BrokerLevel.SENIOR, 1, "10")
        await tier_admin.deactivate_broker_tier(db_session, tier.id)

        replacement = await tier_admin.create_broker_tier(db_session, BrokerLevel.SENIOR, 1, "12")
        assert replacement.id != tier.id

    @pytest.mark.asyncio
    async def test_broker_mutations_not_audited(self, db_session):
        tier = await tier_admin.create_broker_tier(db_session, BrokerLevel.SENIOR, 1, "10")
        await tier_admin.update_broker_tier_percentage(db_session, tier.id, "12")
        await tier_admin.deactivate_broker_tier(db_session, tier.id)
        assert await _events(db_session) == []


# ── Manager tiers ────────────────────────────────────────


class TestManagerTiers:
    @pytest.mark.asyncio
    async def test_create_records_event(self, db_session, director):
        tier = await tier_admin.create_manager_tier(db_session, director.id, 1, 5, "5")

        events = await _events(db_session)
        assert len(events) == 1
        assert events[0].tier_id == tier.id
        assert events[0].action == TierChangeAction.CREATED
        assert events[0].percentage_before is None
        assert events[0].percentage_after == Decimal("5")
        assert events[0].actor_id == director.id

    @pytest.mark.asyncio
    async def test_update_records_before_and_after(self, db_session, director):
        tier = await tier_admin.create_manager_tier(db_session, director.id, 1, 5, "5")
        updated = await tier_admin.update_manager_tier(db_session, director.id, tier.id, 1, 6, "6.5")

        assert updated.range_end == 6
        event = (await _events(db_session))[-1]
        assert event.action == TierChangeAction.UPDATED
        assert event.percentage_before == Decimal("5")
        assert event.percentage_after == Decimal("6.5")

    @pytest.mark.asyncio
    async def test_toggle_round_trip(self, db_session, director):
        tier = await tier_admin.create_manager_tier(db_session, director.id, 6, 10, "8")

        off = await tier_admin.toggle_manager_tier(db_session, director.id, tier.id)
        assert off.active is False
        on = await tier_admin.toggle_manager_tier(db_session, director.id, tier.id)
        assert on.active is True
        assert (on.range_start, on.range_end, on.percentage) == (6, 10, Decimal("8"))

        toggles = (await _events(db_session))[1:]
        assert [e.action for e in toggles] == [TierChangeAction.DEACTIVATED, TierChangeAction.ACTIVATED]
        for event in toggles:
            assert event.percentage_before == event.percentage_after == Decimal("8")

    @pytest.mark.asyncio
    async def test_list_includes_inactive(self, db_session, director):
        first = await tier_admin.create_manager_tier(db_session, director.id, 6, 10, "8")
        second = await tier_admin.create_manager_tier(db_session, director.id, 1, 5, "5")
        await tier_admin.toggle_manager_tier(db_session, director.id, first.id)

        tiers = await tier_admin.list_manager_tiers(db_session)
        assert [t.id for t in tiers] == [second.id, first.id]
        active = await tier_admin.list_manager_tiers(db_session, active_only=True)
        assert [t.id for t in active] == [second.id]

    @pytest.mark.asyncio
    async def test_invalid_range_not_written(self, db_session, director):
        with pytest.raises(TierValidationError):
            await tier_admin.create_manager_tier(db_session, director.id, 10, 5, "5")

        count = await db_session.scalar(select(func.count()).select_from(ManagerTier))
        assert count == 0
        assert await _events(db_session) == []

    @pytest.mark.asyncio
    async def test_delete_is_hard_and_keeps_history(self, db_session, director):
        tier = await tier_admin.create_manager_tier(db_session, director.id, 1, None, "5")
        await tier_admin.delete_manager_tier(db_session, tier.id)

        assert await db_session.get(ManagerTier, tier.id) is None
        events = await _events(db_session)
        assert [e.action for e in events] == [TierChangeAction.CREATED]
        assert events[0].tier_id == tier.id

    @pytest.mark.asyncio
    async def test_unknown_tier(self, db_session, director):
        with pytest.raises(NotFoundError):
            await tier_admin.toggle_manager_tier(db_session, director.id, 999)
        with pytest.raises(NotFoundError):
            await tier_admin.delete_manager_tier(db_session, 999)

    @pytest.mark.asyncio
    async def test_response_carries_label(self, db_session, director):
        tier = await tier_admin.create_manager_tier(db_session, director.id, 6, 10, "8")

        response = tier_admin.manager_tier_response(tier)

        assert response.id == tier.id
        assert response.label == "6 a 10 vendas"
        assert response.percentage == Decimal("8")
        assert response.active is True


class TestAuditFailure:
    @pytest.mark.asyncio
    async def test_failed_audit_keeps_tier_change(self, db_session, director):
        tier = await tier_admin.create_manager_tier(db_session, director.id, 1, 5, "5")
        real_commit = db_session.commit
        calls = {"n": 0}

        async def flaky_commit():
            calls["n"] += 1
            if calls["n"] == 2:
                raise OperationalError("INSERT INTO manager_tier_changes", {}, Exception("down"))
            await real_commit()

        with patch.object(db_session, "commit", side_effect=flaky_commit):
            updated = await tier_admin.update_manager_tier(db_session, director.id, tier.id, 1, 5, "7")

        assert updated.percentage == Decimal("7")
        row = await db_session.get(ManagerTier, tier.id)
        assert row.percentage == Decimal("7")

        events = await _events(db_session)
        assert [e.action for e in events] == [TierChangeAction.CREATED]


# ── History ──────────────────────────────────────────────


class TestHistory:
    @pytest.mark.asyncio
    async def test_newest_first_with_actor_name(self, db_session, director):
        tier = await tier_admin.create_manager_tier(db_session, director.id, 1, 5, "5")
        await tier_admin.toggle_manager_tier(db_session, director.id, tier.id)
        await tier_admin.create_manager_tier(db_session, None, 6, None, "8")

        rows = await tier_admin.recent_tier_changes(db_session, limit=10)
        actions = [event.action for event, _ in rows]
        assert actions == [
            TierChangeAction.CREATED,
            TierChangeAction.DEACTIVATED,
            TierChangeAction.CREATED,
        ]
        names = [name for _, name in rows]
        assert names == [None, "Diretora Ana", "Diretora Ana"]

    @pytest.mark.asyncio
    async def test_limit(self, db_session, director):
        tier = await tier_admin.create_manager_tier(db_session, director.id, 1, 5, "5")
        for _ in range(4):
            await tier_admin.toggle_manager_tier(db_session, director.id, tier.id)

        rows = await tier_admin.recent_tier_changes(db_session, limit=3)
        assert len(rows) == 3
