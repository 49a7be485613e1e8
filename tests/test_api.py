"""
Tests for the HTTP API.

Covers:
- Authentication and role checks
- Sales recording and broker commission card
- Tier administration status codes (201/409/422/404)
- Manager tier history, simulator and manager commission access
- Period setting and dashboard goals
- Live sales stream and live manager card over WebSocket
"""

import asyncio
from datetime import date
from decimal import Decimal

import pytest

from kaza.models import BrokerLevel, ProfileRole
from kaza.services import sales as sales_service
from kaza.services.realtime import change_feed


# ── Auth ─────────────────────────────────────────────────


class TestAuth:
    @pytest.mark.asyncio
    async def test_missing_token(self, client):
        response = await client.get("/api/sales")
        assert response.status_code == 401

    @pytest.mark.asyncio
    async def test_invalid_token(self, client):
        response = await client.get("/api/sales", headers={"Authorization": "Bearer nope"})
        assert response.status_code == 401

    @pytest.mark.asyncio
    async def test_cookie_token(self, client, junior, auth_headers):
        token = auth_headers(junior)["Authorization"].split(" ", 1)[1]
        client.cookies.set("access_token", token)
        response = await client.get("/api/sales")
        assert response.status_code == 200

    @pytest.mark.asyncio
    async def test_director_only(self, client, junior, auth_headers):
        response = await client.get("/api/tiers/manager", headers=auth_headers(junior))
        assert response.status_code == 403


# ── Sales ────────────────────────────────────────────────


class TestSalesApi:
    @pytest.mark.asyncio
    async def test_record_and_card(self, client, senior, add_broker_tiers, auth_headers):
        await add_broker_tiers(BrokerLevel.SENIOR, [(1, "10"), (3, "15"), (6, "20")])
        headers = auth_headers(senior)

        for _ in range(4):
            response = await client.post(
                "/api/sales",
                json={"sale_value": "250000", "sale_date": date.today().isoformat()},
                headers=headers,
            )
            assert response.status_code == 201

        assert response.json()["sequence_number_in_period"] == 4

        card = (await client.get("/api/commission/broker/me", headers=headers)).json()
        assert card["sales_count"] == 4
        assert card["current_tier_sequence"] == 3
        assert Decimal(card["total_commission"]) == Decimal("150000")
        assert card["sales_until_next_tier"] == 2

    @pytest.mark.asyncio
    async def test_rejects_non_positive_value(self, client, junior, auth_headers):
        response = await client.post("/api/sales", json={"sale_value": "0"}, headers=auth_headers(junior))
        assert response.status_code == 422

    @pytest.mark.asyncio
    async def test_rescind_and_delete(self, client, junior, director, auth_headers):
        created = await client.post("/api/sales", json={"sale_value": "1000"}, headers=auth_headers(junior))
        sale_id = created.json()["id"]

        rescinded = await client.post(f"/api/sales/{sale_id}/rescind", headers=auth_headers(junior))
        assert rescinded.json()["status"] == "RESCINDED"

        assert (await client.delete(f"/api/sales/{sale_id}", headers=auth_headers(junior))).status_code == 403
        assert (await client.delete(f"/api/sales/{sale_id}", headers=auth_headers(director))).status_code == 200
        assert (await client.delete(f"/api/sales/{sale_id}", headers=auth_headers(director))).status_code == 404


# ── Tiers ────────────────────────────────────────────────


class TestTierApi:
    @pytest.mark.asyncio
    async def test_broker_tier_conflict(self, client, director, auth_headers):
        payload = {"level": "PLENO", "sequence_number": 2, "percentage": "12.5"}
        first = await client.post("/api/tiers/broker", json=payload, headers=auth_headers(director))
        assert first.status_code == 201

        second = await client.post("/api/tiers/broker", json=payload, headers=auth_headers(director))
        assert second.status_code == 409

    @pytest.mark.asyncio
    async def test_broker_tier_validation(self, client, director, auth_headers):
        payload = {"level": "PLENO", "sequence_number": 0, "percentage": "120"}
        response = await client.post("/api/tiers/broker", json=payload, headers=auth_headers(director))
        assert response.status_code == 422

    @pytest.mark.asyncio
    async def test_broker_tier_soft_delete(self, client, director, auth_headers):
        headers = auth_headers(director)
        created = await client.post(
            "/api/tiers/broker",
            json={"level": "CLOSER", "sequence_number": 1, "percentage": "9"},
            headers=headers,
        )
        tier_id = created.json()["id"]

        assert (await client.delete(f"/api/tiers/broker/{tier_id}", headers=headers)).status_code == 200
        listed = await client.get("/api/tiers/broker", params={"level": "CLOSER"}, headers=headers)
        assert listed.json() == []
        missing = await client.put(f"/api/tiers/broker/{tier_id}", json={"percentage": "10"}, headers=headers)
        assert missing.status_code == 404

    @pytest.mark.asyncio
    async def test_manager_tier_range_validation(self, client, director, auth_headers):
        response = await client.post(
            "/api/tiers/manager",
            json={"range_start": 10, "range_end": 5, "percentage": "5"},
            headers=auth_headers(director),
        )
        assert response.status_code == 422

    @pytest.mark.asyncio
    async def test_manager_tier_lifecycle_and_history(self, client, director, auth_headers):
        headers = auth_headers(director)
        created = await client.post(
            "/api/tiers/manager",
            json={"range_start": 11, "range_end": None, "percentage": "12"},
            headers=headers,
        )
        assert created.status_code == 201
        tier = created.json()
        assert tier["label"] == "11+ vendas"

        toggled = await client.post(f"/api/tiers/manager/{tier['id']}/toggle", headers=headers)
        assert toggled.json()["active"] is False

        updated = await client.put(
            f"/api/tiers/manager/{tier['id']}",
            json={"range_start": 11, "range_end": 20, "percentage": "13"},
            headers=headers,
        )
        assert updated.json()["label"] == "11 a 20 vendas"

        assert (await client.delete(f"/api/tiers/manager/{tier['id']}", headers=headers)).status_code == 200

        history = (await client.get("/api/tiers/manager/history", headers=headers)).json()
        assert [h["action"] for h in history] == ["UPDATED", "DEACTIVATED", "CREATED"]
        assert all(h["actor_name"] == "Diretora Ana" for h in history)
        assert all(h["tier_id"] == tier["id"] for h in history)
        assert Decimal(history[0]["percentage_before"]) == Decimal("12")
        assert Decimal(history[0]["percentage_after"]) == Decimal("13")

    @pytest.mark.asyncio
    async def test_history_without_actor(self, client, db_session, director, auth_headers):
        from kaza.services import tier_admin

        await tier_admin.create_manager_tier(db_session, None, 1, None, "5")

        history = (await client.get("/api/tiers/manager/history", headers=auth_headers(director))).json()
        assert history[0]["actor_id"] is None
        assert history[0]["actor_name"] == "Unknown"


# ── Manager commission ───────────────────────────────────


class TestManagerCommissionApi:
    @pytest.mark.asyncio
    async def test_simulator(self, client, director, add_manager_tiers, auth_headers):
        await add_manager_tiers([(1, 5, "5"), (6, 10, "8"), (11, None, "12")])

        response = await client.post(
            "/api/commission/manager/simulate",
            json={"total_sales": 7, "total_vgv": "1000000"},
            headers=auth_headers(director),
        )
        data = response.json()
        assert data["matched"] is True
        assert data["tier"]["range_start"] == 6
        assert Decimal(data["applied_commission"]) == Decimal("80000")
        assert data["sales_until_next_tier"] == 4

    @pytest.mark.asyncio
    async def test_simulator_gap(self, client, director, add_manager_tiers, auth_headers):
        await add_manager_tiers([(5, None, "5")])

        response = await client.post(
            "/api/commission/manager/simulate",
            json={"total_sales": 2, "total_vgv": "1000"},
            headers=auth_headers(director),
        )
        data = response.json()
        assert data["matched"] is False
        assert data["tier"] is None
        assert Decimal(data["applied_commission"]) == Decimal("0")

    @pytest.mark.asyncio
    async def test_manager_sees_only_own(self, client, manager, make_profile, auth_headers):
        other = await make_profile(ProfileRole.MANAGER, "Gerente Outro")
        today = date.today()
        params = {"month": today.month, "year": today.year}

        own = await client.get(f"/api/commission/manager/{manager.id}", params=params, headers=auth_headers(manager))
        assert own.status_code == 200
        assert own.json()["total_sales"] == 0

        denied = await client.get(f"/api/commission/manager/{other.id}", params=params, headers=auth_headers(manager))
        assert denied.status_code == 403

    @pytest.mark.asyncio
    async def test_card(self, client, manager, junior, add_manager_tiers, auth_headers):
        await add_manager_tiers([(1, 5, "5"), (6, None, "8")])
        await client.post("/api/sales", json={"sale_value": "200000"}, headers=auth_headers(junior))

        card = (await client.get("/api/commission/manager/me/card", headers=auth_headers(manager))).json()
        assert card["total_sales"] == 1
        assert card["current_tier"]["label"] == "1 a 5 vendas"
        assert Decimal(card["applied_commission"]) == Decimal("10000")


# ── Settings and dashboard ───────────────────────────────


class TestSettingsApi:
    @pytest.mark.asyncio
    async def test_period_setting(self, client, director, junior, auth_headers):
        assert (await client.get("/api/settings/period", headers=auth_headers(junior))).json() == {
            "period_type": "MONTHLY"
        }

        denied = await client.put("/api/settings/period", json={"period_type": "ANNUAL"}, headers=auth_headers(junior))
        assert denied.status_code == 403

        changed = await client.put(
            "/api/settings/period", json={"period_type": "QUARTERLY"}, headers=auth_headers(director)
        )
        assert changed.json() == {"period_type": "QUARTERLY"}

        bad = await client.put("/api/settings/period", json={"period_type": "WEEKLY"}, headers=auth_headers(director))
        assert bad.status_code == 422


class TestDashboardApi:
    @pytest.mark.asyncio
    async def test_totals_and_goal(self, client, director, junior, auth_headers):
        today = date.today()
        await client.post("/api/sales", json={"sale_value": "250000"}, headers=auth_headers(junior))
        second = await client.post("/api/sales", json={"sale_value": "100000"}, headers=auth_headers(junior))
        await client.post(f"/api/sales/{second.json()['id']}/rescind", headers=auth_headers(junior))

        goal = await client.put(
            "/api/dashboard/goals",
            json={
                "profile_id": junior.id,
                "month": today.month,
                "year": today.year,
                "target_vgv": "500000",
                "target_sales": 4,
            },
            headers=auth_headers(director),
        )
        assert goal.status_code == 200

        data = (await client.get("/api/dashboard", headers=auth_headers(junior))).json()
        assert data["total_sales"] == 2
        assert data["active_sales"] == 1
        assert data["rescinded_sales"] == 1
        assert Decimal(data["total_vgv"]) == Decimal("250000")
        assert data["goal_vgv_progress"] == 50.0
        assert data["goal_sales_progress"] == 25.0


# ── Live streams ─────────────────────────────────────────


async def _eventually(predicate, timeout=1):
    async def _wait():
        while not predicate():
            await asyncio.sleep(0.01)

    await asyncio.wait_for(_wait(), timeout)


class TestSalesChangesStream:
    @pytest.mark.asyncio
    async def test_rejects_missing_token(self, db_session, fake_websocket):
        from kaza.api.sales import sales_changes

        ws = fake_websocket()
        await sales_changes(ws, db=db_session)

        assert ws.accepted is False
        assert ws.close_code == 1008

    @pytest.mark.asyncio
    async def test_forwards_and_releases_on_disconnect(self, db_session, junior, auth_headers, fake_websocket):
        from kaza.api.sales import sales_changes

        baseline = change_feed.subscriber_count("sales")
        ws = fake_websocket(auth_headers(junior))
        stream = asyncio.create_task(sales_changes(ws, db=db_session))
        await _eventually(lambda: change_feed.subscriber_count("sales") == baseline + 1)

        sale = await sales_service.record_sale(db_session, junior, Decimal("1000"), date(2026, 3, 1))
        await ws.wait_sent(1)
        assert ws.sent[0] == {"table": "sales", "event": "INSERT", "record_id": sale.id}

        # No further sales event is needed to notice the client left
        ws.client_disconnects()
        await asyncio.wait_for(stream, timeout=1)
        assert change_feed.subscriber_count("sales") == baseline


class TestManagerCommissionLive:
    @pytest.mark.asyncio
    async def test_card_follows_sales_and_period(
        self, db_session, manager, junior, add_manager_tiers, auth_headers, fake_websocket, session_factory
    ):
        from kaza.api.commission import manager_commission_live

        await add_manager_tiers([(1, 5, "5"), (6, None, "8")])
        baseline = change_feed.subscriber_count("sales")
        ws = fake_websocket(auth_headers(manager))
        stream = asyncio.create_task(
            manager_commission_live(ws, manager.id, 3, 2026, db=db_session, session_factory=session_factory)
        )

        await ws.wait_sent(1)
        assert ws.sent[0]["type"] == "card"
        assert (ws.sent[0]["data"]["month"], ws.sent[0]["data"]["total_sales"]) == (3, 0)

        await sales_service.record_sale(db_session, junior, Decimal("100000"), date(2026, 3, 10))
        await ws.wait_sent(2)
        assert ws.sent[1]["data"]["total_sales"] == 1
        assert Decimal(ws.sent[1]["data"]["applied_commission"]) == Decimal("5000")

        ws.client_sends({"month": 13, "year": 2026})
        await ws.wait_sent(3)
        assert ws.sent[2] == {"type": "error", "detail": "Invalid month: 13"}

        ws.client_sends({"month": 4, "year": 2026})
        await ws.wait_sent(4)
        assert ws.sent[3]["type"] == "card"
        assert (ws.sent[3]["data"]["month"], ws.sent[3]["data"]["total_sales"]) == (4, 0)

        ws.client_sends({"period": "next"})
        await ws.wait_sent(5)
        assert ws.sent[4]["type"] == "error"

        ws.client_disconnects()
        await asyncio.wait_for(stream, timeout=1)
        assert change_feed.subscriber_count("sales") == baseline

    @pytest.mark.asyncio
    async def test_other_manager_rejected(
        self, db_session, manager, make_profile, auth_headers, fake_websocket, session_factory
    ):
        from kaza.api.commission import manager_commission_live

        other = await make_profile(ProfileRole.MANAGER, "Gerente Outro")
        ws = fake_websocket(auth_headers(manager))
        await manager_commission_live(ws, other.id, 3, 2026, db=db_session, session_factory=session_factory)

        assert ws.accepted is False
        assert ws.close_code == 1008

    @pytest.mark.asyncio
    async def test_director_allowed(self, db_session, director, manager, auth_headers, fake_websocket, session_factory):
        from kaza.api.commission import manager_commission_live

        ws = fake_websocket(auth_headers(director))
        stream = asyncio.create_task(
            manager_commission_live(ws, manager.id, 3, 2026, db=db_session, session_factory=session_factory)
        )
        await ws.wait_sent(1)
        assert ws.sent[0]["data"]["manager_id"] == manager.id

        ws.client_disconnects()
        await asyncio.wait_for(stream, timeout=1)
