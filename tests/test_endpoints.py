"""
Integration tests for API endpoints using SQLite in-memory DB.
"""
from decimal import Decimal

import pytest

NOW = "2024-03-10T15:00:00-03:00"
YESTERDAY = "2024-03-09T10:00:00-03:00"


def _new_client(client, name="Acme", **extra):
    r = client.post("/clients", json={"name": name, **extra})
    assert r.status_code == 201
    return r.json()


class TestHealth:
    def test_health(self, client):
        r = client.get("/health")
        assert r.status_code == 200
        assert r.json()["status"] == "ok"


class TestClients:
    def test_create_and_read(self, client):
        created = _new_client(client, "Padaria", monthly_value="1200.50")
        assert created["cs_classification"] == "normal"
        assert created["client_label"] is None
        assert created["status"] == "onboarding"

        r = client.get(f"/clients/{created['id']}")
        assert r.status_code == 200
        assert r.json()["name"] == "Padaria"

    def test_label_flow(self, client):
        cid = _new_client(client)["id"]

        r = client.put(f"/clients/{cid}/label", json={"label": "ruim"})
        assert r.status_code == 200
        body = r.json()
        assert body["client"]["cs_classification"] == "critico"
        assert "Ruim" in body["client"]["cs_classification_reason"]
        assert body["reset"] is False

        body = client.put(f"/clients/{cid}/label", json={"label": "bom"}).json()
        assert body["client"]["cs_classification"] == "normal"
        assert body["client"]["cs_classification_reason"] is None
        assert body["reset"] is True

        body = client.put(f"/clients/{cid}/label", json={"label": "medio"}).json()
        assert body["client"]["cs_classification"] == "alerta"

        body = client.put(f"/clients/{cid}/label", json={"label": None}).json()
        assert body["client"]["client_label"] is None
        assert body["client"]["cs_classification"] == "alerta"

    def test_manual_classification(self, client):
        cid = _new_client(client)["id"]
        r = client.put(
            f"/clients/{cid}/classification",
            json={"classification": "encerrado", "reason": "Contrato encerrado"},
        )
        assert r.status_code == 200
        assert r.json()["cs_classification"] == "encerrado"

    def test_register_contact(self, client):
        cid = _new_client(client)["id"]
        r = client.post(f"/clients/{cid}/contact", params={"now": NOW})
        assert r.status_code == 200
        assert r.json()["last_cs_contact_at"].startswith("2024-03-10T18:00:00")

    def test_churn_opens_analysis_task(self, client, make_profile):
        ana = make_profile("Ana")
        cid = _new_client(client, "Loja", assigned_ads_manager=ana.id)["id"]

        r = client.post(f"/clients/{cid}/churn", params={"now": NOW})
        assert r.status_code == 200
        body = r.json()
        assert body["client"]["status"] == "churned"
        assert body["client"]["archived"] is True
        assert body["client"]["cs_classification"] == "encerrado"
        task = body["analysis_task"]
        assert task["assignee_id"] == ana.id
        assert task["priority"] == "high"
        assert task["due_date"] == "2024-03-11"

        again = client.post(f"/clients/{cid}/churn", params={"now": NOW})
        assert again.status_code == 400

    def test_churn_without_manager_has_no_task(self, client):
        cid = _new_client(client)["id"]
        body = client.post(f"/clients/{cid}/churn", params={"now": NOW}).json()
        assert body["analysis_task"] is None

    def test_product_value_upsert(self, client):
        cid = _new_client(client)["id"]
        first = client.put(f"/clients/{cid}/products/Meta-Ads", json={"monthly_value": "1500"})
        assert first.status_code == 200
        second = client.put(f"/clients/{cid}/products/meta-ads", json={"monthly_value": "1800"})
        assert second.json()["id"] == first.json()["id"]
        assert second.json()["product_slug"] == "meta-ads"
        assert Decimal(second.json()["monthly_value"]) == Decimal("1800")

    def test_contract_badge(self, client):
        cid = _new_client(client)["id"]
        r = client.get(f"/clients/{cid}/contract", params={"today": "2024-03-10"})
        assert r.json()["status"] == "not_signed"

        r = client.put(
            f"/clients/{cid}/contract",
            json={"signed_at": "2024-01-01", "expires_at": "2024-03-20"},
        )
        assert r.status_code == 200

        r = client.get(f"/clients/{cid}/contract", params={"today": "2024-03-10"})
        body = r.json()
        assert body["status"] == "expiring"
        assert body["days_until_expiration"] == 10

    def test_onboarding(self, client):
        cid = _new_client(client)["id"]
        for milestone, title in ((1, "Kickoff"), (2, "Pixel")):
            client.post("/tasks", json={
                "kind": "onboarding", "title": title, "related_client_id": cid,
                "milestone": milestone, "task_type": title.lower(),
            })
        body = client.get(f"/clients/{cid}/onboarding").json()
        assert body["progress"] == 0
        assert body["current_step"] == "kickoff"
        assert [m["milestone"] for m in body["milestones"]] == [1, 2]
        assert body["milestones"][0]["tasks"][0]["title"] == "Kickoff"


class TestTracking:
    def test_add_is_idempotent(self, client, make_profile):
        ana = make_profile("Ana")
        cid = _new_client(client)["id"]
        payload = {"client_id": cid, "manager_id": ana.id}

        first = client.post("/tracking", json=payload)
        assert first.status_code == 201
        second = client.post("/tracking", json=payload)
        assert second.status_code == 200
        assert second.json()["id"] == first.json()["id"]

    def test_move_and_pending(self, client, make_profile):
        ana = make_profile("Ana")
        moved = client.post("/tracking", json={"client_id": _new_client(client, "Um")["id"], "manager_id": ana.id}).json()
        stale = client.post("/tracking", json={"client_id": _new_client(client, "Dois")["id"], "manager_id": ana.id}).json()

        r = client.post(f"/tracking/{moved['id']}/move", json={"day": "quarta"}, params={"now": NOW})
        assert r.status_code == 200
        assert r.json()["current_day"] == "quarta"
        client.post(f"/tracking/{stale['id']}/move", json={"day": "terca"}, params={"now": YESTERDAY})

        r = client.get("/tracking/pending", params={"manager_id": ana.id, "now": NOW})
        assert [t["id"] for t in r.json()] == [stale["id"]]

    def test_pending_is_per_card_not_per_client(self, client, make_profile):
        ana = make_profile("Ana")
        bia = make_profile("Bia")
        cid = _new_client(client, "Compartilhado")["id"]
        moved = client.post("/tracking", json={"client_id": cid, "manager_id": ana.id}).json()
        stale = client.post("/tracking", json={"client_id": cid, "manager_id": bia.id}).json()

        client.post(f"/tracking/{moved['id']}/move", json={"day": "quarta"}, params={"now": NOW})
        client.post(f"/tracking/{stale['id']}/move", json={"day": "terca"}, params={"now": "2024-03-01T10:00:00-03:00"})

        r = client.get("/tracking/pending", params={"now": NOW})
        assert [t["id"] for t in r.json()] == [stale["id"]]

    def test_remove(self, client, make_profile):
        ana = make_profile("Ana")
        record = client.post("/tracking", json={"client_id": _new_client(client)["id"], "manager_id": ana.id}).json()
        assert client.delete(f"/tracking/{record['id']}").status_code == 204
        assert client.delete(f"/tracking/{record['id']}").status_code == 404


class TestTasks:
    def test_overdue_oldest_first(self, client):
        for due in ("2024-03-05", "2024-03-01", "2024-03-03", "2024-03-10"):
            client.post("/tasks", json={"kind": "ads", "title": f"Due {due}", "due_date": due})
        done = client.post("/tasks", json={"kind": "ads", "title": "Done", "due_date": "2024-02-01"}).json()
        client.patch(f"/tasks/{done['id']}", json={"status": "done"})

        r = client.get("/tasks/overdue", params={"today": "2024-03-10"})
        assert r.status_code == 200
        assert [t["due_date"] for t in r.json()] == ["2024-03-01", "2024-03-03", "2024-03-05"]

    def test_overdue_filters(self, client):
        client.post("/tasks", json={"kind": "ads", "title": "A", "due_date": "2024-03-01", "assignee_id": 1})
        client.post("/tasks", json={"kind": "comercial", "title": "B", "due_date": "2024-03-01", "assignee_id": 2})

        by_kind = client.get("/tasks/overdue", params={"today": "2024-03-10", "kind": "comercial"}).json()
        assert [t["title"] for t in by_kind] == ["B"]
        by_assignee = client.get("/tasks/overdue", params={"today": "2024-03-10", "assignee_id": 1}).json()
        assert [t["title"] for t in by_assignee] == ["A"]

    def test_archive(self, client):
        task = client.post("/tasks", json={"kind": "ads", "title": "Old", "due_date": "2024-03-01"}).json()
        r = client.post(f"/tasks/{task['id']}/archive", params={"now": NOW})
        assert r.json()["archived"] is True
        assert client.get("/tasks/overdue", params={"today": "2024-03-10"}).json() == []


class TestJustificationFlow:
    @pytest.fixture()
    def seeded(self, client, make_profile):
        ana = make_profile("Ana")
        cid = _new_client(client, "Cliente Um", assigned_ads_manager=ana.id)["id"]
        record = client.post("/tracking", json={"client_id": cid, "manager_id": ana.id}).json()
        client.post(f"/tracking/{record['id']}/move", json={"day": "terca"}, params={"now": YESTERDAY})
        task = client.post("/tasks", json={
            "kind": "ads", "title": "Relatorio", "due_date": "2024-03-01", "assignee_id": ana.id,
        }).json()
        return {"ana": ana, "task": task, "record": record}

    def _start(self, client, user_id):
        r = client.post("/justification/sessions", json={"user_id": user_id}, params={"now": NOW})
        assert r.status_code == 201
        return r.json()

    def test_full_session(self, client, seeded):
        session = self._start(client, seeded["ana"].id)
        sid = session["session_id"]
        task_key = f"task:{seeded['task']['id']}"
        tracking_key = f"tracking:{seeded['record']['id']}"

        assert session["state"] == "showing"
        assert session["current"]["key"] == task_key
        assert [i["key"] for i in session["pending"]] == [task_key, tracking_key]

        blank = client.post(
            f"/justification/sessions/{sid}/submit",
            json={"item_key": task_key, "justification": "   "},
            params={"now": NOW},
        )
        assert blank.status_code == 400
        polled = client.get(f"/justification/sessions/{sid}", params={"now": NOW}).json()
        assert polled["current"]["key"] == task_key

        r = client.post(
            f"/justification/sessions/{sid}/submit",
            json={"item_key": task_key, "justification": "Cliente atrasou o briefing"},
            params={"now": NOW},
        )
        assert r.status_code == 200
        assert r.json()["state"] == "justified"

        polled = client.get(f"/justification/sessions/{sid}", params={"now": "2024-03-10T15:00:01-03:00"}).json()
        assert polled["state"] == "showing"
        assert polled["current"]["key"] == tracking_key
        assert polled["current"]["due"] == "2024-03-09"

        dismissed = client.post(
            f"/justification/sessions/{sid}/dismiss",
            params={"now": "2024-03-10T15:00:02-03:00"},
        ).json()
        assert dismissed["state"] == "dismissed"

        polled = client.get(f"/justification/sessions/{sid}", params={"now": "2024-03-10T15:00:05-03:00"}).json()
        assert polled["state"] == "idle"
        assert polled["pending_count"] == 0

        assert client.delete(f"/justification/sessions/{sid}").status_code == 204
        assert client.get(f"/justification/sessions/{sid}").status_code == 404

    def test_submit_for_item_not_shown_is_409(self, client, seeded):
        sid = self._start(client, seeded["ana"].id)["session_id"]
        r = client.post(
            f"/justification/sessions/{sid}/submit",
            json={"item_key": f"tracking:{seeded['record']['id']}", "justification": "texto"},
            params={"now": NOW},
        )
        assert r.status_code == 409
        assert r.json()["code"] == "STALE_ITEM"

    def test_other_session_sees_stale_item(self, client, seeded):
        task_key = f"task:{seeded['task']['id']}"
        first = self._start(client, seeded["ana"].id)["session_id"]
        second = self._start(client, seeded["ana"].id)["session_id"]

        client.post(
            f"/justification/sessions/{first}/submit",
            json={"item_key": task_key, "justification": "Resolvido"},
            params={"now": NOW},
        )
        r = client.post(
            f"/justification/sessions/{second}/submit",
            json={"item_key": task_key, "justification": "Outra"},
            params={"now": NOW},
        )
        assert r.status_code == 409

    def test_dismiss_without_item_is_400(self, client, make_profile):
        ana = make_profile("Ana")
        sid = self._start(client, ana.id)["session_id"]
        r = client.post(f"/justification/sessions/{sid}/dismiss", params={"now": NOW})
        assert r.status_code == 400

    def test_unknown_user_is_404(self, client):
        r = client.post("/justification/sessions", json={"user_id": 999})
        assert r.status_code == 404


class TestReports:
    def test_manager_report(self, client, make_profile):
        ana = make_profile("Ana")
        cid = _new_client(client, "Um", assigned_ads_manager=ana.id)["id"]
        client.put(f"/clients/{cid}/label", json={"label": "ruim"})
        _new_client(client, "Dois", assigned_ads_manager=ana.id)

        r = client.get("/reports/managers", params={"reference_time": NOW})
        assert r.status_code == 200
        body = r.json()
        assert body["day"] == "2024-03-10"
        (stats,) = body["managers"]
        assert stats["manager_name"] == "Ana"
        assert stats["ruim"] == 1
        assert stats["medio"] == 1
        assert stats["unmapped_labels"] == 1
        assert stats["documented_yesterday"] is False

    def test_cs_overview(self, client, make_profile):
        ana = make_profile("Ana")
        for name in ("Um", "Dois", "Tres"):
            _new_client(client, name, assigned_ads_manager=ana.id)
        cid = _new_client(client, "Quatro", assigned_ads_manager=ana.id)["id"]
        client.put(f"/clients/{cid}/label", json={"label": "medio"})

        body = client.get("/reports/cs-overview", params={"reference_time": NOW}).json()
        assert body["total_clients"] == 4
        assert body["health_score"] == 75
        assert body["managers"][0]["alerta"] == 1

    def test_empty_overview(self, client):
        body = client.get("/reports/cs-overview").json()
        assert body["health_score"] == 100


class TestOKRs:
    def test_lifecycle(self, client):
        r = client.post("/okrs", json={"title": "Reduzir churn", "target_value": "10", "current_value": "3"})
        assert r.status_code == 201
        okr = r.json()
        assert okr["progress"] == 30
        assert okr["status"] == "active"

        r = client.patch(f"/okrs/{okr['id']}", json={"current_value": "10"})
        assert r.json()["progress"] == 100

        client.post("/okrs", json={"title": "Semana", "type": "weekly"})
        r = client.post("/okrs/archive-weekly")
        assert r.json() == {"archived": 1}

        assert [o["id"] for o in client.get("/okrs").json()] == [okr["id"]]
        client.post(f"/okrs/{okr['id']}/archive")
        assert client.get("/okrs").json() == []

    def test_due_soon(self, client):
        client.post("/okrs", json={"title": "Sprint", "end_date": "2024-03-12"})
        client.post("/okrs", json={"title": "Longe", "end_date": "2024-06-01"})
        body = client.get("/okrs/due-soon", params={"today": "2024-03-10"}).json()
        assert [o["title"] for o in body] == ["Sprint"]
