"""Tests for the engine inspection and trigger endpoints."""

from bodymap.syncs import ALL_SYNCS


def test_health(client):
    response = client.get("/health")

    assert response.status_code == 200
    assert response.json() == {"status": "ok"}


class TestRulesEndpoint:
    """Test GET /api/engine/rules"""

    def test_list_rules(self, client):
        response = client.get("/api/engine/rules")

        assert response.status_code == 200
        data = response.json()
        assert data["count"] == len(ALL_SYNCS)
        assert data["frozen"] is True
        names = {rule["name"] for rule in data["rules"]}
        assert "GenerateDailyMaps" in names
        assert "RejectInactiveSession" in names

    def test_rule_shape(self, client):
        data = client.get("/api/engine/rules").json()
        [rule] = [r for r in data["rules"] if r["name"] == "HandleGetCurrentMapRequest"]

        assert rule["when"][0].startswith("[Requesting.request")
        assert [step["type"] for step in rule["where"]] == ["query", "filter", "map", "query"]
        assert rule["where"][0]["query"] == "UserAuthentication._getSession"
        assert rule["then"][0].startswith("[Requesting.respond")


class TestContractsEndpoint:
    """Test GET /api/engine/contracts"""

    def test_list_all(self, client):
        data = client.get("/api/engine/contracts").json()

        assert data["count"] == len(data["contracts"])
        modules = {c["module"] for c in data["contracts"]}
        assert "BreakThroughTracking" in modules

    def test_filter_by_module(self, client):
        data = client.get("/api/engine/contracts", params={"module": "PainLocationScoring"}).json()

        contracts = {c["name"]: c for c in data["contracts"]}
        assert contracts["addRegion"]["kind"] == "ACTION"
        assert contracts["addRegion"]["inputs"] == ["user", "map", "regionName"]
        assert contracts["addRegion"]["outputs"] == ["region"]
        assert contracts["_getRegion"]["kind"] == "QUERY"
        assert all(c["module"] == "PainLocationScoring" for c in data["contracts"])

    def test_requesting_accepts_any_fields(self, client):
        data = client.get("/api/engine/contracts", params={"module": "Requesting"}).json()

        request = next(c for c in data["contracts"] if c["name"] == "request")
        assert request["extra_inputs"] is True
        assert request["required"] == ["path"]


class TestInvokeEndpoint:
    """Test POST /api/engine/invoke"""

    def test_daily_generation_runs_once(self, client, logged_in):
        body = {"module": "BodyMapGeneration", "operation": "triggerDailyMapGeneration"}

        first = client.post("/api/engine/invoke", json=body)
        second = client.post("/api/engine/invoke", json=body)

        assert first.status_code == 200
        report = first.json()
        assert report["trigger"]["failed"] is False
        assert report["ok"] is True
        generated = [o for o in report["occurrences"] if o["operation"] == "generateMap"]
        assert any(o["inputs"]["user"] == logged_in["user"] for o in generated)
        assert all(o["cause"] == "GenerateDailyMaps" for o in generated)

        assert second.status_code == 200
        assert second.json()["trigger"]["failed"] is True
        assert second.json()["trigger"]["outputs"]["error"] == "Daily map generation has already run for today."

    def test_unknown_operation(self, client):
        response = client.post("/api/engine/invoke", json={"module": "Nope", "operation": "nothing"})

        assert response.status_code == 404

    def test_query_cannot_be_invoked(self, client):
        response = client.post(
            "/api/engine/invoke",
            json={"module": "BodyMapGeneration", "operation": "_getUsers"},
        )

        assert response.status_code == 400
        assert "is a query" in response.json()["detail"]

    def test_missing_module(self, client):
        response = client.post("/api/engine/invoke", json={"operation": "saveMap"})

        assert response.status_code == 422

    def test_requests_cannot_be_opened(self, client):
        response = client.post(
            "/api/engine/invoke",
            json={"module": "Requesting", "operation": "request", "inputs": {"path": "/x"}},
        )

        assert response.status_code == 400
        assert len(client.app.state.runtime.requesting) == 0

    def test_report_masks_passwords(self, client, credentials):
        response = client.post(
            "/api/engine/invoke",
            json={"module": "UserAuthentication", "operation": "register", "inputs": credentials},
        )

        assert response.status_code == 200
        trigger = response.json()["trigger"]
        assert trigger["inputs"] == {"username": credentials["username"], "password": "***"}
        assert credentials["password"] not in response.text
