"""
Tests for the usage routes.

Tests cover:
- GET /usage/current
- GET /usage/{kind}
- POST /usage/{kind}/increment
"""


class TestCurrentUsage:
    """GET /usage/current."""

    def test_summary(self, api_client, auth_headers, subscription):
        response = api_client.get("/api/v1/usage/current", headers=auth_headers())

        assert response.status_code == 200
        data = response.json()
        assert data["periodStart"].startswith("2025-01-06T09:30:00")
        assert data["periodEnd"].startswith("2025-01-13T09:30:00")
        assert data["compiles"] == {
            "allowed": True,
            "used": 0,
            "limit": 1,
            "resetsAt": data["periodEnd"],
        }
        assert data["routineEdits"]["limit"] == 5
        assert data["aiMessages"]["limit"] == 3

    def test_no_subscription(self, api_client, auth_headers):
        response = api_client.get("/api/v1/usage/current", headers=auth_headers(user_id="free"))

        assert response.status_code == 404
        assert response.json()["error"]["code"] == "SUBSCRIPTION_NOT_FOUND"


class TestQuotaRoutes:
    """GET /usage/{kind} and POST /usage/{kind}/increment."""

    def test_check(self, api_client, auth_headers, subscription):
        response = api_client.get("/api/v1/usage/routine_edit", headers=auth_headers())

        assert response.status_code == 200
        assert response.json()["allowed"] is True

    def test_check_without_subscription(self, api_client, auth_headers):
        response = api_client.get("/api/v1/usage/compile", headers=auth_headers(user_id="free"))

        assert response.status_code == 200
        assert response.json() == {"allowed": False, "used": 0, "limit": 1, "resetsAt": None}

    def test_increment_until_limit(self, api_client, auth_headers, subscription):
        first = api_client.post("/api/v1/usage/compile/increment", headers=auth_headers())
        assert first.status_code == 200
        assert first.json()["used"] == 1
        assert first.json()["allowed"] is False

        second = api_client.post("/api/v1/usage/compile/increment", headers=auth_headers())
        assert second.status_code == 402
        assert second.json()["error"]["details"]["used"] == 1

        # Other counters are unaffected
        edit = api_client.get("/api/v1/usage/routine_edit", headers=auth_headers())
        assert edit.json()["used"] == 0

    def test_increment_without_subscription(self, api_client, auth_headers):
        response = api_client.post(
            "/api/v1/usage/ai_message/increment", headers=auth_headers(user_id="free")
        )
        assert response.status_code == 404

    def test_unknown_kind(self, api_client, auth_headers, subscription):
        response = api_client.get("/api/v1/usage/squats", headers=auth_headers())

        assert response.status_code == 400
        assert response.json()["error"]["code"] == "VALIDATION_ERROR"


class TestStandardRateLimit:
    """Non-chat routes share the standard per-user limit."""

    def test_limit_is_per_user(self, api_client, auth_headers, subscription):
        for _ in range(60):
            response = api_client.get("/api/v1/usage/routine_edit", headers=auth_headers())
            assert response.status_code == 200

        limited = api_client.get("/api/v1/usage/routine_edit", headers=auth_headers())
        assert limited.status_code == 429
        assert limited.json()["error"] == "rate_limit_exceeded"

        # Another user has their own budget
        other = api_client.get("/api/v1/usage/routine_edit", headers=auth_headers(user_id="free"))
        assert other.status_code == 200
