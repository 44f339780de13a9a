"""
Tests for the routine persistence routes.

Tests cover:
- POST /save-routine validation, success and idempotence
- GET /routines and GET /routines/{id}
"""

import sqlite3
from unittest.mock import patch


def _save(api_client, headers, routine):
    return api_client.post(
        "/api/v1/save-routine",
        json={"routine": routine.to_wire()},
        headers=headers,
    )


class TestSaveRoutine:
    """POST /save-routine."""

    def test_requires_token(self, api_client, make_routine):
        response = api_client.post(
            "/api/v1/save-routine", json={"routine": make_routine().to_wire()}
        )
        assert response.status_code == 401

    def test_saves_and_returns_program_id(self, api_client, auth_headers, make_routine, program_repo):
        response = _save(api_client, auth_headers(), make_routine())

        assert response.status_code == 200
        body = response.json()
        assert body["success"] is True
        assert body["message"] == "Workout routine saved successfully"

        program = program_repo.get_program(body["data"]["programId"], "user-123")
        assert program.name == "Beginner Full Body"
        assert len(program.days) == 2

    def test_second_save_returns_same_id(self, api_client, auth_headers, make_routine, program_repo):
        first = _save(api_client, auth_headers(), make_routine()).json()
        second = _save(api_client, auth_headers(), make_routine()).json()

        assert second["success"] is True
        assert second["data"]["programId"] == first["data"]["programId"]
        assert program_repo.count_rows("workout_programs") == 1

    def test_validation_failure_is_flat(self, api_client, auth_headers, make_routine):
        routine = make_routine().to_wire()
        routine["name"] = ""
        routine["days"][0]["exercises"][0]["sets"] = 0

        response = api_client.post(
            "/api/v1/save-routine", json={"routine": routine}, headers=auth_headers()
        )

        assert response.status_code == 400
        body = response.json()
        assert body["success"] is False
        assert body["error"] == "Validation failed"
        fields = {detail["field"] for detail in body["details"]}
        assert "routine.name" in fields
        assert "routine.days.0.exercises.0.sets" in fields

    def test_database_failure(self, api_client, auth_headers, make_routine, program_repo):
        with patch.object(
            program_repo, "save_routine", side_effect=sqlite3.OperationalError("disk I/O error")
        ):
            response = _save(api_client, auth_headers(), make_routine())

        assert response.status_code == 500
        error = response.json()["error"]
        assert error["code"] == "DATABASE_ERROR"
        assert error["message"] == "Failed to save workout routine"


class TestReadRoutines:
    """GET /routines and GET /routines/{id}."""

    def test_list_only_own_programs(self, api_client, auth_headers, make_routine):
        _save(api_client, auth_headers(), make_routine(name="Mine"))
        _save(api_client, auth_headers(user_id="other"), make_routine(name="Theirs"))

        response = api_client.get("/api/v1/routines", headers=auth_headers())

        assert response.status_code == 200
        assert [p["name"] for p in response.json()] == ["Mine"]

    def test_get_one(self, api_client, auth_headers, make_routine):
        program_id = _save(api_client, auth_headers(), make_routine()).json()["data"]["programId"]

        response = api_client.get(f"/api/v1/routines/{program_id}", headers=auth_headers())

        assert response.status_code == 200
        assert response.json()["days"][1]["exercises"][0]["name"] == "Romanian Deadlift"

    def test_get_other_users_program(self, api_client, auth_headers, make_routine):
        program_id = _save(api_client, auth_headers(), make_routine()).json()["data"]["programId"]

        response = api_client.get(
            f"/api/v1/routines/{program_id}", headers=auth_headers(user_id="other")
        )

        assert response.status_code == 404
        assert response.json()["error"]["message"] == "Program not found"
