"""Tests for the routine tools - input validation, identifier assignment, LangChain wrapping."""

import copy
import json
from unittest.mock import patch

import pytest
from pydantic import ValidationError

from compilestrength.tools.routine_tools import (
    TOOL_REGISTRY,
    ToolName,
    build_routine_tools,
    format_validation_errors,
    run_tool,
)


@pytest.fixture
def profile_payload():
    return {
        "experience": "beginner",
        "goals": ["muscle_gain", "strength"],
        "availableEquipment": ["dumbbells", "bench"],
        "timeConstraints": {"daysPerWeek": 3, "minutesPerSession": 60},
        "physicalLimitations": ["lower back"],
    }


def _tool_call(name, args, call_id="call-1"):
    return {"name": name, "args": args, "id": call_id, "type": "tool_call"}


class TestRegistry:
    """Tests for the tool table."""

    def test_all_tools_registered(self):
        assert set(TOOL_REGISTRY) == set(ToolName)

    def test_langchain_tools_use_wire_names(self):
        names = [tool.name for tool in build_routine_tools()]
        assert names == [name.value for name in ToolName]

    def test_unknown_tool_name(self):
        with pytest.raises(ValueError):
            run_tool("deleteEverything", {})


class TestUpdateUserProfile:
    """Tests for updateUserProfile."""

    def test_echoes_profile(self, profile_payload):
        result = run_tool("updateUserProfile", profile_payload)

        assert result["success"] is True
        assert result["message"] == (
            "Updated user profile with beginner experience level "
            "targeting muscle_gain, strength"
        )
        assert result["profile"]["timeConstraints"] == {
            "daysPerWeek": 3,
            "minutesPerSession": 60,
        }

    @pytest.mark.parametrize("field,value", [
        ("experience", "elite"),
        ("timeConstraints", {"daysPerWeek": 3, "minutesPerSession": 20}),
        ("timeConstraints", {"daysPerWeek": 8, "minutesPerSession": 60}),
    ])
    def test_rejects_out_of_policy_input(self, profile_payload, field, value):
        profile_payload[field] = value
        with pytest.raises(ValidationError):
            run_tool("updateUserProfile", profile_payload)


class TestCreateWorkoutRoutine:
    """Tests for createWorkoutRoutine."""

    def test_assigns_ids_and_order(self, routine_input_payload):
        result = run_tool("createWorkoutRoutine", routine_input_payload)
        routine = result["routine"]

        ids = [routine["id"]]
        for day_index, day in enumerate(routine["days"]):
            assert day["order"] == day_index
            ids.append(day["id"])
            for exercise_index, exercise in enumerate(day["exercises"]):
                assert exercise["order"] == exercise_index
                ids.append(exercise["id"])

        assert len(ids) == len(set(ids)) == 1 + 2 + 3
        assert routine["createdAt"] == routine["updatedAt"]

    def test_message(self, routine_input_payload):
        result = run_tool("createWorkoutRoutine", routine_input_payload)
        assert result["success"] is True
        assert result["message"] == "Created Beginner Full Body - a beginner 3x/week routine"

    def test_preserves_exercise_fields(self, routine_input_payload):
        routine = run_tool("createWorkoutRoutine", routine_input_payload)["routine"]

        deadlift = routine["days"][1]["exercises"][0]
        assert deadlift["muscleGroups"] == ["hamstrings", "glutes"]
        assert deadlift["restPeriod"] == 120
        assert deadlift["weight"] == 40

    @pytest.mark.parametrize("path,value", [
        (("frequency",), 9),
        (("frequency",), 0),
        (("duration",), 3),
        (("difficulty",), "expert"),
        (("days", 0, "exercises", 0, "restPeriod"), 15),
        (("days", 0, "exercises", 0, "sets"), 0),
    ])
    def test_invalid_input_never_executes(self, routine_input_payload, path, value):
        payload = copy.deepcopy(routine_input_payload)
        target = payload
        for key in path[:-1]:
            target = target[key]
        target[path[-1]] = value

        with patch("compilestrength.tools.routine_tools.assign_routine_identifiers") as assign:
            with pytest.raises(ValidationError):
                run_tool("createWorkoutRoutine", payload)
            assign.assert_not_called()

    def test_validation_errors_are_flattened(self, routine_input_payload):
        payload = {**routine_input_payload, "frequency": 9}
        with pytest.raises(ValidationError) as exc_info:
            run_tool("createWorkoutRoutine", payload)

        errors = format_validation_errors(exc_info.value)
        assert errors[0]["field"] == "frequency"
        assert errors[0]["code"] == "less_than_equal"


class TestFragmentTools:
    """Tests for addWorkoutDay, addExercise, explainChoice and setGenerationProgress."""

    def test_add_workout_day(self, routine_input_payload):
        result = run_tool("addWorkoutDay", routine_input_payload["days"][0])

        day = result["day"]
        assert day["order"] == 0
        assert [e["order"] for e in day["exercises"]] == [0, 1]
        assert day["id"] not in {e["id"] for e in day["exercises"]}

    def test_add_exercise(self, routine_input_payload):
        exercise = routine_input_payload["days"][1]["exercises"][0]
        result = run_tool("addExercise", {"dayName": "Full Body B", "exercise": exercise})

        assert result["dayName"] == "Full Body B"
        assert result["exercise"]["name"] == "Romanian Deadlift"
        assert result["exercise"]["id"]

    def test_explain_choice(self):
        result = run_tool("explainChoice", {
            "topic": "rep range",
            "reasoning": "8-12 reps balance load and volume",
        })
        assert result == {"explanation": {
            "topic": "rep range",
            "reasoning": "8-12 reps balance load and volume",
            "evidence": None,
        }}

    def test_set_generation_progress(self):
        steps = [
            {"step": "profile", "description": "Collect profile", "completed": True},
            {"step": "routine", "description": "Build routine", "completed": False},
        ]
        assert run_tool("setGenerationProgress", {"steps": steps}) == {"steps": steps}


class TestStructuredTools:
    """Tests for the LangChain StructuredTool wrappers."""

    def _tool(self, name):
        return next(tool for tool in build_routine_tools() if tool.name == name)

    def test_valid_call_returns_json_tool_message(self, routine_input_payload):
        message = self._tool("createWorkoutRoutine").invoke(
            _tool_call("createWorkoutRoutine", routine_input_payload)
        )

        assert message.tool_call_id == "call-1"
        assert message.status == "success"
        body = json.loads(message.content)
        assert body["routine"]["name"] == "Beginner Full Body"
        assert len(body["routine"]["days"]) == 2

    def test_camel_case_top_level_fields(self, profile_payload):
        message = self._tool("updateUserProfile").invoke(
            _tool_call("updateUserProfile", profile_payload)
        )

        body = json.loads(message.content)
        assert body["profile"]["availableEquipment"] == ["dumbbells", "bench"]

    def test_invalid_call_returns_error_tool_message(self, routine_input_payload):
        payload = {**routine_input_payload, "frequency": 9}

        message = self._tool("createWorkoutRoutine").invoke(
            _tool_call("createWorkoutRoutine", payload)
        )

        assert message.status == "error"
        body = json.loads(message.content)
        assert body["success"] is False
        assert body["error"] == "Validation failed"
        assert body["details"][0]["field"] == "frequency"
