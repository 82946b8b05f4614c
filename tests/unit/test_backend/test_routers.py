"""
Unit tests for the API routers.
Runs the FastAPI app through TestClient with agents bound to a temporary
database and a mock LLM.
"""

import pytest
from pathlib import Path
from unittest.mock import MagicMock, patch

from fastapi.testclient import TestClient

import sys
sys.path.insert(0, str(Path(__file__).parent.parent.parent.parent))

from backend.main import app
from backend.dependencies import get_chat_agent, get_goal_agent, get_task_agent
from pdca.agents import GoalAgent, GoalChatAgent, TaskAgent
from pdca.core.database import Database
from pdca.core.models import StructuredGoal
from pdca.llm import LLMConfigError, LLMError


GOAL_REPLY = "总结一下：\n目标：每天跑步30分钟\n截止时间：2099-06-30"


# =============================================================================
# Fixtures
# =============================================================================

@pytest.fixture
def temp_db(tmp_path):
    db = Database(tmp_path / "api.db", create=True)
    db.init_schema()
    return db


@pytest.fixture
def mock_config():
    config = MagicMock()
    config.get.side_effect = lambda key, section="settings", default=None: default
    return config


@pytest.fixture
def mock_llm():
    llm = MagicMock()
    llm.invoke.return_value = GOAL_REPLY
    return llm


@pytest.fixture
def client(temp_db, mock_config, mock_llm):
    app.dependency_overrides[get_goal_agent] = lambda: GoalAgent(temp_db, mock_config)
    app.dependency_overrides[get_chat_agent] = lambda: GoalChatAgent(temp_db, mock_config, llm=mock_llm)
    app.dependency_overrides[get_task_agent] = lambda: TaskAgent(temp_db, mock_config)
    yield TestClient(app)
    app.dependency_overrides.clear()


def _goal_body(**overrides):
    body = {
        "title": "学习编程",
        "start_date": "2099-03-01",
        "end_date": "2099-03-31",
    }
    body.update(overrides)
    return body


def _chat_body(*contents, user_id="u1"):
    return {
        "userId": user_id,
        "messages": [{"role": "user", "content": c} for c in contents],
    }


# =============================================================================
# Goals Router Tests
# =============================================================================

class TestGoalsRouter:
    """Tests for /goals endpoints."""

    def test_create_goal(self, client):
        response = client.post("/goals/", json=_goal_body(level="YEARLY", priority=9))

        assert response.status_code == 201
        body = response.json()
        assert body["success"] is True
        assert body["data"]["goal"]["level"] == "YEARLY"
        assert body["data"]["goal"]["start_date"] == "2099-03-01T00:00:00.000Z"

    def test_create_goal_schema_validation(self, client):
        response = client.post("/goals/", json=_goal_body(priority=11))
        assert response.status_code == 422

    def test_create_goal_agent_validation(self, client):
        response = client.post("/goals/", json=_goal_body(end_date="2099-01-01"))

        assert response.status_code == 400
        assert response.json()["detail"] == "End date must not be before start date"

    def test_list_goals(self, client):
        client.post("/goals/", json=_goal_body(title="A", user_id="u1"))
        client.post("/goals/", json=_goal_body(title="B", user_id="u2"))

        response = client.get("/goals/", params={"user_id": "u1"})

        assert response.status_code == 200
        body = response.json()
        assert body["total"] == 1
        assert body["goals"][0]["title"] == "A"
        assert body["goals"][0]["is_overdue"] is False
        assert body["goals"][0]["days_total"] == 30

    def test_get_goal(self, client):
        goal_id = client.post("/goals/", json=_goal_body()).json()["data"]["goal_id"]

        response = client.get(f"/goals/{goal_id}")

        assert response.status_code == 200
        assert response.json()["title"] == "学习编程"
        assert response.json()["children"] == []

    def test_get_missing_goal(self, client):
        response = client.get("/goals/999")

        assert response.status_code == 404
        assert response.json()["detail"] == "Goal 999 not found"

    def test_update_goal(self, client):
        goal_id = client.post("/goals/", json=_goal_body()).json()["data"]["goal_id"]

        response = client.put(f"/goals/{goal_id}", json={"progress": 0.5, "status": "ACTIVE"})

        assert response.status_code == 200
        assert response.json()["data"]["goal"]["progress"] == 0.5

    def test_update_missing_goal(self, client):
        response = client.put("/goals/999", json={"title": "x"})
        assert response.status_code == 400

    def test_delete_goal(self, client):
        goal_id = client.post("/goals/", json=_goal_body()).json()["data"]["goal_id"]

        response = client.delete(f"/goals/{goal_id}")

        assert response.status_code == 200
        assert client.get(f"/goals/{goal_id}").status_code == 404

    def test_delete_missing_goal(self, client):
        assert client.delete("/goals/999").status_code == 404


class TestExtractRoute:
    """Tests for POST /goals/extract."""

    def test_extract_goal(self, client, temp_db):
        response = client.post("/goals/extract", json={
            "userInput": "我的目标是:学习编程",
            "assistantReply": "很好的目标！",
        })

        assert response.status_code == 200
        body = response.json()
        assert body["title"] == "学习编程"
        assert body["level"] == "MONTHLY"
        assert body["startDate"].endswith("T00:00:00.000Z")
        assert temp_db.count("goals") == 0

    def test_extract_nothing_returns_null(self, client):
        response = client.post("/goals/extract", json={"userInput": "嗯"})

        assert response.status_code == 200
        assert response.json() is None

    def test_extract_oversized_priority(self, client):
        response = client.post("/goals/extract", json={
            "userInput": "目标：学习编程\n优先级：" + "9" * 5000,
            "assistantReply": "好的",
        })

        assert response.status_code == 200
        assert response.json()["priority"] == 10

    def test_extract_requires_user_input(self, client):
        assert client.post("/goals/extract", json={"userInput": ""}).status_code == 422


# =============================================================================
# Tasks Router Tests
# =============================================================================

class TestTasksRouter:
    """Tests for /tasks."""

    def _create(self, client, **overrides):
        body = {"title": "每天背50个单词"}
        body.update(overrides)
        return client.post("/tasks/", json=body)

    def test_create_task(self, client):
        response = self._create(client, priority="HIGH")

        assert response.status_code == 201
        assert response.json()["data"]["task"]["priority"] == "HIGH"

    def test_create_invalid_priority(self, client):
        response = self._create(client, priority="CRITICAL")

        assert response.status_code == 400
        assert response.json()["detail"] == "Invalid task priority: CRITICAL"

    def test_create_for_missing_goal(self, client):
        response = self._create(client, goal_id=999)

        assert response.status_code == 400

    def test_list_with_filter(self, client):
        goal_id = client.post("/goals/", json=_goal_body()).json()["data"]["goal_id"]
        self._create(client, title="linked", goal_id=goal_id)
        self._create(client, title="loose")

        response = client.get("/tasks/", params={"goal_id": goal_id})

        assert response.status_code == 200
        body = response.json()
        assert body["total"] == 1
        assert body["tasks"][0]["goal"] == {"id": goal_id, "title": "学习编程"}

    def test_get_task(self, client):
        task_id = self._create(client).json()["data"]["task_id"]

        response = client.get(f"/tasks/{task_id}")

        assert response.status_code == 200
        assert response.json()["sub_tasks"] == []

    def test_get_missing_task(self, client):
        response = client.get("/tasks/999")

        assert response.status_code == 404
        assert response.json()["detail"] == "Task 999 not found"

    def test_patch_status(self, client):
        task_id = self._create(client).json()["data"]["task_id"]

        response = client.patch(f"/tasks/{task_id}/status", json={"status": "COMPLETED"})

        assert response.status_code == 200
        task = response.json()["data"]["task"]
        assert task["status"] == "COMPLETED"
        assert task["completed_at"] is not None

    def test_patch_invalid_status(self, client):
        task_id = self._create(client).json()["data"]["task_id"]

        response = client.patch(f"/tasks/{task_id}/status", json={"status": "DONE"})

        assert response.status_code == 400
        assert response.json()["detail"] == "Invalid task status: DONE"

    def test_patch_missing_task(self, client):
        response = client.patch("/tasks/999/status", json={"status": "TODO"})

        assert response.status_code == 404

    def test_update_task(self, client):
        task_id = self._create(client, due_date="2099-03-15").json()["data"]["task_id"]

        response = client.put(f"/tasks/{task_id}", json={"title": "写周报", "due_date": None})

        assert response.status_code == 200
        task = response.json()["data"]["task"]
        assert task["title"] == "写周报"
        assert task["due_date"] is None

    def test_update_without_fields(self, client):
        task_id = self._create(client).json()["data"]["task_id"]

        response = client.put(f"/tasks/{task_id}", json={})

        assert response.status_code == 400

    def test_delete_task(self, client, temp_db):
        task_id = self._create(client).json()["data"]["task_id"]

        response = client.delete(f"/tasks/{task_id}")

        assert response.status_code == 200
        assert temp_db.count("tasks") == 0

    def test_delete_missing_task(self, client):
        response = client.delete("/tasks/999")

        assert response.status_code == 404


# =============================================================================
# Chat Router Tests
# =============================================================================

class TestGoalChatRoute:
    """Tests for POST /chat/goal."""

    def test_reply_and_goal_header(self, client):
        response = client.post("/chat/goal", json=_chat_body("我想坚持运动"))

        assert response.status_code == 200
        message = response.json()["messages"][0]
        assert message["role"] == "assistant"
        assert message["content"] == GOAL_REPLY
        assert message["id"]

        goal = StructuredGoal.from_header(response.headers[StructuredGoal.HEADER_NAME])
        assert goal.title == "每天跑步30分钟"
        assert goal.end_date == "2099-06-30T00:00:00.000Z"

    def test_no_header_without_goal(self, client, mock_llm):
        mock_llm.invoke.return_value = "嗯"

        response = client.post("/chat/goal", json=_chat_body("你好"))

        assert response.status_code == 200
        assert StructuredGoal.HEADER_NAME not in response.headers

    def test_missing_user_id(self, client):
        response = client.post("/chat/goal", json=_chat_body("我想坚持运动", user_id=None))

        assert response.status_code == 400
        assert response.json()["detail"] == "userId is required"

    def test_empty_messages(self, client):
        response = client.post("/chat/goal", json={"userId": "u1", "messages": []})

        assert response.status_code == 400
        assert response.json()["detail"] == "Messages are required"

    def test_last_message_not_from_user(self, client):
        body = _chat_body("我想坚持运动")
        body["messages"].append({"role": "assistant", "content": "好的"})

        response = client.post("/chat/goal", json=body)

        assert response.status_code == 400
        assert response.json()["detail"] == "Last message must be from user"

    def test_llm_failure_is_bad_gateway(self, client, mock_llm):
        mock_llm.invoke.side_effect = LLMError("glm API unreachable after 3 attempts")

        response = client.post("/chat/goal", json=_chat_body("我想坚持运动"))

        assert response.status_code == 502

    def test_unconfigured_llm_is_service_unavailable(self, client, temp_db, mock_config):
        del app.dependency_overrides[get_chat_agent]

        with patch("backend.dependencies.get_database", return_value=temp_db), \
                patch("backend.dependencies.get_config", return_value=mock_config), \
                patch("backend.dependencies.get_llm",
                      side_effect=LLMConfigError("Unsupported LLM provider: mystery")):
            response = client.post("/chat/goal", json=_chat_body("我想坚持运动"))

        assert response.status_code == 503
        assert "Unsupported LLM provider" in response.json()["detail"]


class TestPlanChatRoute:
    """Tests for POST /chat."""

    def test_plan_chat(self, client, mock_llm):
        mock_llm.invoke.return_value = "先列出三件最重要的事。"

        response = client.post("/chat", json=_chat_body("帮我安排这周"))

        assert response.status_code == 200
        assert response.json()["messages"][0]["content"] == "先列出三件最重要的事。"
        assert StructuredGoal.HEADER_NAME not in response.headers

    def test_plan_chat_requires_user_id(self, client):
        response = client.post("/chat", json=_chat_body("帮我安排这周", user_id=""))
        assert response.status_code == 400


class TestAppRoutes:
    """Tests for root and health endpoints."""

    def test_root(self, client):
        body = client.get("/").json()
        assert body["name"] == "PDCA Planner API"
        assert body["endpoints"]["goal_chat"] == "/chat/goal"
        assert body["endpoints"]["tasks"] == "/tasks"

    def test_health(self, client, temp_db):
        with patch("backend.main.get_database", return_value=temp_db):
            response = client.get("/health")

        assert response.json() == {"status": "healthy", "database": "connected"}

    def test_health_reports_failure(self, client):
        with patch("backend.main.get_database", side_effect=FileNotFoundError("Database not found")):
            response = client.get("/health")

        assert response.json()["status"] == "unhealthy"
