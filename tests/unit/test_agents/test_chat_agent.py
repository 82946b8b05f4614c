"""
Unit tests for the GoalChatAgent.
Tests message validation, LLM prompting, goal extraction from replies,
auto-saving and LLM error handling.
"""

import pytest
from datetime import date
from pathlib import Path
from unittest.mock import MagicMock, patch

import sys
sys.path.insert(0, str(Path(__file__).parent.parent.parent.parent))

from pdca.agents.chat_agent import GoalChatAgent
from pdca.core.database import Database
from pdca.core.models import StructuredGoal
from pdca.llm import LLMError
from pdca.llm.prompts import GOAL_PLANNING_SYSTEM_PROMPT, PLAN_ASSISTANT_SYSTEM_PROMPT
from pdca.parsing.goal_parser import GoalExtractor


GOAL_REPLY = "很好！总结一下：\n目标：每天跑步30分钟\n优先级：高"


# =============================================================================
# Fixtures
# =============================================================================

@pytest.fixture
def temp_db(tmp_path):
    db = Database(tmp_path / "test.db", create=True)
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
def chat_agent(temp_db, mock_config, mock_llm):
    extractor = GoalExtractor(clock=lambda: date(2025, 3, 1))
    return GoalChatAgent(temp_db, mock_config, llm=mock_llm, extractor=extractor)


def _user(content):
    return {"role": "user", "content": content}


# =============================================================================
# Validation Tests
# =============================================================================

class TestMessageValidation:
    """Tests for chat history validation."""

    @pytest.mark.parametrize("messages", [None, [], "hello"])
    def test_messages_required(self, chat_agent, messages):
        response = chat_agent.process("goal_chat", {"messages": messages})

        assert response.success is False
        assert response.message == "Messages are required"

    def test_last_message_must_be_from_user(self, chat_agent, mock_llm):
        messages = [_user("你好"), {"role": "assistant", "content": "你好！"}]

        response = chat_agent.process("goal_chat", {"messages": messages})

        assert response.success is False
        assert response.message == "Last message must be from user"
        mock_llm.invoke.assert_not_called()

    def test_last_message_must_have_content(self, chat_agent):
        response = chat_agent.process("plan_chat", {"messages": [_user("  ")]})

        assert response.success is False
        assert response.message == "Last message is empty"


# =============================================================================
# Goal Chat Tests
# =============================================================================

class TestGoalChat:
    """Tests for goal_chat."""

    def test_prompt_uses_goal_planning_system_prompt(self, chat_agent, mock_llm):
        chat_agent.process("goal_chat", {"messages": [_user("我想坚持运动")]})

        prompt = mock_llm.invoke.call_args[0][0]
        assert prompt == [
            {"role": "system", "content": GOAL_PLANNING_SYSTEM_PROMPT},
            {"role": "user", "content": "我想坚持运动"},
        ]

    def test_only_last_message_is_sent(self, chat_agent, mock_llm):
        messages = [_user("早上好"), {"role": "assistant", "content": "早！"}, _user("我想坚持运动")]

        chat_agent.process("goal_chat", {"messages": messages})

        prompt = mock_llm.invoke.call_args[0][0]
        assert [m["content"] for m in prompt[1:]] == ["我想坚持运动"]

    def test_reply_and_extracted_goal(self, chat_agent):
        response = chat_agent.process("goal_chat", {"messages": [_user("我想坚持运动")]})

        assert response.success is True
        assert response.message == "Proposed goal: '每天跑步30分钟'"
        assert response.data["reply"] == GOAL_REPLY
        goal = response.data["extracted_goal"]
        assert goal["title"] == "每天跑步30分钟"
        assert goal["priority"] == 8
        assert goal["startDate"] == "2025-03-01T00:00:00.000Z"
        assert "saved_goal_id" not in response.data

    def test_goal_header_decodes_to_extracted_goal(self, chat_agent):
        response = chat_agent.process("goal_chat", {"messages": [_user("我想坚持运动")]})

        decoded = StructuredGoal.from_header(response.data["goal_header"])
        assert decoded.to_dict() == response.data["extracted_goal"]

    def test_no_goal_in_turn(self, chat_agent, mock_llm):
        mock_llm.invoke.return_value = "嗯"

        response = chat_agent.process("goal_chat", {"messages": [_user("你好")]})

        assert response.success is True
        assert response.message == "Reply generated"
        assert response.data["extracted_goal"] is None
        assert response.data["goal_header"] is None

    def test_save_stores_goal(self, chat_agent, temp_db):
        response = chat_agent.process("goal_chat", {
            "messages": [_user("我想坚持运动")],
            "user_id": "u1",
            "save": True,
        })

        assert response.success is True
        assert response.data["saved_goal_id"] is not None
        row = temp_db.execute_one("SELECT title, user_id FROM goals")
        assert row == {"title": "每天跑步30分钟", "user_id": "u1"}

    def test_saved_goal_matches_proposed_goal(self, chat_agent, temp_db):
        response = chat_agent.process("goal_chat", {
            "messages": [_user("我想坚持运动")],
            "save": True,
        })

        proposed = response.data["extracted_goal"]
        row = temp_db.execute_one("SELECT start_date, end_date, priority FROM goals")
        assert row == {
            "start_date": proposed["startDate"],
            "end_date": proposed["endDate"],
            "priority": proposed["priority"],
        }
        assert row["start_date"] == "2025-03-01T00:00:00.000Z"

    def test_auto_save_preference(self, temp_db, mock_llm):
        config = MagicMock()
        config.get.side_effect = lambda key, section="settings", default=None: (
            True if key == "auto_save_extracted_goals" else default
        )
        agent = GoalChatAgent(temp_db, config, llm=mock_llm)

        agent.process("goal_chat", {"messages": [_user("我想坚持运动")]})

        assert temp_db.count("goals") == 1

    def test_llm_error(self, chat_agent, mock_llm):
        mock_llm.invoke.side_effect = LLMError("glm API request failed: HTTP 500 - boom")

        response = chat_agent.process("goal_chat", {"messages": [_user("我想坚持运动")]})

        assert response.success is False
        assert response.message == "LLM call failed: glm API request failed: HTTP 500 - boom"
        assert response.data == {"error_type": "llm"}


# =============================================================================
# Plan Chat Tests
# =============================================================================

class TestPlanChat:
    """Tests for plan_chat."""

    def test_history_is_passed_through(self, chat_agent, mock_llm):
        mock_llm.invoke.return_value = "先列出本周三件最重要的事。"
        messages = [
            {"role": "system", "content": "ignored"},
            _user("帮我安排这周"),
            {"role": "assistant", "content": "好的，你有哪些任务？"},
            _user("写报告和健身"),
        ]

        response = chat_agent.process("plan_chat", {"messages": messages})

        assert response.success is True
        assert response.data == {"reply": "先列出本周三件最重要的事。"}
        prompt = mock_llm.invoke.call_args[0][0]
        assert prompt[0] == {"role": "system", "content": PLAN_ASSISTANT_SYSTEM_PROMPT}
        assert [m["role"] for m in prompt] == ["system", "user", "assistant", "user"]
        assert prompt[-1]["content"] == "写报告和健身"


class TestLazyLLM:
    """Tests for creating the LLM from the environment."""

    def test_llm_created_on_first_use(self, temp_db, mock_config, mock_llm):
        with patch("pdca.agents.chat_agent.create_llm_from_config", return_value=mock_llm) as factory:
            agent = GoalChatAgent(temp_db, mock_config)
            factory.assert_not_called()

            agent.process("plan_chat", {"messages": [_user("你好")]})

        factory.assert_called_once_with(mock_config)
