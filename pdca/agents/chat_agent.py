"""
Goal Chat Agent for PDCA Planner
Runs chat turns against the configured LLM and proposes goals from them.

Two conversations are supported:
- goal_chat: a goal-planning coach. After each reply the turn is run
  through the goal extractor, and a proposed goal (if any) is returned
  alongside the reply so the client can offer to save it.
- plan_chat: a general PDCA planning assistant, reply only.
"""

from typing import Any, Dict, List, Optional

from .base_agent import BaseAgent, AgentResponse
from .goal_agent import GoalAgent
from ..llm import BaseLLM, LLMError, create_llm_from_config
from ..llm.prompts import GOAL_PLANNING_SYSTEM_PROMPT, PLAN_ASSISTANT_SYSTEM_PROMPT, build_messages
from ..parsing.goal_parser import GoalExtractor


class GoalChatAgent(BaseAgent):
    """
    Specialized agent for LLM chat.

    Handles intents:
    - goal_chat: Reply as goal-planning coach and extract a proposed goal
    - plan_chat: Reply as PDCA planning assistant

    Context params (both intents):
        messages (list): Chat messages [{"role": "user"|"assistant", "content": str}],
            oldest first; the last one must be from the user
        user_id (str, optional): Owner for auto-saved goals
        save (bool, optional): Save the extracted goal (goal_chat only)
    """

    INTENTS = ["goal_chat", "plan_chat"]

    def __init__(self, db, config, llm: Optional[BaseLLM] = None,
                 extractor: Optional[GoalExtractor] = None):
        """
        Args:
            db: Database instance (used when saving extracted goals)
            config: Config instance
            llm: Chat model; created from environment variables on first use if None
            extractor: Goal extractor (defaults to one using the real clock)
        """
        super().__init__(db, config, "chat")
        self._llm = llm
        self.extractor = extractor or GoalExtractor()

    @property
    def llm(self) -> BaseLLM:
        """Chat model, created lazily so agents can be built without LLM credentials."""
        if self._llm is None:
            self._llm = create_llm_from_config(self.config)
        return self._llm

    def get_supported_intents(self) -> List[str]:
        """Return list of supported intents."""
        return self.INTENTS

    def _handlers(self) -> Dict[str, Any]:
        return {
            "goal_chat": self._handle_goal_chat,
            "plan_chat": self._handle_plan_chat,
        }

    # =========================================================================
    # Intent Handlers
    # =========================================================================

    def _handle_goal_chat(self, context: Dict[str, Any]) -> AgentResponse:
        messages, error = self._validate_messages(context)
        if error:
            return error

        user_input = messages[-1]["content"]
        reply, error = self._call_llm(build_messages(GOAL_PLANNING_SYSTEM_PROMPT, user_input))
        if error:
            return error

        goal = self.extractor.extract(user_input, reply)
        data: Dict[str, Any] = {
            "reply": reply,
            "extracted_goal": goal.to_dict() if goal else None,
            "goal_header": goal.to_header() if goal else None,
        }

        auto_save = self.get_config_value("auto_save_extracted_goals", default=False)
        if goal and (context.get("save") or auto_save):
            saved = GoalAgent(self.db, self.config).save_extracted_goal(goal, user_id=context.get("user_id"))
            data["saved_goal_id"] = saved.data.get("goal_id") if saved.success and saved.data else None
            if not saved.success:
                self.logger.warning(f"Extracted goal not saved: {saved.message}")

        message = f"Proposed goal: '{goal.title}'" if goal else "Reply generated"
        return AgentResponse.ok(message=message, data=data)

    def _handle_plan_chat(self, context: Dict[str, Any]) -> AgentResponse:
        messages, error = self._validate_messages(context)
        if error:
            return error

        prompt = build_messages(
            PLAN_ASSISTANT_SYSTEM_PROMPT,
            messages[-1]["content"],
            history=messages[:-1],
        )
        reply, error = self._call_llm(prompt)
        if error:
            return error

        return AgentResponse.ok(message="Reply generated", data={"reply": reply})

    # =========================================================================
    # Helper Methods
    # =========================================================================

    def _validate_messages(self, context: Dict[str, Any]):
        """
        Check the chat history is usable.

        Returns:
            Tuple of (messages, error AgentResponse or None)
        """
        messages = context.get("messages")
        if not isinstance(messages, list) or not messages:
            return None, AgentResponse.error("Messages are required")

        last = messages[-1]
        if not isinstance(last, dict) or last.get("role") != "user":
            return None, AgentResponse.error("Last message must be from user")

        if not isinstance(last.get("content"), str) or not last["content"].strip():
            return None, AgentResponse.error("Last message is empty")

        return messages, None

    def _call_llm(self, prompt: List[Dict[str, str]]):
        """
        Invoke the chat model.

        Returns:
            Tuple of (reply text, error AgentResponse or None). LLM failures
            are tagged with error_type "llm" so callers can tell them apart
            from bad input.
        """
        try:
            return self.llm.invoke(prompt), None
        except LLMError as e:
            self.logger.error(f"LLM call failed: {e}")
            return None, AgentResponse.error(f"LLM call failed: {e}", data={"error_type": "llm"})
