"""
Agent Layer for PDCA Planner

Each agent handles one domain and exposes the same interface:
process(intent, context) -> AgentResponse.

Architecture Overview:
- BaseAgent: Abstract base class defining the agent interface
- AgentResponse: Standard response structure for agent outputs
- GoalAgent: Goal storage (create, get, list, update, delete) and
  goal extraction from chat text
- TaskAgent: Tasks linked to goals (create, get, list, update, status, delete)
- GoalChatAgent: LLM chat turns (goal coaching with goal extraction,
  PDCA planning assistant)

Usage:
    from pdca.agents import GoalAgent, GoalChatAgent
    from pdca.core import Database, Config

    db = Database()
    config = Config()

    goal_agent = GoalAgent(db, config)
    response = goal_agent.process("extract_goal", {"text": "目标：每天跑步30分钟"})

    chat_agent = GoalChatAgent(db, config)
    response = chat_agent.process("goal_chat", {
        "messages": [{"role": "user", "content": "我想在三个月内读完10本书"}]
    })
"""

from .base_agent import BaseAgent, AgentResponse
from .goal_agent import GoalAgent
from .task_agent import TaskAgent
from .chat_agent import GoalChatAgent

__all__ = [
    'BaseAgent',
    'AgentResponse',
    'GoalAgent',
    'TaskAgent',
    'GoalChatAgent',
]
