"""
Dependency injection for FastAPI endpoints.

Provides singleton instances of Database, Config and the chat model,
to be used across all API routes.

Pattern: **Dependency Injection** - FastAPI's Depends() mechanism
allows us to inject shared resources into route handlers without
global state, making the code testable and maintainable.
"""

from functools import lru_cache
from fastapi import HTTPException
import sys
from pathlib import Path

# Add project root to path for imports
project_root = Path(__file__).parent.parent
if str(project_root) not in sys.path:
    sys.path.insert(0, str(project_root))

from pdca.core.database import Database
from pdca.core.config import Config
from pdca.agents import GoalAgent, GoalChatAgent, TaskAgent
from pdca.llm import BaseLLM, LLMConfigError, create_llm_from_config


@lru_cache()
def get_config() -> Config:
    """
    Get cached Config instance.

    lru_cache ensures we only create one Config instance
    for the lifetime of the application (singleton pattern).
    """
    return Config()


@lru_cache()
def get_database() -> Database:
    """
    Get cached Database instance.

    The database file and goals table are created on first use, so the
    API can start against an empty data directory.
    """
    db = Database(get_config().get_database_path(), create=True)
    db.init_schema()
    return db


@lru_cache()
def get_llm() -> BaseLLM:
    """
    Get cached chat model built from LLM_* environment variables.

    Raises LLMConfigError when the provider is unsupported or
    misconfigured; get_chat_agent turns that into a 503.
    """
    return create_llm_from_config(get_config())


def get_goal_agent() -> GoalAgent:
    """
    Get GoalAgent for goal operations.

    Creates a new agent per request to avoid any state issues,
    but shares the underlying DB and Config singletons.
    """
    db = get_database()
    config = get_config()
    return GoalAgent(db, config)


def get_task_agent() -> TaskAgent:
    """Get TaskAgent for task operations."""
    db = get_database()
    config = get_config()
    return TaskAgent(db, config)


def get_chat_agent() -> GoalChatAgent:
    """Get GoalChatAgent for chat turns. Unusable LLM settings are a 503."""
    db = get_database()
    config = get_config()
    try:
        llm = get_llm()
    except LLMConfigError as e:
        raise HTTPException(status_code=503, detail=f"LLM not configured: {e}")
    return GoalChatAgent(db, config, llm=llm)
