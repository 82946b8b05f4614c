"""
Base Agent for PDCA Planner
Defines the abstract base class and common response type for all agents.

Agents own the business logic behind the API and CLI:
- Each agent handles one domain (goal storage, tasks, goal chat)
- Requests arrive as an intent name plus a context dict
- Agents never raise to their callers; failures come back as
  AgentResponse.error(...)
- All agents log their actions the same way
"""

from abc import ABC, abstractmethod
from enum import Enum
from dataclasses import dataclass
from typing import Any, Dict, List, Optional
from datetime import datetime, timezone
import logging
import json


def enum_text(value: Any) -> str:
    """Upper-cased enum value from an Enum member or a plain string."""
    if isinstance(value, Enum):
        value = value.value
    return str(value).upper()


@dataclass
class AgentResponse:
    """
    Standard response structure from any agent.

    Attributes:
        success: Whether the operation completed successfully
        message: Human-readable description of the result
        data: Optional structured data (goal details, chat reply, etc.)
        suggestions: Optional list of follow-up actions the user might want
    """
    success: bool
    message: str
    data: Optional[Dict[str, Any]] = None
    suggestions: Optional[List[str]] = None

    def to_dict(self) -> Dict[str, Any]:
        """Convert response to dictionary for serialization."""
        return {
            "success": self.success,
            "message": self.message,
            "data": self.data,
            "suggestions": self.suggestions
        }

    @classmethod
    def error(cls, message: str, data: Optional[Dict[str, Any]] = None) -> 'AgentResponse':
        """Factory method for creating error responses."""
        return cls(success=False, message=message, data=data)

    @classmethod
    def ok(cls, message: str, data: Optional[Dict[str, Any]] = None,
           suggestions: Optional[List[str]] = None) -> 'AgentResponse':
        """Factory method for creating success responses."""
        return cls(success=True, message=message, data=data, suggestions=suggestions)


class BaseAgent(ABC):
    """
    Abstract base class for PDCA Planner agents.

    Provides common functionality for:
    - Database access
    - Configuration management
    - Logging
    - Intent matching and dispatch

    Subclasses must implement get_supported_intents() and _handlers();
    process() dispatches to the handler registered for the intent.

    Design Pattern: Template Method
    - Base class defines the skeleton of operations
    - Subclasses provide specific implementations
    """

    def __init__(self, db, config, name: str):
        """
        Initialize the base agent.

        Args:
            db: Database instance for data access
            config: Config instance for settings/preferences
            name: Unique identifier for this agent (e.g., "goal", "chat")
        """
        self.db = db
        self.config = config
        self.name = name
        self.logger = logging.getLogger(f"agent.{name}")
        self._initialized = False

    def initialize(self) -> bool:
        """
        Perform any required agent initialization.

        Override in subclasses if agent needs startup configuration.
        Returns True if initialization successful.
        """
        self._initialized = True
        self.logger.info(f"{self.name} agent initialized")
        return True

    @abstractmethod
    def get_supported_intents(self) -> List[str]:
        """
        Return list of intents this agent can handle.

        Returns:
            List of intent strings (e.g., ["create_goal", "list_goals"])
        """
        pass

    @abstractmethod
    def _handlers(self) -> Dict[str, Any]:
        """Map each supported intent to its handler method."""
        pass

    def can_handle(self, intent: str, context: Dict[str, Any]) -> bool:
        """Check if this agent can handle the given intent."""
        return intent in self.get_supported_intents()

    def process(self, intent: str, context: Dict[str, Any]) -> AgentResponse:
        """
        Process the request and return a response.

        Routes to the handler registered for the intent. Unexpected
        exceptions are logged and turned into error responses.

        Args:
            intent: One of the supported intents
            context: Request context with parameters

        Returns:
            AgentResponse with success/failure status and relevant data
        """
        self.log_action(f"processing_{intent}", {"context_keys": sorted(context.keys())})

        handler = self._handlers().get(intent)
        if not handler:
            return AgentResponse.error(f"Unknown intent: {intent}")

        try:
            return handler(context)
        except Exception as e:
            self.logger.error(f"Error processing {intent}: {e}", exc_info=True)
            return AgentResponse.error(f"Failed to process {intent}: {str(e)}")

    def log_action(self, action: str, details: Optional[Dict[str, Any]] = None) -> None:
        """
        Log an action taken by this agent.

        Args:
            action: Description of the action taken
            details: Optional additional details as key-value pairs
        """
        log_entry = {
            "agent": self.name,
            "action": action,
            "timestamp": datetime.now(timezone.utc).isoformat()
        }
        if details:
            log_entry["details"] = details

        self.logger.info(json.dumps(log_entry, ensure_ascii=False, default=str))

    def validate_required_params(self, context: Dict[str, Any],
                                 required: List[str]) -> Optional[AgentResponse]:
        """
        Validate that required parameters are present in context.

        Args:
            context: Request context to validate
            required: List of required parameter names

        Returns:
            AgentResponse with error if validation fails, None if valid
        """
        missing = [p for p in required if p not in context or context[p] is None]
        if missing:
            return AgentResponse.error(
                f"Missing required parameters: {', '.join(missing)}"
            )
        return None

    def get_config_value(self, key: str, section: str = "preferences",
                         default: Any = None) -> Any:
        """
        Get a configuration value with fallback to default.

        Args:
            key: Configuration key to retrieve
            section: Configuration section (settings, preferences)
            default: Default value if key not found

        Returns:
            Configuration value or default
        """
        return self.config.get(key, section=section, default=default)
