"""
Goal Agent for PDCA Planner
Stores and manages goals, and turns chat text into proposed goals.

Goals form a hierarchy of time horizons (vision -> yearly -> quarterly ->
monthly -> weekly) via parent_id. Each goal carries a date range, a list of
success metrics, a priority (1-10), a weight (0-1) relative to its sibling
goals and a progress fraction (0-1).

Dates are stored as midnight-UTC ISO timestamps. Incoming dates are
validated here: the goal extractor may hand over raw, unnormalized date
text, and this is where such values are rejected.
"""

from typing import Any, Dict, List, Optional
import json

from .base_agent import BaseAgent, AgentResponse, enum_text
from ..core.dates import parse_iso_date, to_iso_midnight
from ..core.models import Goal, GoalLevel, GoalStatus, StructuredGoal
from ..parsing.goal_parser import extract_goal_from_text


class GoalAgent(BaseAgent):
    """
    Specialized agent for goal management.

    Handles intents:
    - create_goal: Create a goal (title, start_date and end_date required)
    - get_goal: Retrieve one goal
    - list_goals: List goals with filters (user, status, level, parent)
    - update_goal: Modify goal properties
    - delete_goal: Delete a goal
    - extract_goal: Propose a goal from a chat turn, optionally saving it
    """

    INTENTS = [
        "create_goal",
        "get_goal",
        "list_goals",
        "update_goal",
        "delete_goal",
        "extract_goal",
    ]

    # Columns that update_goal may change
    UPDATABLE_FIELDS = [
        "title", "description", "level", "status", "start_date", "end_date",
        "parent_id", "tags", "metrics", "resources", "priority", "weight", "progress",
    ]

    JSON_FIELDS = ("tags", "metrics", "resources")

    def __init__(self, db, config):
        """Initialize the Goal Agent."""
        super().__init__(db, config, "goal")

    def get_supported_intents(self) -> List[str]:
        """Return list of supported intents."""
        return self.INTENTS

    def _handlers(self) -> Dict[str, Any]:
        return {
            "create_goal": self._handle_create_goal,
            "get_goal": self._handle_get_goal,
            "list_goals": self._handle_list_goals,
            "update_goal": self._handle_update_goal,
            "delete_goal": self._handle_delete_goal,
            "extract_goal": self._handle_extract_goal,
        }

    # =========================================================================
    # Intent Handlers
    # =========================================================================

    def _handle_create_goal(self, context: Dict[str, Any]) -> AgentResponse:
        """
        Handle goal creation.

        Context params:
            title (str): Goal title
            start_date (str): ISO date or timestamp
            end_date (str): ISO date or timestamp
            user_id (str, optional): Owner (defaults to the configured user)
            description (str, optional)
            level (str, optional): VISION|YEARLY|QUARTERLY|MONTHLY|WEEKLY
            status (str, optional): ACTIVE|COMPLETED|CANCELLED|ARCHIVED
            parent_id (int, optional): Parent goal
            tags, metrics, resources (list, optional)
            priority (int, optional): 1-10
            weight (float, optional): 0-1
        """
        validation = self.validate_required_params(context, ["title", "start_date", "end_date"])
        if validation:
            return validation

        if not str(context["title"]).strip():
            return AgentResponse.error("Goal title is required")

        fields, error = self._validate_fields(context)
        if error:
            return error

        goal_data = {
            "user_id": context.get("user_id") or self.get_config_value(
                "default_user_id", section="settings", default="local"),
            "title": str(context["title"]).strip(),
            "description": context.get("description"),
            "level": self._default_level().value,
            "status": GoalStatus.ACTIVE.value,
            "priority": self._default_priority(),
            "weight": 1.0,
        }
        goal_data.update(fields)

        goal_id = self._insert_goal(goal_data)
        created = self._get_goal_by_id(goal_id)

        return AgentResponse.ok(
            message=f"Goal created: '{goal_data['title']}'",
            data={"goal_id": goal_id, "goal": created.to_dict()},
            suggestions=[
                f"Break it down: create a sub-goal with parent_id={goal_id}",
                "Review all goals: 'goals list'",
            ]
        )

    def _handle_get_goal(self, context: Dict[str, Any]) -> AgentResponse:
        """
        Get a single goal by ID.

        Context params:
            goal_id (int): Goal ID to retrieve
        """
        validation = self.validate_required_params(context, ["goal_id"])
        if validation:
            return validation

        goal = self._get_goal_by_id(context["goal_id"])
        if not goal:
            return AgentResponse.error(f"Goal {context['goal_id']} not found")

        data = self._enrich_goal(goal)
        data["children"] = [
            {"id": child.id, "title": child.title, "status": child.status.value}
            for child in self._fetch_goals({"parent_id": goal.id}, limit=100)
        ]
        return AgentResponse.ok(message=f"Goal: {goal.title}", data={"goal": data})

    def _handle_list_goals(self, context: Dict[str, Any]) -> AgentResponse:
        """
        List goals with optional filters, newest first.

        Context params:
            user_id (str, optional)
            status (str or list, optional)
            level (str, optional)
            parent_id (int, optional)
            limit (int, optional): Max goals to return (default 50)
        """
        filters: Dict[str, Any] = {}
        for key in ("user_id", "status", "level", "parent_id"):
            if context.get(key) is not None:
                filters[key] = context[key]

        goals = self._fetch_goals(filters, limit=context.get("limit", 50))
        goal_dicts = [self._enrich_goal(g) for g in goals]

        if not goal_dicts:
            return AgentResponse.ok(
                message="No goals found matching the criteria",
                data={"goals": [], "count": 0}
            )

        return AgentResponse.ok(
            message=f"Found {len(goal_dicts)} goal(s)",
            data={"goals": goal_dicts, "count": len(goal_dicts)}
        )

    def _handle_update_goal(self, context: Dict[str, Any]) -> AgentResponse:
        """
        Update goal properties.

        Context params:
            goal_id (int): Goal to update
            any of UPDATABLE_FIELDS
        """
        validation = self.validate_required_params(context, ["goal_id"])
        if validation:
            return validation

        goal_id = context["goal_id"]
        if not self._get_goal_by_id(goal_id):
            return AgentResponse.error(f"Goal {goal_id} not found")

        if "title" in context and not str(context["title"] or "").strip():
            return AgentResponse.error("Goal title cannot be empty")

        fields, error = self._validate_fields(context)
        if error:
            return error

        update_fields = {k: fields[k] for k in self.UPDATABLE_FIELDS if k in fields}
        if "title" in context:
            update_fields["title"] = str(context["title"]).strip()
        if "description" in context:
            update_fields["description"] = context["description"]
        if update_fields.get("parent_id") == goal_id:
            return AgentResponse.error("A goal cannot be its own parent")

        if not update_fields:
            return AgentResponse.error("No fields to update provided")

        self._update_goal(goal_id, update_fields)
        updated = self._get_goal_by_id(goal_id)
        return AgentResponse.ok(
            message=f"Goal {goal_id} updated",
            data={"goal": self._enrich_goal(updated)}
        )

    def _handle_delete_goal(self, context: Dict[str, Any]) -> AgentResponse:
        """
        Delete a goal. Sub-goals are kept and lose their parent.

        Context params:
            goal_id (int): Goal to delete
        """
        validation = self.validate_required_params(context, ["goal_id"])
        if validation:
            return validation

        goal_id = context["goal_id"]
        goal = self._get_goal_by_id(goal_id)
        if not goal:
            return AgentResponse.error(f"Goal {goal_id} not found")

        self.db.execute_write("DELETE FROM goals WHERE id = ?", (goal_id,))
        return AgentResponse.ok(
            message=f"Goal deleted: '{goal.title}'",
            data={"goal_id": goal_id}
        )

    def _handle_extract_goal(self, context: Dict[str, Any]) -> AgentResponse:
        """
        Propose a goal from a chat turn.

        Context params:
            text (str): The user's message
            reply (str, optional): The assistant's reply
            save (bool, optional): Store the proposed goal
            user_id (str, optional): Owner when saving
        """
        validation = self.validate_required_params(context, ["text"])
        if validation:
            return validation

        structured = extract_goal_from_text(context["text"], context.get("reply") or "")
        if structured is None:
            return AgentResponse.ok(
                message="No goal found in the text",
                data={"extracted_goal": None}
            )

        data: Dict[str, Any] = {"extracted_goal": structured.to_dict()}

        if context.get("save"):
            saved = self.save_extracted_goal(structured, user_id=context.get("user_id"))
            if not saved.success:
                return AgentResponse.error(
                    f"Goal extracted but not saved: {saved.message}", data=data)
            data.update(saved.data)

        return AgentResponse.ok(message=f"Extracted goal: '{structured.title}'", data=data)

    # =========================================================================
    # Validation
    # =========================================================================

    def _validate_fields(self, context: Dict[str, Any]):
        """
        Validate and normalize the optional goal fields present in context.

        Returns:
            Tuple of (normalized fields dict, error AgentResponse or None)
        """
        fields: Dict[str, Any] = {}

        if context.get("level") is not None:
            try:
                fields["level"] = GoalLevel(enum_text(context["level"])).value
            except ValueError:
                return fields, AgentResponse.error(f"Invalid goal level: {context['level']}")

        if context.get("status") is not None:
            try:
                fields["status"] = GoalStatus(enum_text(context["status"])).value
            except ValueError:
                return fields, AgentResponse.error(f"Invalid goal status: {context['status']}")

        for key in ("start_date", "end_date"):
            if context.get(key) is not None:
                parsed = parse_iso_date(context[key])
                if parsed is None:
                    return fields, AgentResponse.error(f"Invalid {key.replace('_', ' ')}: {context[key]}")
                fields[key] = to_iso_midnight(parsed)

        start = fields.get("start_date")
        end = fields.get("end_date")
        if start and end and end < start:
            return fields, AgentResponse.error("End date must not be before start date")

        if context.get("priority") is not None:
            priority = context["priority"]
            if isinstance(priority, bool) or not isinstance(priority, int) or not 1 <= priority <= 10:
                return fields, AgentResponse.error("Priority must be an integer between 1 and 10")
            fields["priority"] = priority

        for key in ("weight", "progress"):
            if context.get(key) is not None:
                value = context[key]
                if isinstance(value, bool) or not isinstance(value, (int, float)) or not 0 <= value <= 1:
                    return fields, AgentResponse.error(f"{key.capitalize()} must be between 0 and 1")
                fields[key] = float(value)

        if "parent_id" in context:
            parent_id = context["parent_id"]
            if parent_id is not None and not self._get_goal_by_id(parent_id):
                return fields, AgentResponse.error(f"Parent goal {parent_id} not found")
            fields["parent_id"] = parent_id

        for key in self.JSON_FIELDS:
            if context.get(key) is not None:
                if not isinstance(context[key], list):
                    return fields, AgentResponse.error(f"{key.capitalize()} must be a list")
                fields[key] = json.dumps(context[key], ensure_ascii=False)

        return fields, None

    # =========================================================================
    # Helper Methods
    # =========================================================================

    def save_extracted_goal(self, structured: StructuredGoal,
                            user_id: Optional[str] = None) -> AgentResponse:
        """
        Store an already-extracted goal exactly as proposed.

        Goes through create_goal so the usual validation applies.
        """
        goal = Goal.from_structured(structured, user_id=user_id or self.get_config_value(
            "default_user_id", section="settings", default="local"))
        return self._handle_create_goal({
            "user_id": goal.user_id,
            "title": goal.title,
            "description": goal.description,
            "level": goal.level.value,
            "status": goal.status.value,
            "start_date": goal.start_date,
            "end_date": goal.end_date,
            "metrics": goal.metrics,
            "resources": goal.resources,
            "priority": goal.priority,
            "weight": goal.weight,
        })

    def _default_level(self) -> GoalLevel:
        """Level for new goals that don't name one (preference, else MONTHLY)."""
        configured = self.get_config_value("default_goal_level", section="preferences",
                                           default=GoalLevel.MONTHLY.value)
        try:
            return GoalLevel(enum_text(configured))
        except ValueError:
            self.logger.warning(f"Ignoring invalid default_goal_level: {configured!r}")
            return GoalLevel.MONTHLY

    def _default_priority(self) -> int:
        """Priority for new goals that don't name one (preference, else 5)."""
        configured = self.get_config_value("default_goal_priority", section="preferences", default=5)
        if isinstance(configured, bool) or not isinstance(configured, int) or not 1 <= configured <= 10:
            self.logger.warning(f"Ignoring invalid default_goal_priority: {configured!r}")
            return 5
        return configured

    def _enrich_goal(self, goal: Goal) -> Dict[str, Any]:
        """
        Goal as a dictionary plus computed fields.

        Adds:
        - is_overdue (active goal past its end date)
        - days_total (length of the date range)
        """
        data = goal.to_dict()
        data["is_overdue"] = goal.is_overdue()

        start = parse_iso_date(goal.start_date)
        end = parse_iso_date(goal.end_date)
        data["days_total"] = (end - start).days if start and end else None
        return data

    # =========================================================================
    # Database Operations
    # =========================================================================

    def _insert_goal(self, goal_data: Dict[str, Any]) -> int:
        """Insert a new goal and return its ID."""
        columns = list(goal_data.keys())
        placeholders = ", ".join("?" for _ in columns)
        query = f"INSERT INTO goals ({', '.join(columns)}) VALUES ({placeholders})"
        return self.db.execute_write(query, tuple(goal_data[c] for c in columns))

    def _get_goal_by_id(self, goal_id: int) -> Optional[Goal]:
        """Fetch a single goal by ID."""
        row = self.db.execute_one("SELECT * FROM goals WHERE id = ?", (goal_id,))
        return Goal.from_dict(row) if row else None

    def _update_goal(self, goal_id: int, fields: Dict[str, Any]) -> bool:
        """Update specified goal fields."""
        if not fields:
            return False

        set_clause = ", ".join(f"{key} = ?" for key in fields.keys())
        query = f"UPDATE goals SET {set_clause} WHERE id = ?"
        params = tuple(fields.values()) + (goal_id,)

        return self.db.execute_write(query, params) > 0

    def _fetch_goals(self, filters: Dict[str, Any], limit: int = 50) -> List[Goal]:
        """
        Fetch goals with filters.

        Args:
            filters: Dictionary of filter conditions
            limit: Maximum number of results

        Returns:
            List of Goal objects, newest first
        """
        conditions = []
        params: List[Any] = []

        if "user_id" in filters:
            conditions.append("user_id = ?")
            params.append(filters["user_id"])

        if "status" in filters:
            statuses = filters["status"]
            if not isinstance(statuses, list):
                statuses = [statuses]
            statuses = [enum_text(s) for s in statuses]
            placeholders = ",".join("?" * len(statuses))
            conditions.append(f"status IN ({placeholders})")
            params.extend(statuses)

        if "level" in filters:
            conditions.append("level = ?")
            params.append(enum_text(filters["level"]))

        if "parent_id" in filters:
            conditions.append("parent_id = ?")
            params.append(filters["parent_id"])

        where_clause = " AND ".join(conditions) if conditions else "1=1"

        query = f"""
            SELECT * FROM goals
            WHERE {where_clause}
            ORDER BY created_at DESC, id DESC
            LIMIT ?
        """
        params.append(limit)

        rows = self.db.execute(query, tuple(params))
        return [Goal.from_dict(row) for row in rows]
