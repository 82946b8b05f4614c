"""
Task Agent for PDCA Planner
Manages the concrete tasks that carry goals out (the "Do" in Plan-Do-Check-Act).

A task may belong to a goal and may be a sub-task of another task. Status
moves through TODO -> IN_PROGRESS -> COMPLETED (or CANCELLED); completed_at
is stamped when a task is completed and cleared when it is reopened.
"""

from typing import Any, Dict, List, Optional
import json

from .base_agent import BaseAgent, AgentResponse, enum_text
from ..core.dates import parse_iso_date, to_iso_midnight
from ..core.models import Task, TaskPriority, TaskStatus


class TaskAgent(BaseAgent):
    """
    Specialized agent for task management.

    Handles intents:
    - create_task: Create a task (title required)
    - get_task: Retrieve one task with its goal, parent and sub-tasks
    - list_tasks: List tasks with filters (user, status, priority, goal, parent)
    - update_task: Modify task properties
    - update_task_status: Move a task to another status
    - delete_task: Delete a task
    """

    INTENTS = [
        "create_task",
        "get_task",
        "list_tasks",
        "update_task",
        "update_task_status",
        "delete_task",
    ]

    # Columns that update_task may change
    UPDATABLE_FIELDS = [
        "title", "description", "status", "priority", "due_date",
        "goal_id", "parent_id", "tags",
    ]

    def __init__(self, db, config):
        """Initialize the Task Agent."""
        super().__init__(db, config, "task")

    def get_supported_intents(self) -> List[str]:
        """Return list of supported intents."""
        return self.INTENTS

    def _handlers(self) -> Dict[str, Any]:
        return {
            "create_task": self._handle_create_task,
            "get_task": self._handle_get_task,
            "list_tasks": self._handle_list_tasks,
            "update_task": self._handle_update_task,
            "update_task_status": self._handle_update_task_status,
            "delete_task": self._handle_delete_task,
        }

    # =========================================================================
    # Intent Handlers
    # =========================================================================

    def _handle_create_task(self, context: Dict[str, Any]) -> AgentResponse:
        """
        Handle task creation.

        Context params:
            title (str): Task title
            user_id (str, optional): Owner (defaults to the configured user)
            description (str, optional)
            status (str, optional): TODO|IN_PROGRESS|COMPLETED|CANCELLED
            priority (str, optional): LOW|MEDIUM|HIGH|URGENT
            due_date (str, optional): ISO date or timestamp
            goal_id (int, optional): Goal the task works towards
            parent_id (int, optional): Parent task
            tags (list, optional)
        """
        validation = self.validate_required_params(context, ["title"])
        if validation:
            return validation

        if not str(context["title"]).strip():
            return AgentResponse.error("Task title is required")

        fields, error = self._validate_fields(context)
        if error:
            return error

        task_data = {
            "user_id": context.get("user_id") or self.get_config_value(
                "default_user_id", section="settings", default="local"),
            "title": str(context["title"]).strip(),
            "description": context.get("description"),
            "status": TaskStatus.TODO.value,
            "priority": TaskPriority.MEDIUM.value,
        }
        task_data.update(fields)

        task_id = self._insert_task(task_data)
        if task_data["status"] == TaskStatus.COMPLETED.value:
            self._set_status(task_id, TaskStatus.COMPLETED)
        created = self._get_task_by_id(task_id)

        return AgentResponse.ok(
            message=f"Task created: '{task_data['title']}'",
            data={"task_id": task_id, "task": self._enrich_task(created)},
        )

    def _handle_get_task(self, context: Dict[str, Any]) -> AgentResponse:
        """
        Get a single task by ID.

        Context params:
            task_id (int): Task ID to retrieve
        """
        validation = self.validate_required_params(context, ["task_id"])
        if validation:
            return validation

        task = self._get_task_by_id(context["task_id"])
        if not task:
            return AgentResponse.error(f"Task {context['task_id']} not found")

        data = self._enrich_task(task)
        data["sub_tasks"] = [
            {"id": sub["id"], "title": sub["title"], "status": sub["status"]}
            for sub in self._fetch_tasks({"parent_id": task["id"]}, limit=100)
        ]
        return AgentResponse.ok(message=f"Task: {task['title']}", data={"task": data})

    def _handle_list_tasks(self, context: Dict[str, Any]) -> AgentResponse:
        """
        List tasks with optional filters, newest first.

        Context params:
            user_id (str, optional)
            status (str or list, optional)
            priority (str, optional)
            goal_id (int, optional)
            parent_id (int, optional)
            limit (int, optional): Max tasks to return (default 50)
        """
        filters: Dict[str, Any] = {}
        for key in ("user_id", "status", "priority", "goal_id", "parent_id"):
            if context.get(key) is not None:
                filters[key] = context[key]

        tasks = [self._enrich_task(t) for t in self._fetch_tasks(filters, limit=context.get("limit", 50))]

        if not tasks:
            return AgentResponse.ok(
                message="No tasks found matching the criteria",
                data={"tasks": [], "count": 0}
            )

        return AgentResponse.ok(
            message=f"Found {len(tasks)} task(s)",
            data={"tasks": tasks, "count": len(tasks)}
        )

    def _handle_update_task(self, context: Dict[str, Any]) -> AgentResponse:
        """
        Update task properties.

        Context params:
            task_id (int): Task to update
            any of UPDATABLE_FIELDS; goal_id, parent_id and due_date may be
            None to clear them
        """
        validation = self.validate_required_params(context, ["task_id"])
        if validation:
            return validation

        task_id = context["task_id"]
        if not self._get_task_by_id(task_id):
            return AgentResponse.error(f"Task {task_id} not found")

        if "title" in context and not str(context["title"] or "").strip():
            return AgentResponse.error("Task title cannot be empty")

        fields, error = self._validate_fields(context)
        if error:
            return error

        update_fields = {k: fields[k] for k in self.UPDATABLE_FIELDS if k in fields}
        if "title" in context:
            update_fields["title"] = str(context["title"]).strip()
        if "description" in context:
            update_fields["description"] = context["description"]
        if update_fields.get("parent_id") == task_id:
            return AgentResponse.error("A task cannot be its own parent")

        if not update_fields:
            return AgentResponse.error("No fields to update provided")

        status = update_fields.pop("status", None)
        if update_fields:
            self._update_task(task_id, update_fields)
        if status:
            self._set_status(task_id, TaskStatus(status))

        updated = self._get_task_by_id(task_id)
        return AgentResponse.ok(
            message=f"Task {task_id} updated",
            data={"task": self._enrich_task(updated)}
        )

    def _handle_update_task_status(self, context: Dict[str, Any]) -> AgentResponse:
        """
        Change only a task's status.

        Context params:
            task_id (int): Task to update
            status (str): TODO|IN_PROGRESS|COMPLETED|CANCELLED
        """
        validation = self.validate_required_params(context, ["task_id", "status"])
        if validation:
            return validation

        try:
            status = TaskStatus(enum_text(context["status"]))
        except ValueError:
            return AgentResponse.error(f"Invalid task status: {context['status']}")

        task_id = context["task_id"]
        task = self._get_task_by_id(task_id)
        if not task:
            return AgentResponse.error(f"Task {task_id} not found")

        self._set_status(task_id, status)
        updated = self._get_task_by_id(task_id)

        suggestions = []
        if status == TaskStatus.COMPLETED and task["goal_id"] is not None:
            suggestions.append(f"Check goal {task['goal_id']}: update its progress")

        return AgentResponse.ok(
            message=f"Task '{task['title']}' is now {status.value}",
            data={"task": self._enrich_task(updated)},
            suggestions=suggestions or None,
        )

    def _handle_delete_task(self, context: Dict[str, Any]) -> AgentResponse:
        """
        Delete a task. Sub-tasks are kept and lose their parent.

        Context params:
            task_id (int): Task to delete
        """
        validation = self.validate_required_params(context, ["task_id"])
        if validation:
            return validation

        task_id = context["task_id"]
        task = self._get_task_by_id(task_id)
        if not task:
            return AgentResponse.error(f"Task {task_id} not found")

        self.db.execute_write("DELETE FROM tasks WHERE id = ?", (task_id,))
        return AgentResponse.ok(
            message=f"Task deleted: '{task['title']}'",
            data={"task_id": task_id}
        )

    # =========================================================================
    # Validation
    # =========================================================================

    def _validate_fields(self, context: Dict[str, Any]):
        """
        Validate and normalize the optional task fields present in context.

        Returns:
            Tuple of (normalized fields dict, error AgentResponse or None)
        """
        fields: Dict[str, Any] = {}

        if context.get("status") is not None:
            try:
                fields["status"] = TaskStatus(enum_text(context["status"])).value
            except ValueError:
                return fields, AgentResponse.error(f"Invalid task status: {context['status']}")

        if context.get("priority") is not None:
            try:
                fields["priority"] = TaskPriority(enum_text(context["priority"])).value
            except ValueError:
                return fields, AgentResponse.error(f"Invalid task priority: {context['priority']}")

        if "due_date" in context:
            due = context["due_date"]
            if due:
                parsed = parse_iso_date(due)
                if parsed is None:
                    return fields, AgentResponse.error(f"Invalid due date: {due}")
                fields["due_date"] = to_iso_midnight(parsed)
            else:
                fields["due_date"] = None

        if "goal_id" in context:
            goal_id = context["goal_id"]
            if goal_id is not None and not self.db.execute_one(
                    "SELECT id FROM goals WHERE id = ?", (goal_id,)):
                return fields, AgentResponse.error(f"Goal {goal_id} not found")
            fields["goal_id"] = goal_id

        if "parent_id" in context:
            parent_id = context["parent_id"]
            if parent_id is not None and not self._get_task_by_id(parent_id):
                return fields, AgentResponse.error(f"Parent task {parent_id} not found")
            fields["parent_id"] = parent_id

        if context.get("tags") is not None:
            if not isinstance(context["tags"], list):
                return fields, AgentResponse.error("Tags must be a list")
            fields["tags"] = json.dumps(context["tags"], ensure_ascii=False)

        return fields, None

    # =========================================================================
    # Helper Methods
    # =========================================================================

    def _enrich_task(self, row: Dict[str, Any]) -> Dict[str, Any]:
        """
        Task row as a dictionary plus linked records.

        Adds:
        - is_overdue (open task past its due date)
        - goal / parent ({id, title} or None)
        """
        task = Task.from_dict(row)
        data = task.to_dict()
        data["is_overdue"] = task.is_overdue()
        data["goal"] = (
            {"id": task.goal_id, "title": row.get("goal_title")}
            if task.goal_id is not None else None
        )
        data["parent"] = (
            {"id": task.parent_id, "title": row.get("parent_title")}
            if task.parent_id is not None else None
        )
        return data

    # =========================================================================
    # Database Operations
    # =========================================================================

    _SELECT = """
        SELECT t.*, g.title AS goal_title, p.title AS parent_title
        FROM tasks t
        LEFT JOIN goals g ON g.id = t.goal_id
        LEFT JOIN tasks p ON p.id = t.parent_id
    """

    def _insert_task(self, task_data: Dict[str, Any]) -> int:
        """Insert a new task and return its ID."""
        columns = list(task_data.keys())
        placeholders = ", ".join("?" for _ in columns)
        query = f"INSERT INTO tasks ({', '.join(columns)}) VALUES ({placeholders})"
        return self.db.execute_write(query, tuple(task_data[c] for c in columns))

    def _get_task_by_id(self, task_id: int) -> Optional[Dict[str, Any]]:
        """Fetch a single task row (with goal and parent titles) by ID."""
        return self.db.execute_one(f"{self._SELECT} WHERE t.id = ?", (task_id,))

    def _update_task(self, task_id: int, fields: Dict[str, Any]) -> bool:
        """Update specified task fields."""
        if not fields:
            return False

        set_clause = ", ".join(f"{key} = ?" for key in fields.keys())
        query = f"UPDATE tasks SET {set_clause} WHERE id = ?"
        params = tuple(fields.values()) + (task_id,)

        return self.db.execute_write(query, params) > 0

    def _set_status(self, task_id: int, status: TaskStatus) -> bool:
        """Update task status and set completed_at if completed."""
        if status == TaskStatus.COMPLETED:
            query = """
                UPDATE tasks
                SET status = ?, completed_at = strftime('%Y-%m-%d %H:%M:%f', 'now', 'utc')
                WHERE id = ?
            """
        else:
            query = "UPDATE tasks SET status = ?, completed_at = NULL WHERE id = ?"
        return self.db.execute_write(query, (status.value, task_id)) > 0

    def _fetch_tasks(self, filters: Dict[str, Any], limit: int = 50) -> List[Dict[str, Any]]:
        """
        Fetch task rows with filters.

        Args:
            filters: Dictionary of filter conditions
            limit: Maximum number of results

        Returns:
            List of task rows, newest first
        """
        conditions = []
        params: List[Any] = []

        for key in ("user_id", "goal_id", "parent_id"):
            if key in filters:
                conditions.append(f"t.{key} = ?")
                params.append(filters[key])

        if "status" in filters:
            statuses = filters["status"]
            if not isinstance(statuses, list):
                statuses = [statuses]
            statuses = [enum_text(s) for s in statuses]
            placeholders = ",".join("?" * len(statuses))
            conditions.append(f"t.status IN ({placeholders})")
            params.extend(statuses)

        if "priority" in filters:
            conditions.append("t.priority = ?")
            params.append(enum_text(filters["priority"]))

        where_clause = " AND ".join(conditions) if conditions else "1=1"

        query = f"""
            {self._SELECT}
            WHERE {where_clause}
            ORDER BY t.created_at DESC, t.id DESC
            LIMIT ?
        """
        params.append(limit)

        return self.db.execute(query, tuple(params))
