"""
Data models for PDCA Planner
Defines goal levels/statuses, the stored Goal and Task entities and the StructuredGoal
record proposed by the goal extractor.
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Optional, List, Dict, Any
import base64
import json


class GoalLevel(str, Enum):
    """Time horizon of a goal, from broadest to narrowest"""
    VISION = "VISION"
    YEARLY = "YEARLY"
    QUARTERLY = "QUARTERLY"
    MONTHLY = "MONTHLY"
    WEEKLY = "WEEKLY"


class GoalStatus(str, Enum):
    """Lifecycle state of a goal"""
    ACTIVE = "ACTIVE"
    COMPLETED = "COMPLETED"
    CANCELLED = "CANCELLED"
    ARCHIVED = "ARCHIVED"


@dataclass
class Metric:
    """A success measure attached to a goal. Target/unit stay None until resolved."""
    description: str
    target: Optional[float] = None
    unit: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {"description": self.description, "target": self.target, "unit": self.unit}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Metric':
        return cls(
            description=data.get('description', ''),
            target=data.get('target'),
            unit=data.get('unit'),
        )


@dataclass(frozen=True)
class StructuredGoal:
    """
    Goal proposed by the extractor from a chat turn.

    Only ``title`` is guaranteed; the extractor fills every other field
    with a default when the text gives no cue. Dates are ISO timestamp
    strings, or the raw matched text when it could not be normalized.
    """
    title: str
    description: Optional[str] = None
    level: GoalLevel = GoalLevel.MONTHLY
    status: GoalStatus = GoalStatus.ACTIVE
    start_date: Optional[str] = None
    end_date: Optional[str] = None
    metrics: List[Metric] = field(default_factory=list)
    resources: List[Any] = field(default_factory=list)
    priority: int = 5
    weight: float = 1.0

    HEADER_NAME = "x-extracted-goal"

    def to_dict(self) -> Dict[str, Any]:
        """Serialize using the camelCase keys the web client expects."""
        return {
            "title": self.title,
            "description": self.description,
            "level": self.level.value,
            "status": self.status.value,
            "startDate": self.start_date,
            "endDate": self.end_date,
            "metrics": [m.to_dict() for m in self.metrics],
            "resources": list(self.resources),
            "priority": self.priority,
            "weight": self.weight,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'StructuredGoal':
        return cls(
            title=data['title'],
            description=data.get('description'),
            level=GoalLevel(data.get('level') or GoalLevel.MONTHLY.value),
            status=GoalStatus(data.get('status') or GoalStatus.ACTIVE.value),
            start_date=data.get('startDate'),
            end_date=data.get('endDate'),
            metrics=[Metric.from_dict(m) for m in data.get('metrics') or []],
            resources=list(data.get('resources') or []),
            priority=data.get('priority', 5),
            weight=data.get('weight', 1.0),
        )

    def to_header(self) -> str:
        """Encode as base64 of the UTF-8 JSON text, for the x-extracted-goal header."""
        payload = json.dumps(self.to_dict(), ensure_ascii=False)
        return base64.b64encode(payload.encode("utf-8")).decode("ascii")

    @classmethod
    def from_header(cls, value: str) -> 'StructuredGoal':
        """Decode a value produced by to_header()."""
        payload = base64.b64decode(value.encode("ascii")).decode("utf-8")
        return cls.from_dict(json.loads(payload))


@dataclass
class Goal:
    """Stored goal entity"""
    id: Optional[int] = None
    user_id: str = "local"
    title: str = ""
    description: Optional[str] = None
    level: GoalLevel = GoalLevel.MONTHLY
    status: GoalStatus = GoalStatus.ACTIVE
    start_date: Optional[str] = None
    end_date: Optional[str] = None
    parent_id: Optional[int] = None
    tags: List[str] = field(default_factory=list)
    metrics: List[Dict[str, Any]] = field(default_factory=list)
    resources: List[Any] = field(default_factory=list)
    priority: int = 5
    weight: float = 1.0
    progress: float = 0.0
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Goal':
        """Create Goal from database row dictionary"""
        return cls(
            id=data.get('id'),
            user_id=data.get('user_id') or "local",
            title=data.get('title', ''),
            description=data.get('description'),
            level=GoalLevel(data.get('level') or GoalLevel.MONTHLY.value),
            status=GoalStatus(data.get('status') or GoalStatus.ACTIVE.value),
            start_date=data.get('start_date'),
            end_date=data.get('end_date'),
            parent_id=data.get('parent_id'),
            tags=cls._parse_json_list(data.get('tags')),
            metrics=cls._parse_json_list(data.get('metrics')),
            resources=cls._parse_json_list(data.get('resources')),
            priority=data.get('priority') if data.get('priority') is not None else 5,
            weight=data.get('weight') if data.get('weight') is not None else 1.0,
            progress=data.get('progress') or 0.0,
            created_at=cls._parse_datetime(data.get('created_at')),
            updated_at=cls._parse_datetime(data.get('updated_at')),
        )

    @classmethod
    def from_structured(cls, goal: StructuredGoal, user_id: str = "local") -> 'Goal':
        """Build a storable Goal from an extracted StructuredGoal."""
        return cls(
            user_id=user_id,
            title=goal.title,
            description=goal.description,
            level=goal.level,
            status=goal.status,
            start_date=goal.start_date,
            end_date=goal.end_date,
            metrics=[m.to_dict() for m in goal.metrics],
            resources=list(goal.resources),
            priority=goal.priority,
            weight=goal.weight,
        )

    def to_dict(self) -> Dict[str, Any]:
        """Convert to a JSON-friendly dictionary"""
        return {
            "id": self.id,
            "user_id": self.user_id,
            "title": self.title,
            "description": self.description,
            "level": self.level.value,
            "status": self.status.value,
            "start_date": self.start_date,
            "end_date": self.end_date,
            "parent_id": self.parent_id,
            "tags": list(self.tags),
            "metrics": list(self.metrics),
            "resources": list(self.resources),
            "priority": self.priority,
            "weight": self.weight,
            "progress": self.progress,
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
        }

    def is_overdue(self, now: Optional[datetime] = None) -> bool:
        """Check if an active goal's end date has passed"""
        if self.status != GoalStatus.ACTIVE or not self.end_date:
            return False
        end = self._parse_datetime(self.end_date.replace("Z", "+00:00"))
        if end is None:
            return False
        now = now or datetime.now(end.tzinfo)
        return end < now

    @staticmethod
    def _parse_datetime(dt_str: Optional[str]) -> Optional[datetime]:
        """Parse datetime string from database"""
        if dt_str:
            try:
                return datetime.fromisoformat(dt_str)
            except (ValueError, TypeError):
                return None
        return None

    @staticmethod
    def _parse_json_list(json_str: Any) -> List[Any]:
        """Parse JSON list from database"""
        if isinstance(json_str, list):
            return json_str
        if json_str:
            try:
                result = json.loads(json_str)
                return result if isinstance(result, list) else []
            except (json.JSONDecodeError, TypeError):
                return []
        return []


class TaskStatus(str, Enum):
    """Lifecycle state of a task"""
    TODO = "TODO"
    IN_PROGRESS = "IN_PROGRESS"
    COMPLETED = "COMPLETED"
    CANCELLED = "CANCELLED"


class TaskPriority(str, Enum):
    """Task urgency"""
    LOW = "LOW"
    MEDIUM = "MEDIUM"
    HIGH = "HIGH"
    URGENT = "URGENT"


@dataclass
class Task:
    """Stored task entity, optionally linked to a goal and a parent task"""
    id: Optional[int] = None
    user_id: str = "local"
    title: str = ""
    description: Optional[str] = None
    status: TaskStatus = TaskStatus.TODO
    priority: TaskPriority = TaskPriority.MEDIUM
    due_date: Optional[str] = None
    goal_id: Optional[int] = None
    parent_id: Optional[int] = None
    tags: List[str] = field(default_factory=list)
    completed_at: Optional[datetime] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Task':
        """Create Task from database row dictionary"""
        return cls(
            id=data.get('id'),
            user_id=data.get('user_id') or "local",
            title=data.get('title', ''),
            description=data.get('description'),
            status=TaskStatus(data.get('status') or TaskStatus.TODO.value),
            priority=TaskPriority(data.get('priority') or TaskPriority.MEDIUM.value),
            due_date=data.get('due_date'),
            goal_id=data.get('goal_id'),
            parent_id=data.get('parent_id'),
            tags=Goal._parse_json_list(data.get('tags')),
            completed_at=Goal._parse_datetime(data.get('completed_at')),
            created_at=Goal._parse_datetime(data.get('created_at')),
            updated_at=Goal._parse_datetime(data.get('updated_at')),
        )

    def to_dict(self) -> Dict[str, Any]:
        """Convert to a JSON-friendly dictionary"""
        return {
            "id": self.id,
            "user_id": self.user_id,
            "title": self.title,
            "description": self.description,
            "status": self.status.value,
            "priority": self.priority.value,
            "due_date": self.due_date,
            "goal_id": self.goal_id,
            "parent_id": self.parent_id,
            "tags": list(self.tags),
            "completed_at": self.completed_at.isoformat() if self.completed_at else None,
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
        }

    def is_overdue(self, now: Optional[datetime] = None) -> bool:
        """Check if an open task's due date has passed"""
        if self.status in (TaskStatus.COMPLETED, TaskStatus.CANCELLED) or not self.due_date:
            return False
        due = Goal._parse_datetime(self.due_date.replace("Z", "+00:00"))
        if due is None:
            return False
        now = now or datetime.now(due.tzinfo)
        return due < now
