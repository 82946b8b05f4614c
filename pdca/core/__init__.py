"""
Core module for PDCA Planner
Contains database, configuration, date helpers and model definitions
"""

from .config import Config
from .database import Database
from .models import (
    Goal, GoalLevel, GoalStatus, Metric, StructuredGoal, Task, TaskPriority, TaskStatus,
)

__all__ = [
    'Config', 'Database', 'Goal', 'GoalLevel', 'GoalStatus', 'Metric', 'StructuredGoal',
    'Task', 'TaskPriority', 'TaskStatus',
]
