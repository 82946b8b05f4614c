"""
API routers for the PDCA Planner backend.

Each router handles a specific domain:
- goals: Goal CRUD and goal extraction
- tasks: Task CRUD and status changes
- chat: Goal-planning and plan-assistant chat turns
"""

from .goals import router as goals_router
from .tasks import router as tasks_router
from .chat import router as chat_router

__all__ = [
    'goals_router',
    'tasks_router',
    'chat_router',
]
