"""
Task management API endpoints.

Provides CRUD operations for tasks and a status-only update, leveraging
the TaskAgent for business logic.
"""

from typing import Optional
from fastapi import APIRouter, Depends, HTTPException, Query

from backend.dependencies import get_task_agent
from backend.schemas import (
    TaskCreate,
    TaskUpdate,
    TaskStatusUpdate,
    TaskResponse,
    TaskListResponse,
    AgentResponseSchema,
)
from pdca.agents import TaskAgent, AgentResponse

router = APIRouter(prefix="/tasks", tags=["tasks"])


def _to_schema(response: AgentResponse) -> AgentResponseSchema:
    return AgentResponseSchema(
        success=response.success,
        message=response.message,
        data=response.data,
        suggestions=response.suggestions,
    )


def _raise_for(response: AgentResponse) -> None:
    """Missing tasks are 404, anything else the agent rejects is 400."""
    if response.success:
        return
    if response.message.startswith("Task ") and response.message.endswith(" not found"):
        raise HTTPException(status_code=404, detail=response.message)
    raise HTTPException(status_code=400, detail=response.message)


@router.get("/", response_model=TaskListResponse)
async def list_tasks(
    user_id: Optional[str] = Query(None, description="Filter by owner"),
    status: Optional[str] = Query(None, description="Filter by status"),
    priority: Optional[str] = Query(None, description="Filter by priority"),
    goal_id: Optional[int] = Query(None, description="Only tasks for this goal"),
    parent_id: Optional[int] = Query(None, description="Only sub-tasks of this task"),
    limit: int = Query(50, ge=1, le=500),
    agent: TaskAgent = Depends(get_task_agent),
):
    """
    List tasks with optional filters, newest first.

    Supports filtering by owner, status (TODO, IN_PROGRESS, COMPLETED,
    CANCELLED), priority, goal and parent task.
    """
    context = {
        "user_id": user_id,
        "status": status,
        "priority": priority,
        "goal_id": goal_id,
        "parent_id": parent_id,
        "limit": limit,
    }
    context = {k: v for k, v in context.items() if v is not None}

    response = agent.process("list_tasks", context)
    _raise_for(response)

    tasks_data = response.data.get("tasks", []) if response.data else []

    return TaskListResponse(
        tasks=[TaskResponse(**t) for t in tasks_data],
        total=len(tasks_data),
    )


@router.post("/", response_model=AgentResponseSchema, status_code=201)
async def create_task(
    task: TaskCreate,
    agent: TaskAgent = Depends(get_task_agent),
):
    """Create a new task, optionally linked to a goal."""
    response = agent.process("create_task", task.model_dump(exclude_none=True))
    _raise_for(response)
    return _to_schema(response)


@router.get("/{task_id}", response_model=TaskResponse)
async def get_task(
    task_id: int,
    agent: TaskAgent = Depends(get_task_agent),
):
    """Get a single task by ID, including its goal, parent and sub-tasks."""
    response = agent.process("get_task", {"task_id": task_id})
    _raise_for(response)
    return TaskResponse(**response.data["task"])


@router.put("/{task_id}", response_model=AgentResponseSchema)
async def update_task(
    task_id: int,
    task: TaskUpdate,
    agent: TaskAgent = Depends(get_task_agent),
):
    """Update an existing task."""
    context = {"task_id": task_id}
    context.update(task.model_dump(exclude_unset=True))

    response = agent.process("update_task", context)
    _raise_for(response)
    return _to_schema(response)


@router.patch("/{task_id}/status", response_model=AgentResponseSchema)
async def update_task_status(
    task_id: int,
    body: TaskStatusUpdate,
    agent: TaskAgent = Depends(get_task_agent),
):
    """Move a task to another status."""
    response = agent.process("update_task_status", {"task_id": task_id, "status": body.status})
    _raise_for(response)
    return _to_schema(response)


@router.delete("/{task_id}", response_model=AgentResponseSchema)
async def delete_task(
    task_id: int,
    agent: TaskAgent = Depends(get_task_agent),
):
    """Delete a task. Its sub-tasks are kept without a parent."""
    response = agent.process("delete_task", {"task_id": task_id})
    _raise_for(response)
    return _to_schema(response)
