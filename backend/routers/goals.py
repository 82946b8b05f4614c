"""
Goals management API endpoints.

Provides CRUD operations for goals and goal extraction from a chat turn,
leveraging the GoalAgent for business logic.
"""

from typing import Optional
from fastapi import APIRouter, Depends, HTTPException, Query

from backend.dependencies import get_goal_agent
from backend.schemas import (
    GoalCreate,
    GoalUpdate,
    GoalResponse,
    GoalListResponse,
    ExtractRequest,
    StructuredGoalSchema,
    AgentResponseSchema,
)
from pdca.agents import GoalAgent, AgentResponse

router = APIRouter(prefix="/goals", tags=["goals"])


def _to_schema(response: AgentResponse) -> AgentResponseSchema:
    return AgentResponseSchema(
        success=response.success,
        message=response.message,
        data=response.data,
        suggestions=response.suggestions,
    )


@router.get("/", response_model=GoalListResponse)
async def list_goals(
    user_id: Optional[str] = Query(None, description="Filter by owner"),
    status: Optional[str] = Query(None, description="Filter by status"),
    level: Optional[str] = Query(None, description="Filter by level"),
    parent_id: Optional[int] = Query(None, description="Only sub-goals of this goal"),
    limit: int = Query(50, ge=1, le=500),
    agent: GoalAgent = Depends(get_goal_agent),
):
    """
    List goals with optional filters, newest first.

    Supports filtering by owner, status (ACTIVE, COMPLETED, CANCELLED,
    ARCHIVED), level and parent goal.
    """
    context = {
        "user_id": user_id,
        "status": status,
        "level": level,
        "parent_id": parent_id,
        "limit": limit,
    }
    context = {k: v for k, v in context.items() if v is not None}

    response = agent.process("list_goals", context)

    if not response.success:
        raise HTTPException(status_code=400, detail=response.message)

    goals_data = response.data.get("goals", []) if response.data else []

    return GoalListResponse(
        goals=[GoalResponse(**g) for g in goals_data],
        total=len(goals_data),
    )


@router.post("/", response_model=AgentResponseSchema, status_code=201)
async def create_goal(
    goal: GoalCreate,
    agent: GoalAgent = Depends(get_goal_agent),
):
    """Create a new goal."""
    context = goal.model_dump(exclude_none=True)

    response = agent.process("create_goal", context)

    if not response.success:
        raise HTTPException(status_code=400, detail=response.message)

    return _to_schema(response)


@router.post("/extract", response_model=Optional[StructuredGoalSchema])
async def extract_goal(
    request: ExtractRequest,
    agent: GoalAgent = Depends(get_goal_agent),
):
    """
    Propose a goal from one chat turn without saving it.

    Returns the structured goal, or null when the text names no goal.
    """
    response = agent.process("extract_goal", {
        "text": request.userInput,
        "reply": request.assistantReply,
    })

    if not response.success:
        raise HTTPException(status_code=400, detail=response.message)

    return response.data.get("extracted_goal") if response.data else None


@router.get("/{goal_id}", response_model=GoalResponse)
async def get_goal(
    goal_id: int,
    agent: GoalAgent = Depends(get_goal_agent),
):
    """Get a single goal by ID, including its sub-goals."""
    response = agent.process("get_goal", {"goal_id": goal_id})

    if not response.success:
        raise HTTPException(status_code=404, detail=response.message)

    goal_data = response.data.get("goal") if response.data else None
    if not goal_data:
        raise HTTPException(status_code=404, detail="Goal not found")

    return GoalResponse(**goal_data)


@router.put("/{goal_id}", response_model=AgentResponseSchema)
async def update_goal(
    goal_id: int,
    goal: GoalUpdate,
    agent: GoalAgent = Depends(get_goal_agent),
):
    """Update an existing goal."""
    context = {"goal_id": goal_id}
    update_data = goal.model_dump(exclude_unset=True)
    context.update(update_data)

    response = agent.process("update_goal", context)

    if not response.success:
        raise HTTPException(status_code=400, detail=response.message)

    return _to_schema(response)


@router.delete("/{goal_id}", response_model=AgentResponseSchema)
async def delete_goal(
    goal_id: int,
    agent: GoalAgent = Depends(get_goal_agent),
):
    """Delete a goal. Its sub-goals are kept without a parent."""
    response = agent.process("delete_goal", {"goal_id": goal_id})

    if not response.success:
        raise HTTPException(status_code=404, detail=response.message)

    return _to_schema(response)
