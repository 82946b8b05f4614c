"""
Pydantic schemas for API request/response validation.

These schemas provide:
- Type safety for API inputs and outputs
- Automatic validation and error messages
- OpenAPI documentation generation

Chat and extraction bodies use the camelCase field names the chat
frontend sends (userId, userInput, assistantReply); goal storage
schemas use the snake_case column names.
"""

from typing import Any, Dict, List, Optional
from pydantic import BaseModel, Field


# =============================================================================
# Base Response Schemas
# =============================================================================

class AgentResponseSchema(BaseModel):
    """Standard response from any agent operation."""
    success: bool
    message: str
    data: Optional[Dict[str, Any]] = None
    suggestions: Optional[List[str]] = None

    class Config:
        from_attributes = True


class ErrorResponse(BaseModel):
    """Error response for API errors."""
    detail: str
    code: Optional[str] = None


# =============================================================================
# Goal Schemas
# =============================================================================

class MetricSchema(BaseModel):
    """Success metric within a goal."""
    description: str
    target: Optional[float] = None
    unit: Optional[str] = None


class GoalCreate(BaseModel):
    """Request body for creating a goal."""
    title: str = Field(..., min_length=1, max_length=500)
    description: Optional[str] = None
    user_id: Optional[str] = None
    level: Optional[str] = None  # VISION, YEARLY, QUARTERLY, MONTHLY, WEEKLY
    status: Optional[str] = None  # ACTIVE, COMPLETED, CANCELLED, ARCHIVED
    start_date: str
    end_date: str
    parent_id: Optional[int] = None
    tags: Optional[List[str]] = None
    metrics: Optional[List[MetricSchema]] = None
    resources: Optional[List[str]] = None
    priority: Optional[int] = Field(default=None, ge=1, le=10)
    weight: Optional[float] = Field(default=None, ge=0, le=1)


class GoalUpdate(BaseModel):
    """Request body for updating a goal."""
    title: Optional[str] = Field(default=None, min_length=1, max_length=500)
    description: Optional[str] = None
    level: Optional[str] = None
    status: Optional[str] = None
    start_date: Optional[str] = None
    end_date: Optional[str] = None
    parent_id: Optional[int] = None
    tags: Optional[List[str]] = None
    metrics: Optional[List[MetricSchema]] = None
    resources: Optional[List[str]] = None
    priority: Optional[int] = Field(default=None, ge=1, le=10)
    weight: Optional[float] = Field(default=None, ge=0, le=1)
    progress: Optional[float] = Field(default=None, ge=0, le=1)


class GoalResponse(BaseModel):
    """Goal data returned from API."""
    id: int
    user_id: str
    title: str
    description: Optional[str] = None
    level: str
    status: str
    start_date: Optional[str] = None
    end_date: Optional[str] = None
    parent_id: Optional[int] = None
    tags: List[Any] = []
    metrics: List[Any] = []
    resources: List[Any] = []
    priority: int = 5
    weight: float = 1.0
    progress: float = 0.0
    is_overdue: bool = False
    days_total: Optional[int] = None
    children: Optional[List[Dict[str, Any]]] = None
    created_at: Optional[str] = None
    updated_at: Optional[str] = None

    class Config:
        from_attributes = True


class GoalListResponse(BaseModel):
    """Response for listing goals."""
    goals: List[GoalResponse]
    total: int


# =============================================================================
# Task Schemas
# =============================================================================

class TaskCreate(BaseModel):
    """Request body for creating a task."""
    title: str = Field(..., min_length=1, max_length=500)
    description: Optional[str] = None
    user_id: Optional[str] = None
    status: Optional[str] = None  # TODO, IN_PROGRESS, COMPLETED, CANCELLED
    priority: Optional[str] = None  # LOW, MEDIUM, HIGH, URGENT
    due_date: Optional[str] = None
    goal_id: Optional[int] = None
    parent_id: Optional[int] = None
    tags: Optional[List[str]] = None


class TaskUpdate(BaseModel):
    """Request body for updating a task. due_date, goal_id and parent_id accept null to clear."""
    title: Optional[str] = Field(default=None, min_length=1, max_length=500)
    description: Optional[str] = None
    status: Optional[str] = None
    priority: Optional[str] = None
    due_date: Optional[str] = None
    goal_id: Optional[int] = None
    parent_id: Optional[int] = None
    tags: Optional[List[str]] = None


class TaskStatusUpdate(BaseModel):
    """Request body for changing only a task's status."""
    status: str


class TaskLink(BaseModel):
    """Linked goal or task."""
    id: int
    title: Optional[str] = None


class TaskResponse(BaseModel):
    """Response schema for a single task."""
    id: int
    user_id: str
    title: str
    description: Optional[str] = None
    status: str
    priority: str
    due_date: Optional[str] = None
    goal_id: Optional[int] = None
    parent_id: Optional[int] = None
    tags: List[str] = []
    goal: Optional[TaskLink] = None
    parent: Optional[TaskLink] = None
    sub_tasks: Optional[List[Dict[str, Any]]] = None
    is_overdue: bool = False
    completed_at: Optional[str] = None
    created_at: Optional[str] = None
    updated_at: Optional[str] = None

    class Config:
        from_attributes = True


class TaskListResponse(BaseModel):
    """Response for listing tasks."""
    tasks: List[TaskResponse]
    total: int


# =============================================================================
# Extraction Schemas
# =============================================================================

class ExtractRequest(BaseModel):
    """Request body for extracting a goal from one chat turn."""
    userInput: str = Field(..., min_length=1, max_length=10000)
    assistantReply: str = Field(default="", max_length=20000)


class StructuredGoalSchema(BaseModel):
    """Goal proposed by the extractor (same shape as the x-extracted-goal header)."""
    title: str
    description: str
    level: str
    status: str
    startDate: str
    endDate: str
    metrics: List[MetricSchema] = []
    resources: List[str] = []
    priority: int
    weight: float


# =============================================================================
# Chat Schemas
# =============================================================================

class ChatMessage(BaseModel):
    """One message in a chat history."""
    id: Optional[str] = None
    role: str  # user, assistant, system
    content: str


class ChatRequest(BaseModel):
    """
    Request body for chat endpoints.

    userId and messages are checked by the route rather than by the schema,
    so that a missing user or an empty history is a 400, not a 422.
    """
    messages: List[ChatMessage] = []
    userId: Optional[str] = None


class ChatResponse(BaseModel):
    """Assistant reply, wrapped as a one-message list."""
    messages: List[ChatMessage]
