"""
Chat API endpoints.

Runs chat turns through the GoalChatAgent:
- POST /chat/goal: goal-planning coach; a goal proposed by the turn is
  returned base64-encoded in the x-extracted-goal response header
- POST /chat: PDCA planning assistant
"""

import uuid

from fastapi import APIRouter, Depends, HTTPException, Response

from backend.dependencies import get_chat_agent
from backend.schemas import ChatMessage, ChatRequest, ChatResponse
from pdca.agents import GoalChatAgent, AgentResponse
from pdca.core.models import StructuredGoal

router = APIRouter(prefix="/chat", tags=["chat"])


def _run_chat(intent: str, request: ChatRequest, agent: GoalChatAgent) -> AgentResponse:
    """Validate the request, run one chat turn and map failures to HTTP errors."""
    if not request.userId:
        raise HTTPException(status_code=400, detail="userId is required")
    if not request.messages:
        raise HTTPException(status_code=400, detail="Messages are required")

    response = agent.process(intent, {
        "messages": [m.model_dump() for m in request.messages],
        "user_id": request.userId,
    })

    if not response.success:
        if response.data and response.data.get("error_type") == "llm":
            raise HTTPException(status_code=502, detail=response.message)
        raise HTTPException(status_code=400, detail=response.message)

    return response


def _reply(content: str) -> ChatResponse:
    return ChatResponse(messages=[
        ChatMessage(id=uuid.uuid4().hex, role="assistant", content=content)
    ])


# Plain def: the LLM call blocks, so these run in FastAPI's threadpool.

@router.post("/goal", response_model=ChatResponse)
def goal_chat(
    request: ChatRequest,
    response: Response,
    agent: GoalChatAgent = Depends(get_chat_agent),
):
    """
    One goal-planning chat turn.

    When the turn names a goal, the x-extracted-goal header carries it as
    base64 of its UTF-8 JSON, so the client can offer to save it.
    """
    result = _run_chat("goal_chat", request, agent)

    header = result.data.get("goal_header")
    if header:
        response.headers[StructuredGoal.HEADER_NAME] = header

    return _reply(result.data["reply"])


@router.post("", response_model=ChatResponse)
def plan_chat(
    request: ChatRequest,
    agent: GoalChatAgent = Depends(get_chat_agent),
):
    """One PDCA planning-assistant chat turn."""
    result = _run_chat("plan_chat", request, agent)
    return _reply(result.data["reply"])
