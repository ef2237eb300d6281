from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from movienight.api.deps import get_db, get_household_context
from movienight.schema.chat import ChatHistory, ChatReply, ChatRequest
from movienight.services import chat_service
from movienight.services.household_service import ActiveHouseholdContext

router = APIRouter()


@router.post("", response_model=ChatReply, response_model_exclude_none=True)
async def chat_endpoint(
    payload: ChatRequest,
    session: AsyncSession = Depends(get_db),
    context: ActiveHouseholdContext = Depends(get_household_context),
) -> ChatReply:
    return await chat_service.relay(session, context, payload)


@router.get("/history", response_model=ChatHistory)
async def chat_history_endpoint(
    session: AsyncSession = Depends(get_db),
    context: ActiveHouseholdContext = Depends(get_household_context),
) -> ChatHistory:
    messages = await chat_service.list_history(session, context.household_id)
    return ChatHistory(messages=messages)
