# spabook/routers/functions.py
from __future__ import annotations

from typing import Any, Optional

from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import BaseModel

from spabook.core.exceptions import NotificationError
from spabook.dependencies import require_roles
from spabook.modules.chat.service import ChatClient, get_chat_client
from spabook.modules.notifications.email import EmailSender, get_email_sender
from spabook.modules.users.models import User

router = APIRouter(prefix="/functions", tags=["functions"])


class SendEmailRequest(BaseModel):
    to: Optional[str] = None
    subject: Optional[str] = None
    html: Optional[str] = None
    fromName: Optional[str] = None


class SendEmailResponse(BaseModel):
    success: bool
    data: dict[str, Any]


class ChatRequest(BaseModel):
    message: str


class ChatResponse(BaseModel):
    response: str


@router.post("/resend", response_model=SendEmailResponse)
async def functions_resend(
    payload: SendEmailRequest,
    sender: EmailSender = Depends(get_email_sender),
    admin: User = Depends(require_roles("admin")),
):
    """Relay an HTML email through Resend. Admins only."""
    if not payload.to or not payload.subject or not payload.html:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="missing_required_fields",
        )
    try:
        data = await sender.send(
            to=payload.to,
            subject=payload.subject,
            html=payload.html,
            from_name=payload.fromName,
        )
    except NotificationError as exc:
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=exc.code)
    return SendEmailResponse(success=True, data=data)


@router.post("/spa-chat", response_model=ChatResponse)
async def functions_spa_chat(
    payload: ChatRequest,
    chat: ChatClient = Depends(get_chat_client),
):
    """Answer a visitor question about the treatment menu."""
    try:
        answer = await chat.reply(payload.message)
    except NotificationError as exc:
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=exc.code)
    return ChatResponse(response=answer)
