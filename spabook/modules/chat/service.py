# spabook/modules/chat/service.py
from __future__ import annotations

import logging

from openai import AsyncOpenAI, OpenAIError

from spabook.core.config import settings
from spabook.core.exceptions import NotificationError
from spabook.modules.procedures.catalogue import catalogue_lines

logger = logging.getLogger(__name__)


def build_system_prompt() -> str:
    return (
        f"Eres un asistente virtual profesional de {settings.SPA_NAME}, un spa de lujo "
        "que ofrece tratamientos de bienestar y belleza.\n\n"
        "Procedimientos disponibles:\n"
        f"{catalogue_lines()}\n\n"
        "Tu tarea es:\n"
        "- Proporcionar información detallada sobre los procedimientos\n"
        "- Ayudar a los clientes a elegir el tratamiento adecuado según sus necesidades\n"
        "- Responder preguntas sobre beneficios, duración y precios\n"
        "- Ser amable, profesional y cercano\n"
        "- Si te preguntan algo que no sabes, recomienda contactar directamente al spa\n\n"
        "Responde de manera concisa y útil."
    )


class ChatClient:
    """Thin wrapper over an OpenAI-compatible chat completion endpoint."""

    def __init__(self, client: AsyncOpenAI | None = None, model: str | None = None):
        self.model = model or settings.CHAT_MODEL
        self._client = client

    @property
    def client(self) -> AsyncOpenAI:
        if self._client is None:
            if not settings.CHAT_API_KEY:
                raise NotificationError("chat_not_configured")
            self._client = AsyncOpenAI(
                api_key=settings.CHAT_API_KEY,
                base_url=settings.CHAT_API_BASE_URL,
                timeout=settings.CHAT_TIMEOUT_SECONDS,
            )
        return self._client

    async def reply(self, message: str) -> str:
        try:
            response = await self.client.chat.completions.create(
                model=self.model,
                messages=[
                    {"role": "system", "content": build_system_prompt()},
                    {"role": "user", "content": message},
                ],
            )
        except OpenAIError as exc:
            logger.error("Chat completion failed: %s", exc)
            raise NotificationError("chat_failed", message=str(exc)) from exc

        if not response.choices or response.choices[0].message.content is None:
            logger.error("Chat completion returned no content")
            raise NotificationError("chat_empty_response")
        return response.choices[0].message.content


_chat: ChatClient | None = None


def get_chat_client() -> ChatClient:
    global _chat
    if _chat is None:
        _chat = ChatClient()
    return _chat
