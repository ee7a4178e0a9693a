"""Reply generators for the assistant side of a conversation."""

import random
from abc import ABC, abstractmethod
from typing import List, Optional, Sequence

import google.generativeai as genai
import structlog
from google.api_core import exceptions

from ..domain.models import Message, Role

logger = structlog.get_logger()

CANNED_TEMPLATES = (
    "I understand your question about: {prompt}. Let me help you with that.",
    "That's an interesting point. Here's what I think about {prompt}...",
    "Based on your message about {prompt}, I can provide some insights.",
    "Thank you for asking about {prompt}. Here's my response...",
)


class Responder(ABC):
    """Produces the assistant's reply to a user message."""

    @abstractmethod
    async def generate_reply(self, prompt: str, history: Sequence[Message]) -> str:
        """Return reply text for ``prompt`` given the earlier messages."""
        pass


class CannedResponder(Responder):
    """Simulated assistant that echoes the prompt inside a stock phrase."""

    def __init__(self, rng: Optional[random.Random] = None, templates: Sequence[str] = CANNED_TEMPLATES) -> None:
        if not templates:
            raise ValueError("at least one template is required")
        self._rng = rng or random.Random()
        self.templates = tuple(templates)

    async def generate_reply(self, prompt: str, history: Sequence[Message]) -> str:
        return self._rng.choice(self.templates).format(prompt=prompt)


class GeminiResponder(Responder):
    """Responder backed by Google's Gemini model.

    Any API failure, quota exhaustion included, falls back to ``fallback``
    so the conversation always receives a reply.
    """

    def __init__(
        self,
        api_key: str,
        model_name: str = "gemini-1.5-flash",
        context_window: int = 5,
        fallback: Optional[Responder] = None,
        model=None,
    ) -> None:
        if model is None:
            genai.configure(api_key=api_key)
            model = genai.GenerativeModel(model_name)
        self.model = model
        self.model_name = model_name
        self.context_window = context_window
        self.fallback = fallback or CannedResponder()
        logger.info("responder_initialized", backend="gemini", model=model_name)

    def _format_prompt(self, prompt: str, history: Sequence[Message]) -> str:
        """Render recent history and the new message as a plain-text prompt."""
        recent: List[Message] = list(history)[-self.context_window :] if self.context_window > 0 else []
        lines = ["You are a helpful assistant in a chat application."]
        for message in recent:
            speaker = "User" if message.role is Role.USER else "Assistant"
            lines.append(f"{speaker}: {message.content}")
        lines.append(f"User: {prompt}")
        lines.append("Assistant:")
        return "\n".join(lines)

    async def generate_reply(self, prompt: str, history: Sequence[Message]) -> str:
        try:
            response = await self.model.generate_content_async(self._format_prompt(prompt, history))
            text = (response.text or "").strip()
        except exceptions.ResourceExhausted:
            logger.warning("gemini_quota_exhausted", fallback="canned")
            return await self.fallback.generate_reply(prompt, history)
        except Exception as e:
            logger.error("response_generation_error", model=self.model_name, error=str(e))
            return await self.fallback.generate_reply(prompt, history)

        if not text:
            logger.warning("gemini_empty_response", model=self.model_name)
            return await self.fallback.generate_reply(prompt, history)
        return text
