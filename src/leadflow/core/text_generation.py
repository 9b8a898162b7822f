"""Message content generation over an OpenAI-compatible chat completions API."""

from dataclasses import dataclass
from typing import Any, Protocol

import httpx

from src.leadflow.core.config import Settings, get_settings
from src.leadflow.core.exceptions import TextGenerationError
from src.leadflow.core.logging import get_logger

logger = get_logger(__name__)


@dataclass(frozen=True)
class LeadContext:
    """Facts about the lead and step that shape the generated message."""

    business_name: str
    niche: str | None
    contact_status: str
    workflow_name: str
    message_type: str = "follow_up"
    tone: str = "professional"
    prompt_hint: str | None = None

    def to_prompt(self) -> str:
        return "\n".join(
            [
                f"Lead: {self.business_name}",
                f"Niche: {self.niche or 'unknown'}",
                f"Status: {self.contact_status}",
                f"Workflow: {self.workflow_name}",
                f"Email Type: {self.message_type}",
                f"Tone: {self.tone}",
                f"Hint: {self.prompt_hint or 'Write a compelling email'}",
            ]
        )


@dataclass(frozen=True)
class GeneratedMessage:
    subject: str
    body: str


class TextGenerator(Protocol):
    async def generate(self, context: LeadContext) -> GeneratedMessage:
        """Produce subject and body for one outbound message.

        Raises:
            TextGenerationError: on network, quota or response-shape failures
        """
        ...


def _default_subject(context: LeadContext) -> str:
    label = context.message_type.replace("_", " ").capitalize()
    return f"{label} - {context.business_name}"


class ChatCompletionsGenerator:
    """Async HTTP client for an OpenAI-compatible completions endpoint.

    Without an API key a plain template is returned so the engine still
    produces drafts in development.
    """

    def __init__(
        self,
        settings: Settings | None = None,
        client: httpx.AsyncClient | None = None,
    ):
        self.settings = settings or get_settings()
        self._client = client

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(
                base_url=self.settings.text_generation_url.rstrip("/"),
                headers={
                    "Authorization": f"Bearer {self.settings.text_generation_api_key}",
                    "Content-Type": "application/json",
                },
                timeout=self.settings.text_generation_timeout_seconds,
            )
        return self._client

    async def close(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    async def generate(self, context: LeadContext) -> GeneratedMessage:
        if not self.settings.text_generation_api_key:
            logger.warning(
                "TEXT_GENERATION_API_KEY not set - using template message",
                business_name=context.business_name,
            )
            return GeneratedMessage(
                subject=_default_subject(context),
                body=(
                    f"Hi {context.business_name} team,\n\n"
                    "I wanted to follow up on my earlier note. "
                    "Would you be open to a quick call this week?"
                ),
            )

        payload: dict[str, Any] = {
            "model": self.settings.text_generation_model,
            "messages": [
                {
                    "role": "system",
                    "content": f"Generate a {context.tone} email for this B2B lead. "
                    "Return only the email body.",
                },
                {"role": "user", "content": context.to_prompt()},
            ],
        }

        try:
            response = await self._get_client().post("/v1/chat/completions", json=payload)
            response.raise_for_status()
            data = response.json()
            body = data["choices"][0]["message"]["content"]
        except httpx.HTTPStatusError as e:
            raise TextGenerationError(
                f"Text generation failed: {e.response.status_code}"
            ) from e
        except httpx.HTTPError as e:
            raise TextGenerationError(f"Text generation request failed: {e}") from e
        except (KeyError, IndexError, TypeError, ValueError) as e:
            raise TextGenerationError("Text generation returned an unexpected payload") from e

        if not body or not body.strip():
            raise TextGenerationError("Text generation returned an empty message")

        return GeneratedMessage(subject=_default_subject(context), body=body.strip())
