from __future__ import annotations

import asyncio
import logging

from openai import AsyncAzureOpenAI

from cwc_connect.core.config import Settings

logger = logging.getLogger(__name__)

SYSTEM_PROMPT = (
    "You are the CWC Connect reception assistant. Answer questions about employees "
    "of the organisation using only the employee information you are given. "
    "Be brief and conversational, keep names, rooms, locations and phone numbers "
    "exactly as provided, and never invent contact details."
)


class ReplyGenerator:
    """Optional conversational rephrasing of directory answers.

    ``rephrase`` returns None whenever the model is not configured or the call
    fails; callers then use their own text.
    """

    def __init__(self) -> None:
        self.client: AsyncAzureOpenAI | None = None
        self.initialized = False
        self.model = ""
        self.timeout = 10.0

    async def initialize(self, settings: Settings) -> None:
        if self.initialized:
            return

        if not settings.OPENAI_ENDPOINT or not settings.OPENAI_API_KEY:
            logger.warning("OpenAI credentials missing — ReplyGenerator not initialized")
            return

        self.client = AsyncAzureOpenAI(
            azure_endpoint=settings.OPENAI_ENDPOINT,
            api_key=settings.OPENAI_API_KEY,
            api_version=settings.OPENAI_API_VERSION,
        )
        self.model = settings.OPENAI_CHAT_MODEL
        self.timeout = settings.REPLY_TIMEOUT_SECONDS
        self.initialized = True

    async def close(self) -> None:
        self.client = None
        self.initialized = False

    def build_prompt(self, question: str, summary: str) -> str:
        return (
            f"User question: {question}\n\n"
            f"Employee Information from CWC Database:\n{summary}\n\n"
            "Please provide a helpful, conversational response about the CWC employees "
            "based on the information above."
        )

    async def rephrase(self, question: str, summary: str) -> str | None:
        if not self.initialized or not self.client:
            return None

        messages: list[dict[str, str]] = [
            {"role": "system", "content": SYSTEM_PROMPT},
            {"role": "user", "content": self.build_prompt(question, summary)},
        ]

        try:
            response = await asyncio.wait_for(
                self.client.chat.completions.create(
                    model=self.model,
                    messages=messages,  # type: ignore[arg-type]
                    temperature=0.3,
                    max_tokens=800,
                ),
                timeout=self.timeout,
            )
        except Exception as e:
            logger.info("Using direct response, reply generation failed: %s", e)
            return None

        if not response.choices:
            return None
        content = response.choices[0].message.content
        return content.strip() if content and content.strip() else None


reply_generator = ReplyGenerator()
