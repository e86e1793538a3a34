# services/llm_service.py
import logging
import os
import time
from typing import Any, Dict, List, Optional

from openai import AsyncOpenAI, OpenAIError

from services.exceptions import GatewayError

logger = logging.getLogger(__name__)

NO_RESPONSE = "[No response]"
REPLY_MAX_TOKENS = 256
REPLY_TEMPERATURE = 0.7

GEMINI_BASE_URL = "https://generativelanguage.googleapis.com/v1beta/openai/"


def extract_reply(response: Any) -> str:
    """First choice's text, or the placeholder when the answer has none."""
    choices = getattr(response, "choices", None) or []
    if not choices:
        return NO_RESPONSE
    message = getattr(choices[0], "message", None)
    content = getattr(message, "content", None)
    if not isinstance(content, str) or not content:
        return NO_RESPONSE
    return content


class LLMService:
    """
    Client for the generation API (Gemini, OpenAI or Ollama through the
    OpenAI-compatible protocol). Configured from .env.
    """

    def __init__(self, client: Optional[AsyncOpenAI] = None):
        self.provider = os.getenv("LLM_PROVIDER", "gemini").lower()
        self.model_name = os.getenv("LLM_MODEL", "gemini-1.5-flash")
        self.api_key = os.getenv("LLM_API_KEY") or os.getenv("GEMINI_API_KEY", "")
        self.base_url = os.getenv("LLM_BASE_URL", None)

        if client is not None:
            self.client = client
        elif self.provider == "ollama":
            self.base_url = self.base_url or "http://localhost:11434/v1"
            if not self.base_url.endswith("/v1"):
                self.base_url = self.base_url.rstrip("/") + "/v1"
            self.api_key = "ollama"
            self.client = AsyncOpenAI(
                base_url=self.base_url,
                api_key=self.api_key,
                timeout=300.0,
                max_retries=0,
            )
        else:
            if not self.api_key:
                raise ValueError(f"LLM_API_KEY is required for {self.provider} provider")
            if self.provider == "gemini":
                self.base_url = self.base_url or GEMINI_BASE_URL
            else:
                self.base_url = self.base_url or "https://api.openai.com/v1"
            self.client = AsyncOpenAI(
                api_key=self.api_key,
                base_url=self.base_url,
                max_retries=0,
            )
        logger.info(
            f"[LLM] Service initialized: provider={self.provider} "
            f"model={self.model_name} base_url={self.base_url}"
        )

    async def generate(
        self,
        messages: List[Dict[str, str]],
        temperature: float = REPLY_TEMPERATURE,
        max_tokens: int = REPLY_MAX_TOKENS,
    ) -> str:
        """
        Generate a reply from chat messages.

        Args:
            messages: [{"role": "user", "content": "..."}, ...]
            temperature: sampling temperature
            max_tokens: output token cap

        Returns:
            Reply text, or NO_RESPONSE when the answer carries no text.

        Raises:
            GatewayError: network failure, non-2xx status or unreadable body.
        """
        logger.debug(f"[LLM] Generating with model {self.model_name}, {len(messages)} messages")
        request_start = time.perf_counter()
        try:
            response = await self.client.chat.completions.create(
                model=self.model_name,
                messages=messages,
                temperature=temperature,
                max_tokens=max_tokens,
            )
        except OpenAIError as e:
            logger.error(f"[LLM] Generation error: {type(e).__name__}: {e}")
            raise GatewayError(str(e), {"provider": self.provider}) from e

        request_time = (time.perf_counter() - request_start) * 1000
        usage = getattr(response, "usage", None)
        if usage is not None:
            logger.debug(
                f"[LLM] Token usage: prompt={getattr(usage, 'prompt_tokens', 'N/A')} "
                f"completion={getattr(usage, 'completion_tokens', 'N/A')}"
            )
        reply = extract_reply(response)
        logger.info(f"[LLM] Request time: {request_time:.2f}ms, reply length: {len(reply)} chars")
        return reply

    async def generate_reply(self, prompt: str) -> str:
        """Single-turn generation used for every chat message."""
        return await self.generate([{"role": "user", "content": prompt}])
