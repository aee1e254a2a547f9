import json
import logging
from typing import Any, Dict, Optional

from openai import AsyncOpenAI

from src.core.config import settings

logger = logging.getLogger(__name__)


class LLMClient:
    """
    Thin JSON-mode wrapper over an OpenAI compatible chat completion endpoint.
    """

    def __init__(
        self,
        api_key: Optional[str] = None,
        api_base: Optional[str] = None,
        model: Optional[str] = None,
        client: Optional[AsyncOpenAI] = None,
    ):
        self.api_key = api_key or settings.openai_api_key
        self.model = model or settings.classification_model
        self._client = client

        if self._client is None:
            if not self.api_key:
                logger.warning("OPENAI_API_KEY not set. Classification calls will fail closed.")
            else:
                self._client = AsyncOpenAI(
                    api_key=self.api_key,
                    base_url=api_base or settings.openai_api_base,
                    timeout=settings.llm_request_timeout,
                )

    @property
    def configured(self) -> bool:
        return self._client is not None

    async def generate_json(
        self,
        prompt: str,
        system_prompt: str = "You are a helpful assistant.",
        temperature: float = 0.0,
    ) -> Dict[str, Any]:
        """
        Run a chat completion in JSON mode and return the decoded object.
        Raises RuntimeError when no client is configured and ValueError when the
        model answers with something that is not a JSON object.
        """
        if self._client is None:
            raise RuntimeError("LLM client is not configured (missing OPENAI_API_KEY)")

        response = await self._client.chat.completions.create(
            model=self.model,
            messages=[
                {"role": "system", "content": system_prompt},
                {"role": "user", "content": prompt},
            ],
            temperature=temperature,
            response_format={"type": "json_object"},
        )
        content = response.choices[0].message.content or ""

        # Clean generic markdown code blocks if present
        content = content.replace("```json", "").replace("```", "").strip()
        try:
            data = json.loads(content)
        except json.JSONDecodeError as e:
            raise ValueError(f"LLM returned invalid JSON: {e}") from e
        if not isinstance(data, dict):
            raise ValueError(f"LLM returned {type(data).__name__}, expected an object")
        return data
