"""ICSR case narrative generation."""

import json
from typing import Any

from vigilance.analysis.client_base import BaseChatClient
from vigilance.analysis.models import NarrativeDraft
from vigilance.analysis.prompt_loader import NARRATIVE_SYSTEM_PROMPT, load_prompt


class NarrativeWriter:
    """Turns extraction data into a regulatory case narrative."""

    def __init__(
        self,
        *,
        client: BaseChatClient,
        model: str,
        temperature: float = 0.2,
        max_tokens: int = 1500,
    ) -> None:
        self._client = client
        self._model = model
        self._temperature = temperature
        self._max_tokens = max_tokens
        self._base_prompt = load_prompt(NARRATIVE_SYSTEM_PROMPT)

    def build_prompt(self, data: Any, custom_instructions: str | None = None) -> str:
        data_json = json.dumps(data, default=str)
        if custom_instructions:
            return (
                f"{self._base_prompt}\n\nSpecial Instructions: {custom_instructions}"
                f"\n\nData to analyze: {data_json}"
            )
        return f"{self._base_prompt}\n\nData to analyze: {data_json}"

    def write(self, data: Any, custom_instructions: str | None = None) -> NarrativeDraft:
        completion = self._client.create_chat_completion(
            model=self._model,
            temperature=self._temperature,
            max_tokens=self._max_tokens,
            system_prompt=self._base_prompt,
            user_prompt=self.build_prompt(data, custom_instructions),
        )
        return NarrativeDraft(content=completion.content, tokens_used=completion.total_tokens)
