"""AI-powered E2B R3 analysis of raw extraction output."""

import json
from typing import Any

from vigilance.analysis.client_base import BaseChatClient
from vigilance.analysis.models import AnalysisResult
from vigilance.analysis.prompt_loader import (
    ANALYSIS_SYSTEM_PROMPT,
    ANALYSIS_USER_PROMPT,
    load_prompt,
)
from vigilance.logging.logger import Log


class E2BAnalyzer:
    """Asks a chat model to structure extracted report data for E2B R3."""

    def __init__(
        self,
        *,
        client: BaseChatClient,
        model: str,
        temperature: float = 0.1,
        max_tokens: int = 2000,
    ) -> None:
        self._client = client
        self._model = model
        self._temperature = max(0.0, min(1.0, temperature))
        self._max_tokens = max_tokens
        self._system_prompt = load_prompt(ANALYSIS_SYSTEM_PROMPT)
        self._user_template = load_prompt(ANALYSIS_USER_PROMPT)

    def analyze(self, extracted_data: dict[str, Any]) -> AnalysisResult:
        prompt = self._user_template.format(
            extracted_data=json.dumps(extracted_data, default=str)
        )
        Log.debug(f"Analysis prompt:\n{prompt}")

        completion = self._client.create_chat_completion(
            model=self._model,
            temperature=self._temperature,
            max_tokens=self._max_tokens,
            system_prompt=self._system_prompt,
            user_prompt=prompt,
        )
        Log.info(f"Analysis complete: {len(completion.content)} chars")
        return AnalysisResult(content=completion.content, tokens_used=completion.total_tokens)
