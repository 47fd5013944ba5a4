"""Offline chat client.

Use this adapter for local development and tests, and as a template for new
provider adapters: implement BaseChatClient and register it in
ChatClientFactory.
"""

from vigilance.analysis.client_base import BaseChatClient
from vigilance.analysis.models import ChatCompletion


class ExampleClientAdapter(BaseChatClient):
    """Returns a fixed, clearly-labelled reply without any network call."""

    def __init__(self, reply: str = "Offline analysis: no language model configured.") -> None:
        self._reply = reply

    def create_chat_completion(
        self,
        *,
        model: str,
        temperature: float,
        max_tokens: int,
        system_prompt: str,
        user_prompt: str,
    ) -> ChatCompletion:
        _ = model, temperature, max_tokens, system_prompt, user_prompt
        return ChatCompletion(content=self._reply, total_tokens=0)
