"""OpenAI chat completions in JSON mode, routed through the resilience layer."""

import json
import logging
import re
from collections.abc import Callable

from openai import OpenAI

from resilience.circuit_breaker import CircuitBreaker
from resilience.errors import MalformedResponseError
from resilience.guard import guarded_call
from resilience.key_manager import KeyManager

logger = logging.getLogger(__name__)

PROVIDER = "OPENAI"

_CODE_FENCE = re.compile(r"^```(?:json)?\s*|\s*```$")


def parse_json_content(content: str | None) -> dict:
    """Parse a model reply into a dict.

    Raises:
        MalformedResponseError: Empty reply, invalid JSON, or not an object.
    """
    if not content:
        raise MalformedResponseError("Empty model response")
    try:
        data = json.loads(_CODE_FENCE.sub("", content.strip()))
    except json.JSONDecodeError as e:
        raise MalformedResponseError(f"Model response is not valid JSON: {e}") from e
    if not isinstance(data, dict):
        raise MalformedResponseError("Model response is not a JSON object")
    return data


class ChatCompletionClient:
    def __init__(
        self,
        key_manager: KeyManager,
        breaker: CircuitBreaker,
        model: str,
        timeout: float = 60,
        client_factory: Callable[[str], OpenAI] | None = None,
    ):
        self.key_manager = key_manager
        self.breaker = breaker
        self.model = model
        self.timeout = timeout
        self._client_factory = client_factory or (lambda key: OpenAI(api_key=key))
        self._clients: dict[str, OpenAI] = {}

    def _client(self, key: str) -> OpenAI:
        if key not in self._clients:
            self._clients[key] = self._client_factory(key)
        return self._clients[key]

    def complete_json(self, instructions: str, content: str) -> dict:
        """Send ``instructions`` and ``content`` and return the parsed JSON reply.

        Raises:
            ProviderUnavailableError: Breaker open, keys exhausted or cooling down.
            MalformedResponseError: The reply could not be parsed.
        """

        def operation(key: str) -> str | None:
            response = self._client(key).chat.completions.create(
                model=self.model,
                messages=[
                    {"role": "system", "content": instructions},
                    {"role": "user", "content": content},
                ],
                response_format={"type": "json_object"},
                timeout=self.timeout,
            )
            return response.choices[0].message.content

        reply = guarded_call(self.key_manager, self.breaker, PROVIDER, operation)
        return parse_json_content(reply)
