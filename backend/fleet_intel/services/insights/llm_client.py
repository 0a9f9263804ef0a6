"""OpenAI-compatible chat completions client."""
import logging
from typing import Optional

import requests

from fleet_intel.config import PLACEHOLDER_AI_KEY, Settings
from fleet_intel.services.insights.prompt import SYSTEM_PROMPT

logger = logging.getLogger(__name__)


class LLMError(Exception):
    """code is one of TIMEOUT, API_ERROR, NOT_CONFIGURED, EMPTY_RESPONSE, RATE_LIMITED."""

    def __init__(self, message: str, code: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.message = message
        self.code = code
        self.status_code = status_code


class LLMClient:
    def __init__(
        self,
        api_key: str,
        base_url: str,
        model: str,
        temperature: float = 0.3,
        max_tokens: int = 2000,
        timeout: float = 30.0,
    ):
        self.api_key = api_key
        self.base_url = base_url.rstrip("/")
        self.model = model
        self.temperature = temperature
        self.max_tokens = max_tokens
        self.timeout = timeout

    @classmethod
    def from_settings(cls, source: Settings) -> "LLMClient":
        return cls(
            api_key=source.ai_api_key,
            base_url=source.ai_api_base_url,
            model=source.ai_model,
            temperature=source.ai_temperature,
            max_tokens=source.ai_max_tokens,
            timeout=source.ai_timeout_seconds,
        )

    @property
    def configured(self) -> bool:
        return bool(self.api_key) and self.api_key != PLACEHOLDER_AI_KEY

    def complete(self, prompt: str) -> str:
        """Send the prompt and return the raw message content."""
        if not self.configured:
            raise LLMError("AI API key not configured", "NOT_CONFIGURED")

        try:
            response = requests.post(
                f"{self.base_url}/chat/completions",
                json={
                    "model": self.model,
                    "messages": [
                        {"role": "system", "content": SYSTEM_PROMPT},
                        {"role": "user", "content": prompt},
                    ],
                    "temperature": self.temperature,
                    "max_tokens": self.max_tokens,
                    "response_format": {"type": "json_object"},
                },
                headers={"Authorization": f"Bearer {self.api_key}"},
                timeout=self.timeout,
            )
            response.raise_for_status()
            data = response.json()
        except requests.Timeout as e:
            raise LLMError("LLM request timed out", "TIMEOUT") from e
        except requests.HTTPError as e:
            status = e.response.status_code
            if status == 429:
                raise LLMError("LLM rate limit exceeded", "RATE_LIMITED", 429) from e
            raise LLMError(f"LLM API error: {_error_message(e.response)}", "API_ERROR", status) from e
        except requests.RequestException as e:
            raise LLMError(f"LLM request failed: {e}", "API_ERROR") from e
        except ValueError as e:
            raise LLMError("LLM returned a non-JSON body", "API_ERROR") from e

        content = _message_content(data)
        if not content.strip():
            raise LLMError("LLM returned empty response", "EMPTY_RESPONSE")

        usage = data.get("usage")
        if isinstance(usage, dict):
            logger.debug("LLM usage: %s total tokens", usage.get("total_tokens"))

        return content


def _message_content(data) -> str:
    """Pull choices[0].message.content out of a chat completion body."""
    if not isinstance(data, dict):
        raise LLMError("LLM returned an unexpected response body", "API_ERROR")

    choices = data.get("choices")
    if not choices:
        raise LLMError("LLM returned empty response", "EMPTY_RESPONSE")
    if not isinstance(choices, list) or not isinstance(choices[0], dict):
        raise LLMError("LLM returned an unexpected response body", "API_ERROR")

    message = choices[0].get("message")
    if message is None:
        raise LLMError("LLM returned empty response", "EMPTY_RESPONSE")
    if not isinstance(message, dict):
        raise LLMError("LLM returned an unexpected response body", "API_ERROR")

    content = message.get("content")
    if content is None:
        raise LLMError("LLM returned empty response", "EMPTY_RESPONSE")
    if not isinstance(content, str):
        raise LLMError("LLM returned an unexpected response body", "API_ERROR")
    return content


def _error_message(response: requests.Response) -> str:
    try:
        return response.json()["error"]["message"]
    except (ValueError, KeyError, TypeError):
        return f"{response.status_code} {response.reason}"
