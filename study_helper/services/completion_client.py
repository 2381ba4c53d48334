"""
Client for the external chat completions API (Groq, OpenAI-compatible).

One request per call, no retries. Any failure surfaces as UpstreamFailure so
the caller can skip counting the request against the user's quota.
"""
import logging

import requests

from study_helper.core.errors import UpstreamFailure

logger = logging.getLogger(__name__)


class CompletionClient:
    def __init__(
        self,
        api_key: str,
        base_url: str = "https://api.groq.com/openai/v1",
        model: str = "llama-3.3-70b-versatile",
        temperature: float = 0.7,
        max_tokens: int = 1024,
        timeout: float = 30.0,
        session: requests.Session = None,
    ):
        self.api_key = api_key
        self.base_url = base_url.rstrip("/")
        self.model = model
        self.temperature = temperature
        self.max_tokens = max_tokens
        self.timeout = timeout
        self.session = session or requests.Session()

    def complete(self, system_prompt: str, user_text: str) -> str:
        if not self.api_key:
            logger.error("GROQ_API_KEY is not set; cannot call the completion API")
            raise UpstreamFailure("AI service is not configured")

        url = f"{self.base_url}/chat/completions"
        payload = {
            "model": self.model,
            "messages": [
                {"role": "system", "content": system_prompt},
                {"role": "user", "content": user_text},
            ],
            "temperature": self.temperature,
            "max_tokens": self.max_tokens,
        }
        headers = {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json",
        }

        try:
            response = self.session.post(url, json=payload, headers=headers, timeout=self.timeout)
        except requests.exceptions.Timeout:
            logger.error("Completion API timed out after %ss", self.timeout)
            raise UpstreamFailure("AI service timed out, please try again")
        except requests.exceptions.RequestException as e:
            logger.error("Completion API request failed: %s", e)
            raise UpstreamFailure()

        if response.status_code >= 400:
            logger.error(
                "Completion API returned %s: %s",
                response.status_code,
                response.text[:500],
            )
            raise UpstreamFailure()

        try:
            data = response.json()
            content = data["choices"][0]["message"]["content"]
        except (ValueError, KeyError, IndexError, TypeError) as e:
            logger.error("Completion API returned an unexpected body: %s", e)
            raise UpstreamFailure()

        if not isinstance(content, str):
            logger.error("Completion API returned non-text content")
            raise UpstreamFailure()
        return content
