"""
LLM Classifier for Mindsort.

Splits raw text into categorized chunk proposals.
Supports Anthropic, OpenAI and OpenRouter APIs.
"""

import json
import logging
import os
import time
from typing import Any, Protocol

import httpx
from pydantic import BaseModel, TypeAdapter, ValidationError

from mindsort.categories import CategoryRegistry, default_registry
from mindsort.config import load_config
from mindsort.errors import (
    ClassificationUnavailable,
    InvalidInput,
    MalformedClassifierOutput,
)
from mindsort.models import EMOTIONAL_INTENSITIES, ChunkProposal

logger = logging.getLogger(__name__)


class ClassifiedChunk(BaseModel):
    """Schema for one item of LLM classification output."""

    content: str
    category: str


_CHUNK_LIST = TypeAdapter(list[ClassifiedChunk])


# Default models for each provider
DEFAULT_MODELS = {
    "anthropic": "claude-haiku-4-5-20251001",  # Fast and cheap for classification
    "openai": "gpt-4o-mini",
    "openrouter": "openai/gpt-3.5-turbo",
}

DEFAULT_BASE_URLS = {
    "anthropic": "https://api.anthropic.com/v1",
    "openai": "https://api.openai.com/v1",
    "openrouter": "https://openrouter.ai/api/v1",
}

API_KEY_ENV = {
    "anthropic": ("ANTHROPIC_API_KEY",),
    "openai": ("OPENAI_API_KEY",),
    "openrouter": ("OPENROUTER_API_KEY", "OPENAI_API_KEY"),
}


class CompletionClient(Protocol):
    """Anything that turns a prompt into text."""

    def complete(self, prompt: str, temperature: float) -> str: ...


class LLMClient:
    """Text-completion client over httpx."""

    def __init__(
        self,
        config: dict[str, Any] | None = None,
        transport: httpx.BaseTransport | None = None,
    ):
        self.config = config or load_config()
        self.llm_config = self.config.get("llm", {})
        self.transport = transport

        self.provider = self.llm_config.get("provider", "openrouter")
        if self.provider not in DEFAULT_MODELS:
            raise ValueError(f"Unknown LLM provider: {self.provider}")

        self.model = self.llm_config.get("model") or DEFAULT_MODELS[self.provider]
        self.base_url = self.llm_config.get("base_url", DEFAULT_BASE_URLS[self.provider])
        self.timeout = float(self.llm_config.get("timeout", 30.0))

        self.api_key = self.llm_config.get(f"{self.provider}_api_key")
        for env_name in API_KEY_ENV[self.provider]:
            self.api_key = self.api_key or os.environ.get(env_name)
        if not self.api_key:
            raise ValueError(
                f"{self.provider} API key not found. "
                f"Set {API_KEY_ENV[self.provider][0]} env var or add to config."
            )

    def complete(self, prompt: str, temperature: float) -> str:
        """
        Run a single completion.

        Raises ClassificationUnavailable on transport errors, timeouts,
        non-2xx responses and empty answers.
        """
        try:
            if self.provider == "anthropic":
                text = self._call_anthropic(prompt, temperature)
            else:
                text = self._call_openai(prompt, temperature)
        except httpx.TimeoutException as e:
            logger.warning("Completion timed out after %.1fs: %s", self.timeout, e)
            raise ClassificationUnavailable() from e
        except httpx.HTTPStatusError as e:
            logger.warning("Completion failed with HTTP %s", e.response.status_code)
            raise ClassificationUnavailable() from e
        except httpx.HTTPError as e:
            logger.warning("Completion transport error: %s", e)
            raise ClassificationUnavailable() from e
        except (KeyError, IndexError, TypeError, ValueError) as e:
            logger.warning("Unexpected completion payload: %s", e)
            raise ClassificationUnavailable() from e

        if not text:
            raise ClassificationUnavailable("No response from AI model")
        return text

    def _client(self) -> httpx.Client:
        return httpx.Client(timeout=self.timeout, transport=self.transport)

    def _call_anthropic(self, prompt: str, temperature: float) -> str:
        """Call Anthropic API."""
        with self._client() as client:
            response = client.post(
                f"{self.base_url}/messages",
                headers={
                    "x-api-key": self.api_key,
                    "Content-Type": "application/json",
                    "anthropic-version": "2023-06-01",
                },
                json={
                    "model": self.model,
                    "max_tokens": 2048,
                    "messages": [{"role": "user", "content": prompt}],
                    "temperature": temperature,
                },
            )
            response.raise_for_status()
            return response.json()["content"][0]["text"]

    def _call_openai(self, prompt: str, temperature: float) -> str:
        """Call an OpenAI-compatible chat completions API (OpenAI, OpenRouter)."""
        headers = {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json",
        }
        if self.provider == "openrouter":
            headers["X-Title"] = "Mindsort"

        with self._client() as client:
            response = client.post(
                f"{self.base_url}/chat/completions",
                headers=headers,
                json={
                    "model": self.model,
                    "messages": [{"role": "user", "content": prompt}],
                    "temperature": temperature,
                },
            )
            response.raise_for_status()
            return response.json()["choices"][0]["message"]["content"]


class Classifier:
    """Turns raw text into chunk proposals. Stateless between calls."""

    def __init__(
        self,
        client: CompletionClient | None = None,
        registry: CategoryRegistry | None = None,
        config: dict[str, Any] | None = None,
    ):
        self.config = config or load_config()
        self.registry = registry or default_registry
        self.client = client or LLMClient(self.config)
        # Lower temp for consistent extraction
        self.temperature = float(self.config.get("llm", {}).get("temperature", 0.3))

    def classify(
        self, text: str, emotional_intensity: str | None = None
    ) -> list[ChunkProposal]:
        """
        Classify raw input text into proposals.

        Nothing is persisted; proposals are advisory until confirmed.
        """
        if not isinstance(text, str) or not text.strip():
            raise InvalidInput("Text is required")
        if emotional_intensity is not None and emotional_intensity not in EMOTIONAL_INTENSITIES:
            raise InvalidInput(f"Invalid emotional intensity: {emotional_intensity}")

        start_time = time.time()
        prompt = self.registry.build_classification_prompt(text)
        response = self.client.complete(prompt, self.temperature)
        items = self._parse_response(response)

        processing_time = int((time.time() - start_time) * 1000)
        logger.info("Classified text into %d chunks in %dms", len(items), processing_time)

        return [
            ChunkProposal(
                content=item.content,
                category=item.category,
                emotional_intensity=emotional_intensity,
            )
            for item in items
        ]

    def _parse_response(self, response: str) -> list[ClassifiedChunk]:
        """Parse and validate LLM response against the registry."""
        text = strip_code_fence(response)

        try:
            data = json.loads(text)
        except json.JSONDecodeError as e:
            logger.warning("Classifier returned non-JSON output: %s", e)
            raise MalformedClassifierOutput() from e

        # Some models wrap the array in an object
        if isinstance(data, dict) and "chunks" in data:
            data = data["chunks"]

        try:
            items = _CHUNK_LIST.validate_python(data)
        except ValidationError as e:
            logger.warning("Classifier output has the wrong shape: %s", e.error_count())
            raise MalformedClassifierOutput() from e

        for item in items:
            if not item.content.strip():
                raise MalformedClassifierOutput("AI model returned an empty chunk")
            if not self.registry.is_valid_key(item.category):
                logger.warning("Classifier used unknown category %r", item.category)
                raise MalformedClassifierOutput(
                    f"AI model returned unknown category: {item.category}"
                )

        return items


def strip_code_fence(response: str) -> str:
    """Strip markdown code blocks if present."""
    text = response.strip()
    if text.startswith("```"):
        # Remove opening ``` and optional language tag
        lines = text.split("\n")
        lines = lines[1:]
        # Remove closing ```
        if lines and lines[-1].strip() == "```":
            lines = lines[:-1]
        text = "\n".join(lines)
    return text


def classify_text(text: str, emotional_intensity: str | None = None) -> list[ChunkProposal]:
    """Convenience function to classify a single text."""
    classifier = Classifier()
    return classifier.classify(text, emotional_intensity)
