"""Async OpenAI/Gemini LLM client with fallback and retry logic."""

import asyncio
import time
from typing import Any, Dict, List, Optional, Protocol, Union

import httpx
from google import genai
from openai import AsyncOpenAI
from pydantic import BaseModel

from ..config import LLMRoute, ModelSettings, get_model_config, get_settings
from ..logging import get_logger
from ..utils import retry_async

logger = get_logger(__name__)

# OpenAI API model mapping
OPENAI_MODELS = {
    "gpt-4o": "gpt-4o",
    "gpt-4o-mini": "gpt-4o-mini",
    "gpt-4.1-mini": "gpt-4.1-mini",
}

# Gemini API model mapping (fallback support)
GEMINI_MODELS = {
    "gemini-2.5-flash": "gemini-2.5-flash",
    "gemini-2.5-flash-lite-preview-06-17": "gemini-2.5-flash-lite-preview-06-17",
}


class ChatMessage(BaseModel):
    """Chat message for LLM interaction."""
    role: str
    content: str


class LLMResponse(BaseModel):
    """LLM response wrapper."""
    content: str
    model: str
    usage: Optional[Dict[str, Any]] = None
    response_time: Optional[float] = None


class LLMError(Exception):
    """LLM-specific error."""
    pass


class TextGenerator(Protocol):
    """Anything that turns a prompt into text."""

    async def generate(
        self,
        prompt: str,
        temperature: Optional[float] = None,
        max_tokens: Optional[int] = None,
    ) -> str:
        ...


class LLMClient:
    """Async OpenAI client with Gemini fallback and retry capabilities."""

    def __init__(self, route_name: str):
        """Initialize LLM client.

        Args:
            route_name: Name of the LLM route configuration
        """
        self.route_name = route_name
        self.settings = get_settings()
        self.model_config = get_model_config()

        try:
            self.route: LLMRoute = self.model_config.get_llm_route(route_name)
            self.model_settings: ModelSettings = self.model_config.get_model_settings()
        except ValueError as e:
            logger.error("Failed to load LLM route", route=route_name, error=str(e))
            raise LLMError(f"Invalid LLM route: {route_name}") from e

        self.openai_api_key = self.settings.openai_api_key
        if self.openai_api_key:
            self._openai_client = AsyncOpenAI(api_key=self.openai_api_key)
            logger.info("OpenAI client initialized", route=route_name)
        else:
            self._openai_client = None

        self.google_api_key = self.settings.google_ai_api_key
        if self.google_api_key:
            self._gemini_client = genai.Client(api_key=self.google_api_key)
            logger.info("Gemini client initialized as fallback", route=route_name)
        else:
            self._gemini_client = None

        if not self._openai_client and not self._gemini_client:
            raise LLMError("Neither OpenAI nor Google AI API keys are available")

    def _is_openai_model(self, model: str) -> bool:
        """Check if model is an OpenAI model."""
        return model in OPENAI_MODELS

    def _is_gemini_model(self, model: str) -> bool:
        """Check if model is a Gemini model."""
        return model in GEMINI_MODELS

    async def _make_openai_request(
        self,
        model: str,
        messages: List[ChatMessage],
        temperature: Optional[float] = None,
        max_tokens: Optional[int] = None,
        timeout: Optional[int] = None
    ) -> LLMResponse:
        """Make request to OpenAI API."""
        if not self._openai_client:
            raise LLMError("OpenAI client not initialized")

        start_time = time.time()
        openai_model = OPENAI_MODELS.get(model, model)

        try:
            response = await self._openai_client.chat.completions.create(
                model=openai_model,
                messages=[{"role": msg.role, "content": msg.content} for msg in messages],
                temperature=temperature if temperature is not None else self.model_settings.temperature,
                max_tokens=max_tokens or self.model_settings.max_tokens,
                timeout=timeout or self.model_settings.timeout_seconds
            )
        except Exception as e:
            raise LLMError(f"OpenAI API error for model {openai_model}: {e}") from e

        response_time = time.time() - start_time
        content = response.choices[0].message.content

        if not content or not content.strip():
            raise LLMError("Empty response content from OpenAI")

        logger.info("OpenAI API request successful", model=openai_model, response_time=response_time)

        return LLMResponse(
            content=content,
            model=openai_model,
            usage={
                "prompt_tokens": response.usage.prompt_tokens,
                "completion_tokens": response.usage.completion_tokens,
                "total_tokens": response.usage.total_tokens
            } if response.usage else None,
            response_time=response_time
        )

    async def _make_gemini_request(
        self,
        model: str,
        messages: List[ChatMessage],
        temperature: Optional[float] = None,
        max_tokens: Optional[int] = None,
        timeout: Optional[int] = None
    ) -> LLMResponse:
        """Make request to Gemini API."""
        if not self._gemini_client:
            raise LLMError("Gemini client not initialized")

        start_time = time.time()
        gemini_model = GEMINI_MODELS.get(model, model)
        gemini_messages = self._convert_to_gemini_format(messages)

        generation_config = {
            "temperature": temperature if temperature is not None else self.model_settings.temperature,
            "max_output_tokens": max_tokens or self.model_settings.max_tokens,
        }

        try:
            # Run in thread pool to avoid blocking the event loop
            loop = asyncio.get_running_loop()
            response = await asyncio.wait_for(
                loop.run_in_executor(
                    None,
                    lambda: self._gemini_client.models.generate_content(
                        model=f"models/{gemini_model}",
                        contents=gemini_messages,
                        config=generation_config
                    )
                ),
                timeout=timeout or self.model_settings.timeout_seconds,
            )
        except Exception as e:
            raise LLMError(f"Gemini API error for model {gemini_model}: {e}") from e

        response_time = time.time() - start_time
        content = getattr(response, "text", None)

        if not content or not content.strip():
            raise LLMError("Empty response content from Gemini")

        logger.info("Gemini API request successful", model=gemini_model, response_time=response_time)

        return LLMResponse(content=content, model=gemini_model, response_time=response_time)

    async def _make_request(
        self,
        model: str,
        messages: List[ChatMessage],
        temperature: Optional[float] = None,
        max_tokens: Optional[int] = None,
        timeout: Optional[int] = None
    ) -> LLMResponse:
        """Route request to appropriate API based on model type."""
        if self._is_openai_model(model):
            if not self._openai_client:
                raise LLMError(f"OpenAI model {model} requested but OpenAI client not available")
            return await self._make_openai_request(model, messages, temperature, max_tokens, timeout)
        elif self._is_gemini_model(model):
            if not self._gemini_client:
                raise LLMError(f"Gemini model {model} requested but Gemini client not available")
            return await self._make_gemini_request(model, messages, temperature, max_tokens, timeout)
        elif self._openai_client:
            logger.warning("Unknown model, defaulting to OpenAI", model=model)
            return await self._make_openai_request(model, messages, temperature, max_tokens, timeout)
        else:
            logger.warning("Unknown model, defaulting to Gemini", model=model)
            return await self._make_gemini_request(model, messages, temperature, max_tokens, timeout)

    def _convert_to_gemini_format(self, messages: List[ChatMessage]) -> List[Dict[str, Any]]:
        """Convert chat messages to Gemini format.

        System messages are prepended to the first user message; only user
        and model roles are sent.
        """
        gemini_contents = []
        system_prompt = "".join(msg.content + "\n\n" for msg in messages if msg.role == "system")

        for msg in messages:
            if msg.role == "user":
                content = msg.content
                if system_prompt and not gemini_contents:
                    content = system_prompt + content
                gemini_contents.append({"role": "user", "parts": [{"text": content}]})
            elif msg.role == "assistant":
                gemini_contents.append({"role": "model", "parts": [{"text": msg.content}]})

        if not gemini_contents and system_prompt:
            gemini_contents.append({"role": "user", "parts": [{"text": system_prompt.strip()}]})

        return gemini_contents

    async def chat(
        self,
        messages: Union[List[ChatMessage], List[Dict[str, str]], str],
        temperature: Optional[float] = None,
        max_tokens: Optional[int] = None,
        timeout: Optional[int] = None
    ) -> LLMResponse:
        """Send chat messages to LLM with fallback and retry.

        Args:
            messages: Chat messages (various formats accepted)
            temperature: Sampling temperature
            max_tokens: Maximum tokens
            timeout: Request timeout

        Returns:
            LLM response

        Raises:
            LLMError: If all models and retries fail
        """
        normalized_messages = self._normalize_messages(messages)

        if not normalized_messages:
            raise LLMError("No messages provided")

        if self.settings.llm_model_override:
            models_to_try = [self.settings.llm_model_override]
        else:
            models_to_try = [self.route.primary] + self.route.fallback
        last_error = None

        for model in models_to_try:
            logger.debug("Trying model", model=model, route=self.route_name)

            async def make_request():
                return await self._make_request(
                    model=model,
                    messages=normalized_messages,
                    temperature=temperature,
                    max_tokens=max_tokens,
                    timeout=timeout
                )

            try:
                response = await retry_async(
                    make_request,
                    max_retries=self.model_settings.retry_attempts,
                    backoff_factor=self.model_settings.backoff_factor,
                    exceptions=(LLMError, httpx.RequestError, httpx.TimeoutException)
                )

                logger.info(
                    "LLM request successful",
                    route=self.route_name,
                    model=model,
                    response_time=response.response_time
                )

                return response

            except Exception as e:
                last_error = e
                logger.warning("Model failed after retries", model=model, route=self.route_name, error=str(e))
                continue

        logger.error("All models failed", route=self.route_name, last_error=str(last_error) if last_error else None)
        raise LLMError(f"All models failed for route '{self.route_name}'") from last_error

    async def generate(
        self,
        prompt: str,
        temperature: Optional[float] = None,
        max_tokens: Optional[int] = None,
    ) -> str:
        """Generate text for a single prompt."""
        response = await self.chat(prompt, temperature=temperature, max_tokens=max_tokens)
        return response.content

    def _normalize_messages(
        self,
        messages: Union[List[ChatMessage], List[Dict[str, str]], str]
    ) -> List[ChatMessage]:
        """Normalize messages to ChatMessage format."""
        if isinstance(messages, str):
            return [ChatMessage(role="user", content=messages)]

        if isinstance(messages, list):
            normalized = []
            for msg in messages:
                if isinstance(msg, ChatMessage):
                    normalized.append(msg)
                elif isinstance(msg, dict) and "role" in msg and "content" in msg:
                    normalized.append(ChatMessage(role=msg["role"], content=msg["content"]))
                else:
                    raise LLMError(f"Invalid message format: {msg}")
            return normalized

        raise LLMError(f"Unsupported messages type: {type(messages)}")


class MockLLMClient(LLMClient):
    """Mock LLM client for offline runs and tests."""

    def __init__(self, route_name: str):
        """Initialize mock client."""
        self.route_name = route_name
        # Parent __init__ skipped: no API keys needed

    async def chat(
        self,
        messages: Union[List[ChatMessage], List[Dict[str, str]], str],
        temperature: Optional[float] = None,
        max_tokens: Optional[int] = None,
        timeout: Optional[int] = None
    ) -> LLMResponse:
        """Mock chat response."""
        await asyncio.sleep(0)

        if isinstance(messages, str):
            last = messages
        elif messages and isinstance(messages[-1], ChatMessage):
            last = messages[-1].content
        elif messages and isinstance(messages[-1], dict):
            last = messages[-1].get("content", "")
        else:
            last = ""

        if self.route_name == "search_analysis":
            content = "NO_SEARCH_NEEDED"
        else:
            content = f"Mock response ({self.route_name}) to: {last.strip()[:50]}..."

        return LLMResponse(
            content=content,
            model="mock-model",
            usage={"prompt_tokens": 10, "completion_tokens": 20, "total_tokens": 30},
            response_time=0.0
        )


def create_llm_client(route_name: str, mock: bool = False) -> LLMClient:
    """Factory function to create LLM client.

    Args:
        route_name: LLM route name
        mock: Whether to use mock client

    Returns:
        LLM client instance
    """
    if mock:
        return MockLLMClient(route_name)
    return LLMClient(route_name)
