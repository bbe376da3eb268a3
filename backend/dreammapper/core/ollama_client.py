"""
Ollama API client used for dream analysis
"""
import time
from typing import Any, Dict, List, Optional

import httpx
from pydantic import BaseModel

from dreammapper.core.config import get_settings
from dreammapper.core.errors import InferenceUnavailable
from dreammapper.core.logging_config import LoggingConfig
from dreammapper.core.metrics import (llm_request_duration_seconds,
                                     llm_requests_total)
from dreammapper.models.analysis_types import BuiltPrompt

logger = LoggingConfig.get_logger(__name__)


class OllamaResponse(BaseModel):
    """Raw chat completion; content is untrusted text"""
    model: str
    content: str
    done: bool = False


class OllamaClient:
    """
    Client for the Ollama chat API.

    One request per call and no internal retries: the caller decides whether
    a failed analysis is worth submitting again. Every request is bounded by
    an explicit timeout.
    """

    def __init__(
        self,
        base_url: Optional[str] = None,
        model: Optional[str] = None,
        temperature: Optional[float] = None,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        settings = get_settings()
        self.base_url = (base_url or settings.ollama_url).rstrip("/")
        # Ollama's native API lives beside the OpenAI-compatible /v1 prefix
        if self.base_url.endswith("/v1"):
            self.base_url = self.base_url[:-3]
        self.model = model or settings.ollama_model
        self.temperature = settings.ollama_temperature if temperature is None else temperature
        self.timeout = timeout or settings.llm_timeout_seconds
        self._transport = transport

    def _client(self, timeout: float) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            base_url=self.base_url,
            timeout=timeout,
            transport=self._transport,
        )

    def build_payload(self, prompt: BuiltPrompt) -> Dict[str, Any]:
        """Chat request asking for JSON-formatted output"""
        return {
            "model": self.model,
            "messages": prompt.to_messages(),
            "stream": False,
            "format": "json",
            "options": {"temperature": self.temperature},
        }

    async def chat(self, prompt: BuiltPrompt) -> OllamaResponse:
        """
        Send the prompt and return the model's raw message content.

        Raises:
            InferenceUnavailable: transport error, timeout, non-success status
                or a response envelope without message content
        """
        payload = self.build_payload(prompt)
        start_time = time.time()
        status = "error"
        try:
            async with self._client(self.timeout) as client:
                response = await client.post("/api/chat", json=payload)

            if response.status_code >= 400:
                logger.error(
                    "Ollama returned non-success status",
                    extra={"status_code": response.status_code, "model": self.model}
                )
                raise InferenceUnavailable(f"Ollama request failed with HTTP {response.status_code}")

            try:
                data = response.json()
            except ValueError as e:
                raise InferenceUnavailable("Ollama response envelope is not JSON") from e

            message = data.get("message") if isinstance(data, dict) else None
            content = message.get("content") if isinstance(message, dict) else None
            if not isinstance(content, str) or not content:
                logger.error("No message.content in Ollama response", extra={"model": self.model})
                raise InferenceUnavailable("Ollama response did not contain message content")

            status = "success"
            return OllamaResponse(
                model=self.model,
                content=content,
                done=bool(data.get("done", False)),
            )
        except httpx.TimeoutException as e:
            logger.error(
                "Ollama request timed out",
                extra={"timeout_seconds": self.timeout, "model": self.model}
            )
            raise InferenceUnavailable(f"Ollama request timed out after {self.timeout}s") from e
        except httpx.HTTPError as e:
            logger.error(f"Error calling Ollama at {self.base_url}: {e}")
            raise InferenceUnavailable(f"Could not reach Ollama at {self.base_url}") from e
        finally:
            llm_requests_total.labels(model=self.model, status=status).inc()
            llm_request_duration_seconds.labels(model=self.model).observe(time.time() - start_time)

    async def list_models(self) -> List[str]:
        """Names of the models installed on the backend (connectivity check)"""
        try:
            async with self._client(min(self.timeout, 10.0)) as client:
                response = await client.get("/api/tags")
            response.raise_for_status()
            data = response.json()
        except (httpx.HTTPError, ValueError) as e:
            raise InferenceUnavailable(f"Could not list models at {self.base_url}: {e}") from e

        models = data.get("models", []) if isinstance(data, dict) else []
        return [m["name"] for m in models if isinstance(m, dict) and isinstance(m.get("name"), str)]

    async def health_check(self) -> bool:
        """Check if the Ollama backend answers"""
        try:
            await self.list_models()
            return True
        except InferenceUnavailable:
            return False


# Global client instance
_ollama_client: Optional[OllamaClient] = None


def get_ollama_client() -> OllamaClient:
    """Get global Ollama client instance"""
    global _ollama_client
    if _ollama_client is None:
        _ollama_client = OllamaClient()
    return _ollama_client
