"""OpenAI-compatible client for embeddings and classification calls."""

import hashlib
import json
import logging
from typing import Dict, List, Optional, Tuple

import httpx
from tenacity import retry, retry_if_exception_type, stop_after_attempt, wait_exponential

from app.config import settings

logger = logging.getLogger(__name__)

RETRYABLE_STATUS_CODES = (429, 500, 503)

# Embedding input is truncated to this many characters
MAX_EMBED_CHARS = 8000


class AIClient:
    """Client for an OpenAI-compatible API (OpenRouter by default) with retry logic."""

    def __init__(
        self,
        api_key: Optional[str] = None,
        base_url: Optional[str] = None,
        embedding_model: Optional[str] = None,
        classifier_model: Optional[str] = None,
        embed_dim: Optional[int] = None,
        transport: Optional[httpx.BaseTransport] = None,
    ):
        """Initialize the AI client."""
        self.api_key = api_key if api_key is not None else settings.AI_API_KEY
        self.base_url = (base_url or settings.AI_BASE_URL).rstrip("/")
        self.embedding_model = embedding_model or settings.EMBEDDING_MODEL
        self.classifier_model = classifier_model or settings.CLASSIFIER_MODEL
        self.embed_dim = embed_dim or settings.EMBED_DIM
        self.site_url = settings.SITE_URL
        self.site_name = settings.SITE_NAME
        self._transport = transport

    def _hash_text(self, text: str) -> str:
        """Hash text using SHA256."""
        return hashlib.sha256(text.encode()).hexdigest()

    def _build_headers(self) -> Dict[str, str]:
        """Build HTTP headers for the provider."""
        if not self.api_key:
            raise ValueError("No AI API key")

        headers = {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json",
        }
        if self.site_url:
            headers["HTTP-Referer"] = self.site_url
        if self.site_name:
            headers["X-Title"] = self.site_name
        return headers

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        retry=retry_if_exception_type(httpx.TransportError) | retry_if_exception_type(httpx.HTTPStatusError),
        reraise=True,
    )
    def _post(self, path: str, payload: Dict) -> Dict:
        """POST a JSON payload and return the decoded response."""
        headers = self._build_headers()

        with httpx.Client(timeout=120.0, transport=self._transport) as client:
            response = client.post(f"{self.base_url}{path}", headers=headers, json=payload)

            if response.status_code in RETRYABLE_STATUS_CODES:
                logger.warning(f"Retryable error {response.status_code} from AI provider")
                raise httpx.HTTPStatusError(
                    f"Retryable error: {response.status_code}",
                    request=response.request,
                    response=response,
                )

            if response.is_error:
                # Non-retryable client errors surface immediately
                raise ValueError(f"AI provider error {response.status_code}: {response.text[:200]}")

            return response.json()

    def embed(self, text: str) -> List[float]:
        """
        Embed a single text.

        Args:
            text: Text to embed (truncated to MAX_EMBED_CHARS)

        Returns:
            Embedding vector

        Raises:
            ValueError: On missing API key or dimension mismatch
            httpx.HTTPError: On API errors after retries
        """
        result = self._post(
            "/embeddings",
            {"model": self.embedding_model, "input": text[:MAX_EMBED_CHARS]},
        )
        embedding = result["data"][0]["embedding"]

        if len(embedding) != self.embed_dim:
            raise ValueError(
                f"Embedding dimension mismatch: expected {self.embed_dim}, got {len(embedding)}"
            )

        return embedding

    def chat_completion(
        self,
        messages: List[Dict[str, str]],
        model: Optional[str] = None,
        temperature: float = 0.0,
        max_tokens: int = 300,
        json_mode: bool = True,
    ) -> Tuple[str, str]:
        """
        Call the chat completions API.

        Args:
            messages: List of message dicts with 'role' and 'content'
            model: Model identifier, defaults to the classifier model
            temperature: Sampling temperature
            max_tokens: Maximum tokens in response
            json_mode: Whether to request JSON output

        Returns:
            Tuple of (response content, model that answered)
        """
        model = model or self.classifier_model
        payload = {
            "model": model,
            "messages": messages,
            "temperature": temperature,
            "max_tokens": max_tokens,
        }
        if json_mode:
            payload["response_format"] = {"type": "json_object"}

        request_hash = self._hash_text(json.dumps(payload, sort_keys=True))
        logger.info(f"AI request to {model}, hash: {request_hash[:16]}")

        result = self._post("/chat/completions", payload)
        content = result["choices"][0]["message"]["content"]

        return content, result.get("model") or model
