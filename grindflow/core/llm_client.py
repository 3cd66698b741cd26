"""Gemini transports.

Two interchangeable ways of reaching the same model: the official
``google-genai`` SDK, used first, and a raw HTTP call to the public
``generateContent`` REST endpoint, used as the fallback when the SDK
fails. Both expose ``generate(model, system_instruction, prompt)`` and
raise ``ModelTransportError`` with the upstream status and message so
callers can classify failures from the text.
"""

from typing import Any, Dict, Optional

import httpx
from google import genai
from google.genai import types

from grindflow.core.exceptions import ConfigurationError, ModelTransportError
from grindflow.utils.logging import get_logger

LOGGER = get_logger(__name__)


class BaseModelTransport:
    """Common interface of the model transports."""

    name: str = "base"

    def __init__(self, api_key: str, timeout: int = 60):
        """Initialize the transport.

        Args:
            api_key: Gemini API key
            timeout: Request timeout in seconds
        """
        self.api_key = api_key
        self.timeout = timeout

    @property
    def is_configured(self) -> bool:
        return bool(self.api_key)

    async def generate(self, model: str, system_instruction: str, prompt: str) -> str:
        """Generate text for a prompt.

        Args:
            model: Model identifier, e.g. ``gemini-2.5-flash``
            system_instruction: Task system instruction
            prompt: User prompt

        Returns:
            Generated text, empty when the model returned nothing

        Raises:
            ModelTransportError: If the call fails
        """
        raise NotImplementedError


class GeminiSDKTransport(BaseModelTransport):
    """Primary transport backed by the google-genai async client."""

    name = "sdk"

    def __init__(self, api_key: str, timeout: int = 60, temperature: float = 0.2):
        super().__init__(api_key, timeout)
        self.temperature = temperature
        self._client: Optional[genai.Client] = None

    @property
    def client(self) -> genai.Client:
        """Lazily created SDK client."""
        if self._client is None:
            if not self.api_key:
                raise ConfigurationError("Gemini API key missing on server")
            try:
                self._client = genai.Client(
                    api_key=self.api_key,
                    http_options=types.HttpOptions(timeout=self.timeout * 1000),
                )
                LOGGER.info("Initialized Gemini SDK client")
            except Exception as e:
                LOGGER.error(f"Failed to initialize Gemini client: {e}")
                raise ModelTransportError(f"Failed to initialize Gemini client: {e}", original_error=e) from e
        return self._client

    async def generate(self, model: str, system_instruction: str, prompt: str) -> str:
        config = types.GenerateContentConfig(
            temperature=self.temperature,
            system_instruction=system_instruction,
        )

        try:
            response = await self.client.aio.models.generate_content(
                model=model,
                contents=prompt,
                config=config,
            )
        except ModelTransportError:
            raise
        except Exception as e:
            raise ModelTransportError(
                f"Gemini SDK error ({model}): {e}",
                status_code=getattr(e, "code", None),
                original_error=e,
            ) from e

        text = response.text or ""
        if not text:
            LOGGER.warning(f"Empty response from Gemini SDK ({model})")
        return text


class GeminiHTTPTransport(BaseModelTransport):
    """Fallback transport posting straight to the generateContent endpoint."""

    name = "http"

    def __init__(
        self,
        api_key: str,
        base_url: str = "https://generativelanguage.googleapis.com/v1",
        timeout: int = 60,
    ):
        super().__init__(api_key, timeout)
        self.base_url = base_url.rstrip("/")

    @staticmethod
    def build_payload(system_instruction: str, prompt: str) -> Dict[str, Any]:
        """Request body with the system instruction folded into the user turn."""
        return {
            "contents": [
                {"role": "user", "parts": [{"text": f"{system_instruction}\n\n{prompt}"}]}
            ]
        }

    @staticmethod
    def extract_text(data: Any) -> str:
        """Concatenate the text parts of the first candidate."""
        try:
            parts = data["candidates"][0]["content"]["parts"]
        except (KeyError, IndexError, TypeError):
            return ""
        return "".join(part.get("text", "") for part in parts if isinstance(part, dict))

    async def generate(self, model: str, system_instruction: str, prompt: str) -> str:
        if not self.api_key:
            raise ConfigurationError("Gemini API key missing on server")

        url = f"{self.base_url}/models/{model}:generateContent"
        LOGGER.debug(f"Calling Gemini HTTP endpoint: {url}", extra={"timeout": self.timeout})

        try:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                response = await client.post(
                    url,
                    params={"key": self.api_key},
                    json=self.build_payload(system_instruction, prompt),
                )
        except httpx.TimeoutException as e:
            raise ModelTransportError(f"Gemini HTTP request timed out ({model})", original_error=e) from e
        except httpx.HTTPError as e:
            raise ModelTransportError(f"Gemini HTTP request failed ({model}): {e}", original_error=e) from e

        if response.status_code != 200:
            body = response.text or ""
            LOGGER.warning(
                f"Gemini HTTP error {response.status_code}",
                extra={"model": model, "error_body": body[:500]},
            )
            raise ModelTransportError(
                f"Gemini HTTP {response.status_code} ({model}): {body[:500]}",
                status_code=response.status_code,
            )

        text = self.extract_text(response.json())
        if not text:
            LOGGER.warning(f"Empty response from Gemini HTTP endpoint ({model})")
        return text
