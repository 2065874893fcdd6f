import logging
from typing import Any, Dict, Optional

import requests

from canvas_designer.config import DEFAULT_GENERATION_CONFIG, GenerationConfig, Settings

logger = logging.getLogger(__name__)


class GenerationError(Exception):
    """Base class for failures surfaced by the generation client."""


class TransportFailure(GenerationError):
    def __init__(self, message: str, timed_out: bool = False) -> None:
        super().__init__(message)
        self.message = message
        self.timed_out = timed_out


class ApiError(GenerationError):
    def __init__(self, message: str, status: Optional[int] = None) -> None:
        if status is not None:
            text = f"Gemini API error: {status} - {message}"
        else:
            text = f"Gemini API error: {message}"
        super().__init__(text)
        self.status = status
        self.message = message


class EmptyResponse(GenerationError):
    def __init__(self) -> None:
        super().__init__("No response content from Gemini AI")


def describe_generation_error(error: Exception) -> str:
    """Turn a generation failure into the message shown in the panel."""
    if isinstance(error, TransportFailure):
        if error.timed_out:
            return "Request timed out. Please try again."
        return "Network error. Please check your internet connection and try again."
    if isinstance(error, GenerationError):
        return str(error)
    return "An unexpected error occurred while generating the design."


class GeminiClient:
    """Single-shot client for the Gemini generateContent endpoint.

    No retries happen here; one call to ``generate`` is one outbound request.
    """

    def __init__(
        self,
        settings: Optional[Settings] = None,
        generation_config: GenerationConfig = DEFAULT_GENERATION_CONFIG,
        session: Optional[requests.Session] = None,
    ) -> None:
        self.settings = settings or Settings.from_env()
        if not self.settings.gemini_api_key:
            raise RuntimeError("GEMINI_API_KEY is missing.")

        self.generation_config = generation_config
        self._http = session or requests

    @property
    def model(self) -> str:
        return self.settings.gemini_model

    @property
    def endpoint(self) -> str:
        return f"{self.settings.gemini_api_base}/models/{self.model}:generateContent"

    def build_payload(self, instruction: str) -> Dict[str, Any]:
        payload: Dict[str, Any] = {"contents": [{"parts": [{"text": instruction}]}]}
        payload.update(self.generation_config.to_payload())
        return payload

    def generate(self, instruction: str) -> str:
        logger.info("Requesting design generation from %s (%d prompt chars)", self.model, len(instruction))

        try:
            response = self._http.post(
                self.endpoint,
                params={"key": self.settings.gemini_api_key},
                headers={"Content-Type": "application/json"},
                json=self.build_payload(instruction),
                timeout=self.settings.gemini_timeout,
            )
        except requests.Timeout as e:
            logger.warning("Gemini request timed out: %s", e)
            raise TransportFailure(str(e), timed_out=True) from e
        except requests.RequestException as e:
            logger.warning("Gemini request failed: %s", e)
            raise TransportFailure(str(e)) from e

        if not response.ok:
            message = _error_message(response) or response.reason or "Request failed"
            logger.warning("Gemini returned status %s: %s", response.status_code, message)
            raise ApiError(message, status=response.status_code)

        try:
            data = response.json()
        except ValueError:
            logger.warning("Gemini returned a non-JSON body")
            raise EmptyResponse()

        if isinstance(data, dict) and data.get("error"):
            error = data["error"]
            message = error.get("message") if isinstance(error, dict) else str(error)
            logger.warning("Gemini reported an error: %s", message)
            raise ApiError(message or "Unknown error")

        text = extract_generated_text(data)
        if not text:
            logger.warning("Gemini response contained no generated text")
            raise EmptyResponse()

        return text


def extract_generated_text(data: Any) -> Optional[str]:
    """Read ``candidates[0].content.parts[0].text`` without assuming any level exists."""
    try:
        text = data["candidates"][0]["content"]["parts"][0]["text"]
    except (KeyError, IndexError, TypeError):
        return None
    return text if isinstance(text, str) and text else None


def _error_message(response: requests.Response) -> Optional[str]:
    try:
        body = response.json()
    except ValueError:
        return None
    if isinstance(body, dict) and isinstance(body.get("error"), dict):
        return body["error"].get("message")
    return None
