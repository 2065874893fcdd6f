import os
from dataclasses import dataclass, field
from typing import Any, Dict, Optional, Tuple

DEFAULT_MODEL = "gemini-2.5-flash"
DEFAULT_API_BASE = "https://generativelanguage.googleapis.com/v1beta"
DEFAULT_TIMEOUT = 60

SAFETY_CATEGORIES = (
    "HARM_CATEGORY_HARASSMENT",
    "HARM_CATEGORY_HATE_SPEECH",
    "HARM_CATEGORY_SEXUALLY_EXPLICIT",
    "HARM_CATEGORY_DANGEROUS_CONTENT",
)


@dataclass(frozen=True)
class SafetySetting:
    category: str
    threshold: str = "BLOCK_MEDIUM_AND_ABOVE"


@dataclass(frozen=True)
class GenerationConfig:
    """Sampling and content-safety policy sent with every generation request."""

    temperature: float = 0.7
    top_k: int = 40
    top_p: float = 0.95
    max_output_tokens: int = 2048
    safety_settings: Tuple[SafetySetting, ...] = field(
        default_factory=lambda: tuple(SafetySetting(category) for category in SAFETY_CATEGORIES)
    )

    def to_payload(self) -> Dict[str, Any]:
        return {
            "generationConfig": {
                "temperature": self.temperature,
                "topK": self.top_k,
                "topP": self.top_p,
                "maxOutputTokens": self.max_output_tokens,
            },
            "safetySettings": [
                {"category": setting.category, "threshold": setting.threshold}
                for setting in self.safety_settings
            ],
        }


DEFAULT_GENERATION_CONFIG = GenerationConfig()


@dataclass(frozen=True)
class Settings:
    gemini_api_key: Optional[str] = None
    gemini_model: str = DEFAULT_MODEL
    gemini_api_base: str = DEFAULT_API_BASE
    gemini_timeout: int = DEFAULT_TIMEOUT
    canvas_bridge_url: Optional[str] = None
    canvas_bridge_token: Optional[str] = None
    log_level: str = "INFO"
    panel_max_sessions: int = 256
    panel_idle_seconds: int = 1800

    @classmethod
    def from_env(cls) -> "Settings":
        return cls(
            gemini_api_key=os.getenv("GEMINI_API_KEY"),
            gemini_model=os.getenv("GEMINI_MODEL", DEFAULT_MODEL),
            gemini_api_base=os.getenv("GEMINI_API_BASE", DEFAULT_API_BASE).rstrip("/"),
            gemini_timeout=int(os.getenv("GEMINI_TIMEOUT", str(DEFAULT_TIMEOUT))),
            canvas_bridge_url=os.getenv("CANVAS_BRIDGE_URL") or None,
            canvas_bridge_token=os.getenv("CANVAS_BRIDGE_TOKEN") or None,
            log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
            panel_max_sessions=int(os.getenv("PANEL_MAX_SESSIONS", "256")),
            panel_idle_seconds=int(os.getenv("PANEL_IDLE_SECONDS", "1800")),
        )

    @property
    def has_gemini_access(self) -> bool:
        return bool(self.gemini_api_key)
