"""Boundaries to the host drawing surface and the clipboard."""

import logging
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional, Protocol, Union

import requests

logger = logging.getLogger(__name__)


class CanvasError(Exception):
    pass


class ElementRejected(CanvasError):
    """The surface refused a single element; later elements may still succeed."""


class SurfaceUnavailable(CanvasError):
    """The surface cannot be reached or refuses access altogether."""


@dataclass(frozen=True)
class TextElementRequest:
    text: str
    font_size: int
    font_weight: str
    color: str
    top: int
    left: int

    def to_dict(self) -> Dict[str, Any]:
        return {
            "type": "text",
            "text": self.text,
            "fontSize": self.font_size,
            "fontWeight": self.font_weight,
            "color": self.color,
            "top": self.top,
            "left": self.left,
        }


@dataclass(frozen=True)
class ShapeElementRequest:
    path_data: str
    fill_color: str
    top: int
    left: int
    width: int
    height: int

    def to_dict(self) -> Dict[str, Any]:
        return {
            "type": "shape",
            "pathData": self.path_data,
            "fillColor": self.fill_color,
            "viewBox": {"width": self.width, "height": self.height, "top": 0, "left": 0},
            "top": self.top,
            "left": self.left,
            "width": self.width,
            "height": self.height,
        }


ElementRequest = Union[TextElementRequest, ShapeElementRequest]


class CanvasSurface(Protocol):
    def add_element(self, element: ElementRequest) -> None:
        ...


class RecordingCanvas:
    """Keeps created elements in memory so a plugin front-end can replay them.

    ``reject`` marks elements the canvas should refuse, for demos and tests.
    """

    def __init__(self, reject: Optional[Callable[[ElementRequest], bool]] = None) -> None:
        self.reject = reject
        self.elements: List[Dict[str, Any]] = []

    def add_element(self, element: ElementRequest) -> None:
        if self.reject is not None and self.reject(element):
            raise ElementRejected(f"canvas refused {element.to_dict()['type']} element")
        self.elements.append(element.to_dict())


class HttpCanvasSurface:
    """Pushes each element to a canvas bridge over HTTP."""

    def __init__(
        self,
        base_url: str,
        access_token: Optional[str] = None,
        timeout: int = 30,
        session: Optional[requests.Session] = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.access_token = access_token
        self.timeout = timeout
        self._http = session or requests

    def add_element(self, element: ElementRequest) -> None:
        logger.debug("Posting %s element to %s", type(element).__name__, self.base_url)
        headers = {"Content-Type": "application/json"}
        if self.access_token:
            headers["Authorization"] = f"Bearer {self.access_token}"

        try:
            response = self._http.post(
                f"{self.base_url}/elements",
                headers=headers,
                json=element.to_dict(),
                timeout=self.timeout,
            )
        except requests.ConnectionError as e:
            raise SurfaceUnavailable(f"network error reaching canvas bridge: {e}") from e
        except requests.Timeout as e:
            raise ElementRejected(f"canvas bridge timed out: {e}") from e
        except requests.RequestException as e:
            raise SurfaceUnavailable(f"network error reaching canvas bridge: {e}") from e

        if response.status_code in (401, 403):
            raise SurfaceUnavailable(f"permission denied by canvas bridge ({response.status_code})")
        if not response.ok:
            raise ElementRejected(f"canvas bridge rejected element: {response.status_code} {response.text[:200]}")


# --------------------------------------------
# Clipboard
# --------------------------------------------
class Clipboard(Protocol):
    @property
    def available(self) -> bool:
        ...

    def write_text(self, text: str) -> None:
        ...


class ResponseClipboard:
    """Holds the copied text so the HTTP response can hand it to the plugin.

    Only usable when the caller runs in a secure context.
    """

    def __init__(self, secure_context: bool) -> None:
        self.secure_context = secure_context
        self.text: Optional[str] = None

    @property
    def available(self) -> bool:
        return self.secure_context

    def write_text(self, text: str) -> None:
        if not self.secure_context:
            raise RuntimeError("Clipboard requires a secure context")
        self.text = text


class NoClipboard:
    available = False

    def write_text(self, text: str) -> None:
        raise RuntimeError("No clipboard available")
