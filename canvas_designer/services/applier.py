"""Replay a :class:`DesignSuggestion` as host element-creation calls.

Calls are issued one at a time, text elements first, then shapes, then the
background, so stacking position and z-order follow sequence order. A
failing element is recorded and skipped. Only ``SurfaceUnavailable`` stops
the sequence and falls back to copying a text summary to the clipboard.
"""

import logging
from dataclasses import dataclass
from typing import Iterator, List, Optional, Tuple, Union

from canvas_designer.schemas import DesignSuggestion
from canvas_designer.services.canvas import (
    CanvasSurface,
    Clipboard,
    ElementRequest,
    NoClipboard,
    ShapeElementRequest,
    SurfaceUnavailable,
    TextElementRequest,
)
from canvas_designer.services.paths import (
    CANVAS_HEIGHT,
    CANVAS_WIDTH,
    background_path,
    shape_path,
    with_alpha,
)

logger = logging.getLogger(__name__)

TEXT_LEFT = 50
TEXT_TOP = 50
TEXT_SPACING = 100
SHAPE_LEFT = 350
SHAPE_TOP = 50
SHAPE_SPACING = 120
BACKGROUND_ALPHA = "40"


@dataclass(frozen=True)
class StepResult:
    kind: str
    index: int
    ok: bool
    error: Optional[str] = None


@dataclass(frozen=True)
class Applied:
    title: str
    steps: Tuple[StepResult, ...]

    def _succeeded(self, kind: str) -> int:
        return sum(1 for step in self.steps if step.kind == kind and step.ok)

    @property
    def text_count(self) -> int:
        return self._succeeded("text")

    @property
    def shape_count(self) -> int:
        return self._succeeded("shape")

    @property
    def background_applied(self) -> bool:
        return self._succeeded("background") > 0

    @property
    def failed_steps(self) -> List[StepResult]:
        return [step for step in self.steps if not step.ok]

    @property
    def message(self) -> str:
        lines = [
            f'✅ Design "{self.title}" has been applied to your canvas!',
            "",
            "🎨 Added elements:",
            f"• {self.text_count} text elements",
            f"• {self.shape_count} shapes",
        ]
        if self.background_applied:
            lines.append("• Background color")
        if self.failed_steps:
            lines.append(f"• {len(self.failed_steps)} elements could not be added")
        lines += ["", "💡 You can now customize and adjust the elements as needed."]
        return "\n".join(lines)


@dataclass(frozen=True)
class AppliedWithFallback:
    title: str
    reason: str
    error_message: str
    clipboard_text: str
    steps: Tuple[StepResult, ...]

    @property
    def message(self) -> str:
        return (
            "❌ Could not apply design automatically.\n\n"
            "📋 Design details copied to clipboard as fallback.\n\n"
            f"Error: {self.error_message}"
        )


@dataclass(frozen=True)
class ApplyFailed:
    title: str
    reason: str
    error_message: str
    steps: Tuple[StepResult, ...]

    @property
    def message(self) -> str:
        return (
            "❌ Could not apply design automatically.\n\n"
            f"Error: {self.error_message}\n\n"
            "Please apply the design elements manually."
        )


ApplyOutcome = Union[Applied, AppliedWithFallback, ApplyFailed]


# --------------------------------------------
# Element requests
# --------------------------------------------
def text_requests(design: DesignSuggestion) -> Iterator[TextElementRequest]:
    for index, element in enumerate(design.text_elements):
        yield TextElementRequest(
            text=element.text,
            font_size=element.font_size,
            font_weight=element.font_weight,
            color=element.color,
            top=TEXT_TOP + index * TEXT_SPACING,
            left=TEXT_LEFT,
        )


def shape_requests(design: DesignSuggestion) -> Iterator[ShapeElementRequest]:
    for index, shape in enumerate(design.shapes):
        yield ShapeElementRequest(
            path_data=shape_path(shape.type, shape.width, shape.height),
            fill_color=shape.color,
            top=SHAPE_TOP + index * SHAPE_SPACING,
            left=SHAPE_LEFT,
            width=shape.width,
            height=shape.height,
        )


def background_request(design: DesignSuggestion) -> ShapeElementRequest:
    return ShapeElementRequest(
        path_data=background_path(),
        fill_color=with_alpha(design.colors[0], BACKGROUND_ALPHA),
        top=0,
        left=0,
        width=CANVAS_WIDTH,
        height=CANVAS_HEIGHT,
    )


def design_summary(design: DesignSuggestion) -> str:
    return "\n".join([
        f"🎨 {design.title}",
        f"📝 {design.description}",
        f"🎨 Colors: {', '.join(design.colors)}",
        f"📋 Elements: {', '.join(design.elements)}",
        f"📐 Layout: {design.layout}",
    ])


def classify_failure(error: Exception) -> Tuple[str, str]:
    """Map a pipeline failure to ``(reason, display message)``."""
    text = str(error)
    lowered = text.lower()
    if "permission" in lowered:
        return "permission", "Permission denied. Make sure the app has access to modify the design."
    if "network" in lowered:
        return "network", "Network error. Please check your connection and try again."
    return "other", f"Error: {text}"


class ApplicationEngine:
    def __init__(self, surface: CanvasSurface, clipboard: Optional[Clipboard] = None) -> None:
        self.surface = surface
        self.clipboard = clipboard or NoClipboard()

    def apply(self, design: DesignSuggestion) -> ApplyOutcome:
        logger.info('Applying design "%s"', design.title)
        steps: List[StepResult] = []

        try:
            for index, request in enumerate(text_requests(design)):
                steps.append(self._attempt("text", index, request))
            for index, request in enumerate(shape_requests(design)):
                steps.append(self._attempt("shape", index, request))
            steps.append(self._attempt("background", 0, background_request(design)))
        except Exception as e:
            logger.error('Applying design "%s" failed: %s', design.title, e)
            return self._fall_back(design, e, steps)

        return Applied(title=design.title, steps=tuple(steps))

    def _attempt(self, kind: str, index: int, request: ElementRequest) -> StepResult:
        try:
            self.surface.add_element(request)
        except SurfaceUnavailable:
            raise
        except Exception as e:
            logger.error("Error adding %s element %d: %s", kind, index, e)
            return StepResult(kind=kind, index=index, ok=False, error=str(e))

        logger.info("Added %s element %d", kind, index)
        return StepResult(kind=kind, index=index, ok=True)

    def _fall_back(self, design: DesignSuggestion, error: Exception, steps: List[StepResult]) -> ApplyOutcome:
        reason, error_message = classify_failure(error)
        summary = design_summary(design)

        if self.clipboard.available:
            try:
                self.clipboard.write_text(summary)
            except Exception as clipboard_error:
                logger.error("Clipboard fallback failed: %s", clipboard_error)
            else:
                logger.info('Copied summary of "%s" to clipboard', design.title)
                return AppliedWithFallback(
                    title=design.title,
                    reason=reason,
                    error_message=error_message,
                    clipboard_text=summary,
                    steps=tuple(steps),
                )

        return ApplyFailed(
            title=design.title,
            reason=reason,
            error_message=error_message,
            steps=tuple(steps),
        )
