"""Turn raw model output into complete :class:`DesignSuggestion` objects.

Two recovery tiers exist. Well-formed JSON that merely lacks optional fields
is completed field by field. Anything structurally wrong (no JSON, no
``designs`` sequence, a design that is not an object) discards the whole
response and yields a single design built from the user's own prompt.
"""

import json
import logging
import math
import re
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Union

from pydantic import ValidationError

from canvas_designer.schemas import (
    FONT_WEIGHTS,
    HEX_COLOR_PATTERN,
    SHAPE_TYPES,
    DesignSuggestion,
    ShapeSpec,
    TextElement,
)

logger = logging.getLogger(__name__)

DEFAULT_PALETTE = ["#6366F1", "#EC4899", "#F59E0B"]
DEFAULT_ELEMENTS = ["text", "shapes", "background"]
DEFAULT_DESCRIPTION = "AI-generated design concept"
DEFAULT_LAYOUT = "modern layout"

FALLBACK_ELEMENTS = ["custom text", "decorative elements", "background"]
FALLBACK_LAYOUT = "balanced and visually appealing"
FALLBACK_SUBTITLE = "AI Generated Design"
PROMPT_PREVIEW_LENGTH = 30

# Tried in order; the first match wins.
EXTRACTION_PATTERNS = (
    ("fenced json", re.compile(r"```json\s*([\s\S]*?)\s*```", re.IGNORECASE)),
    ("fenced block", re.compile(r"```\s*([\s\S]*?)\s*```")),
    ("outer braces", re.compile(r"\{[\s\S]*\}")),
)

HEX_COLOR_RE = re.compile(HEX_COLOR_PATTERN)


@dataclass(frozen=True)
class Valid:
    value: Any


@dataclass(frozen=True)
class Invalid:
    reason: str


ParseResult = Union[Valid, Invalid]


# --------------------------------------------
# Extraction
# --------------------------------------------
def extract_json_payload(raw_text: str) -> str:
    for name, pattern in EXTRACTION_PATTERNS:
        match = pattern.search(raw_text)
        if match:
            logger.debug("JSON payload located via %s", name)
            groups = match.groups()
            return (groups[0] if groups and groups[0] else match.group(0)).strip()
    return raw_text.strip()


def parse_payload(raw_text: str) -> ParseResult:
    """Locate and decode the ``designs`` sequence inside ``raw_text``."""
    try:
        parsed = json.loads(extract_json_payload(raw_text))
    except ValueError as e:
        return Invalid(f"malformed JSON: {e}")

    if isinstance(parsed, dict) and isinstance(parsed.get("designs"), list):
        designs = parsed["designs"]
    elif isinstance(parsed, list):
        designs = parsed
    else:
        return Invalid("no designs sequence in payload")

    if not designs:
        return Invalid("empty designs sequence")
    return Valid(designs)


# --------------------------------------------
# Field coercion
# --------------------------------------------
def _text(value: Any) -> Optional[str]:
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        value = str(value)
    if isinstance(value, str) and value.strip():
        return value.strip()
    return None


def _hex_color(value: Any) -> Optional[str]:
    if isinstance(value, str) and HEX_COLOR_RE.match(value.strip()):
        return value.strip()
    return None


def _positive_int(value: Any, default: int) -> int:
    if isinstance(value, bool):
        return default
    if isinstance(value, str):
        try:
            value = float(value.strip().lower().removesuffix("px").strip())
        except ValueError:
            return default
    if isinstance(value, (int, float)) and math.isfinite(value) and value >= 1:
        return int(value)
    return default


def _font_weight(value: Any) -> str:
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return "bold" if value >= 600 else "normal"
    if not isinstance(value, str):
        return "normal"
    weight = value.strip().lower()
    if weight.isdigit():
        return "bold" if int(weight) >= 600 else "normal"
    return weight if weight in FONT_WEIGHTS else "normal"


def _shape_type(value: Any) -> str:
    if isinstance(value, str) and value.strip().lower() in SHAPE_TYPES:
        return value.strip().lower()
    return "rectangle"


def _colors(value: Any) -> List[str]:
    if not isinstance(value, list):
        return []
    return [color for color in (_hex_color(item) for item in value) if color]


def _labels(value: Any) -> List[str]:
    if not isinstance(value, list):
        return []
    return [label for label in (_text(item) for item in value) if label]


def _pick(colors: List[str], index: int, default: str) -> str:
    return colors[index] if len(colors) > index else default


def _text_elements(value: Any) -> List[TextElement]:
    # Entries that are not objects or carry no text are dropped one by one.
    if not isinstance(value, list):
        return []
    elements = []
    for item in value:
        if not isinstance(item, dict):
            continue
        text = _text(item.get("text"))
        if not text:
            continue
        elements.append(
            TextElement(
                text=text,
                font_size=_positive_int(item.get("fontSize"), 24),
                font_weight=_font_weight(item.get("fontWeight")),
                color=_hex_color(item.get("color")) or "#000000",
            )
        )
    return elements


def _shapes(value: Any) -> List[ShapeSpec]:
    if not isinstance(value, list):
        return []
    return [
        ShapeSpec(
            type=_shape_type(item.get("type")),
            color=_hex_color(item.get("color")) or DEFAULT_PALETTE[0],
            width=_positive_int(item.get("width"), 100),
            height=_positive_int(item.get("height"), 100),
        )
        for item in value
        if isinstance(item, dict)
    ]


# --------------------------------------------
# Design assembly
# --------------------------------------------
def validate_design(raw: Any, index: int, user_prompt: str) -> ParseResult:
    """Complete one raw design object, or report why it cannot be used."""
    if not isinstance(raw, dict):
        return Invalid(f"design {index} is not an object")

    raw_title = _text(raw.get("title"))
    raw_description = _text(raw.get("description"))
    provided_colors = _colors(raw.get("colors"))

    text_elements = _text_elements(raw.get("textElements"))
    if not text_elements:
        text_elements = [
            TextElement(
                text=raw_title or f"{user_prompt.strip()} Title",
                font_size=48,
                font_weight="bold",
                color=_pick(provided_colors, 1, "#000000"),
            ),
            TextElement(
                text=raw_description or "Subtitle",
                font_size=24,
                font_weight="normal",
                color=_pick(provided_colors, 2, "#666666"),
            ),
        ]

    shapes = _shapes(raw.get("shapes"))
    if not shapes:
        shapes = [
            ShapeSpec(
                type="rectangle",
                color=_pick(provided_colors, 0, DEFAULT_PALETTE[0]),
                width=200,
                height=100,
            )
        ]

    try:
        design = DesignSuggestion(
            title=raw_title or f"Design {index + 1}",
            description=raw_description or DEFAULT_DESCRIPTION,
            colors=provided_colors or list(DEFAULT_PALETTE),
            elements=_labels(raw.get("elements")) or list(DEFAULT_ELEMENTS),
            layout=_text(raw.get("layout")) or DEFAULT_LAYOUT,
            text_elements=text_elements,
            shapes=shapes,
        )
    except ValidationError as e:
        return Invalid(f"design {index} failed validation: {e}")
    return Valid(design)


def fallback_design(user_prompt: str) -> DesignSuggestion:
    """The single design offered when the model output cannot be used at all."""
    preview = user_prompt[:PROMPT_PREVIEW_LENGTH]
    if len(user_prompt) > PROMPT_PREVIEW_LENGTH:
        preview += "..."

    return DesignSuggestion(
        title=f"Design for: {preview}",
        description=DEFAULT_DESCRIPTION,
        colors=list(DEFAULT_PALETTE),
        elements=list(FALLBACK_ELEMENTS),
        layout=FALLBACK_LAYOUT,
        text_elements=[
            TextElement(text=user_prompt or FALLBACK_SUBTITLE, font_size=48, font_weight="bold", color="#EC4899"),
            TextElement(text=FALLBACK_SUBTITLE, font_size=24, font_weight="normal", color="#6366F1"),
        ],
        shapes=[ShapeSpec(type="rectangle", color="#F59E0B", width=200, height=100)],
    )


def normalize(raw_text: str, user_prompt: str) -> List[DesignSuggestion]:
    """Parse model output into designs. Never raises and never returns an empty list."""
    try:
        parsed = parse_payload(raw_text or "")
        if isinstance(parsed, Invalid):
            return _fall_back(parsed.reason, user_prompt)

        designs = []
        for index, raw in enumerate(parsed.value):
            result = validate_design(raw, index, user_prompt)
            if isinstance(result, Invalid):
                return _fall_back(result.reason, user_prompt)
            designs.append(result.value)
        return designs
    except Exception as e:
        logger.exception("Unexpected error while normalizing model output")
        return _fall_back(str(e), user_prompt)


def designs_to_payload(designs: List[DesignSuggestion]) -> Dict[str, Any]:
    return {"designs": [design.to_wire() for design in designs]}


def _fall_back(reason: str, user_prompt: str) -> List[DesignSuggestion]:
    logger.warning("Model output unusable (%s); using fallback design", reason)
    return [fallback_design(user_prompt)]
