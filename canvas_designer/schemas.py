from typing import Annotated, Any, Dict, List, Literal, Optional, get_args

from pydantic import BaseModel, ConfigDict, Field

HEX_COLOR_PATTERN = r"^#(?:[0-9a-fA-F]{3}|[0-9a-fA-F]{6}|[0-9a-fA-F]{8})$"

HexColor = Annotated[str, Field(pattern=HEX_COLOR_PATTERN)]
ShapeType = Literal["rectangle", "circle", "triangle"]
FontWeight = Literal[
    "normal", "thin", "extralight", "light", "medium",
    "semibold", "bold", "ultrabold", "heavy",
]

SHAPE_TYPES = get_args(ShapeType)
FONT_WEIGHTS = get_args(FontWeight)


class TextElement(BaseModel):
    model_config = ConfigDict(populate_by_name=True, frozen=True)

    text: str = Field(min_length=1)
    font_size: int = Field(default=24, gt=0, alias="fontSize")
    font_weight: FontWeight = Field(default="normal", alias="fontWeight")
    color: HexColor = "#000000"


class ShapeSpec(BaseModel):
    model_config = ConfigDict(frozen=True)

    type: ShapeType = "rectangle"
    color: HexColor = "#6366F1"
    width: int = Field(default=100, gt=0)
    height: int = Field(default=100, gt=0)


class DesignSuggestion(BaseModel):
    """One fully populated design proposal, in display/application order."""

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    title: str = Field(min_length=1)
    description: str
    colors: List[HexColor] = Field(min_length=1)
    elements: List[str] = Field(min_length=1)
    layout: str
    text_elements: List[TextElement] = Field(min_length=1, alias="textElements")
    shapes: List[ShapeSpec] = Field(min_length=1)

    def to_wire(self) -> Dict[str, Any]:
        return self.model_dump(by_alias=True)


# --------------------------------------------
# HTTP models
# --------------------------------------------
class GenerateRequest(BaseModel):
    prompt: str
    session_id: Optional[str] = None


class GenerateResponse(BaseModel):
    session_id: str
    prompt: str
    suggestions: List[DesignSuggestion]


class ApplyRequest(BaseModel):
    index: int = Field(ge=0)
    secure_context: bool = False


class StepReport(BaseModel):
    kind: Literal["text", "shape", "background"]
    index: int
    ok: bool
    error: Optional[str] = None


class ApplyResponse(BaseModel):
    status: Literal["applied", "applied_with_fallback", "failed"]
    title: str
    message: str
    reason: Optional[str] = None
    text_count: int = 0
    shape_count: int = 0
    background_applied: bool = False
    steps: List[StepReport] = Field(default_factory=list)
    elements: List[Dict[str, Any]] = Field(default_factory=list)
    clipboard_text: Optional[str] = None


class SessionResponse(BaseModel):
    session_id: str
    phase: str
    prompt: Optional[str] = None
    error: Optional[str] = None
    suggestions: List[DesignSuggestion] = Field(default_factory=list)


class HealthResponse(BaseModel):
    status: str = "ok"
    llm_provider: str
    model: str
    has_gemini_access: bool
    canvas_mode: Literal["bridge", "recording"]
