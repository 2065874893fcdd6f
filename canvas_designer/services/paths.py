from typing import Callable, Dict

CANVAS_WIDTH = 800
CANVAS_HEIGHT = 600


def _num(value: float) -> str:
    return str(int(value)) if float(value).is_integer() else str(value)


def rectangle_path(width: int, height: int) -> str:
    return f"M 0,0 L {width},0 L {width},{height} L 0,{height} Z"


def circle_path(width: int, height: int) -> str:
    rx, ry = _num(width / 2), _num(height / 2)
    return f"M 0,{ry} A {rx},{ry} 0 1,0 {width},{ry} A {rx},{ry} 0 1,0 0,{ry} Z"


def triangle_path(width: int, height: int) -> str:
    return f"M {_num(width / 2)},0 L {width},{height} L 0,{height} Z"


PATH_BUILDERS: Dict[str, Callable[[int, int], str]] = {
    "rectangle": rectangle_path,
    "circle": circle_path,
    "triangle": triangle_path,
}


def shape_path(shape_type: str, width: int, height: int) -> str:
    builder = PATH_BUILDERS.get(shape_type.lower(), rectangle_path)
    return builder(width, height)


def background_path() -> str:
    return rectangle_path(CANVAS_WIDTH, CANVAS_HEIGHT)


def with_alpha(color: str, alpha: str = "40") -> str:
    """Return ``color`` as ``#RRGGBBAA`` carrying the given alpha byte."""
    value = color.lstrip("#")
    if len(value) == 3:
        value = "".join(ch * 2 for ch in value)
    return f"#{value[:6]}{alpha}"
