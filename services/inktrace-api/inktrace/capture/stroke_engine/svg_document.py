from typing import List, Literal, Optional, Tuple, Union
from pydantic import BaseModel, ConfigDict

CANVAS_SIZE = 300
SVG_NS = "http://www.w3.org/2000/svg"


def svg_number(value: float) -> str:
    text = "%.2f" % value
    # "-0.00" would make equal geometry serialize differently
    if text == "-0.00":
        return "0.00"
    return text


class Circle(BaseModel):
    model_config = ConfigDict(frozen=True)

    type: Literal["circle"] = "circle"
    cx: float
    cy: float
    r: float

    def to_svg(self) -> str:
        return '<circle cx="%s" cy="%s" r="%s" fill="black" />' % (
            svg_number(self.cx), svg_number(self.cy), svg_number(self.r)
        )


class PathShape(BaseModel):
    """
    A path primitive. Filled paths are pressure outlines (nonzero rule);
    stroked paths are constant-width centerlines.
    """
    model_config = ConfigDict(frozen=True)

    type: Literal["path"] = "path"
    d: str
    filled: bool = True
    stroke_width: Optional[float] = None

    def to_svg(self) -> str:
        if self.filled:
            return '<path d="%s" fill="black" fill-rule="nonzero" />' % self.d
        return (
            '<path d="%s" stroke="black" fill="none" stroke-width="%s" '
            'stroke-linecap="round" stroke-linejoin="round" />'
            % (self.d, svg_number(self.stroke_width or 1.0))
        )


Shape = Union[Circle, PathShape]


class VectorDocument(BaseModel):
    model_config = ConfigDict(frozen=True)

    shapes: Tuple[Shape, ...] = ()

    @property
    def circles(self) -> List[Circle]:
        return [s for s in self.shapes if isinstance(s, Circle)]

    @property
    def paths(self) -> List[PathShape]:
        return [s for s in self.shapes if isinstance(s, PathShape)]

    def to_svg(self) -> str:
        body = "".join(shape.to_svg() + "\n" for shape in self.shapes)
        return (
            '<svg xmlns="%s" width="%d" height="%d" viewBox="0 0 %d %d">\n%s</svg>\n'
            % (SVG_NS, CANVAS_SIZE, CANVAS_SIZE, CANVAS_SIZE, CANVAS_SIZE, body)
        )

    def to_bytes(self) -> bytes:
        return self.to_svg().encode("utf-8")
