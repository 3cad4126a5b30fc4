import logging
from typing import List, Sequence
from ..ingestion.models import Stroke, StrokeSample, VectorizeMode
from .outline import MIN_WIDTH, path_data, stroke_outline
from .resampling import resample_stroke
from .svg_document import Circle, PathShape, Shape, VectorDocument, svg_number

logger = logging.getLogger("stroke_engine.vectorizer")


def fill_widths(stroke: Stroke, default_width: float) -> Stroke:
    """Replaces missing sample widths with the caller's default."""
    if all(s.width is not None for s in stroke.samples):
        return stroke
    return Stroke(samples=[
        s if s.width is not None else s.model_copy(update={"width": default_width})
        for s in stroke.samples
    ])


def dot(sample: StrokeSample) -> Circle:
    return Circle(cx=sample.x, cy=sample.y, r=max(MIN_WIDTH, sample.width / 2))


def pressure_shape(stroke: Stroke) -> Shape:
    samples = resample_stroke(stroke)
    if len(samples) == 1:
        return dot(samples[0])

    commands = stroke_outline(samples)
    if not commands:
        # Every segment was below the noise threshold: still leave a mark
        return dot(samples[0])
    return PathShape(d=path_data(commands), filled=True)


def centerline_shape(stroke: Stroke) -> Shape:
    samples = stroke.samples
    if len(samples) == 1:
        return dot(samples[0])

    parts = []
    for i, p in enumerate(samples):
        parts.append("%s %s %s" % ("M" if i == 0 else "L", svg_number(p.x), svg_number(p.y)))

    # Constant width for the whole polyline, taken from the first sample
    width = max(MIN_WIDTH, samples[0].width)
    return PathShape(d=" ".join(parts), filled=False, stroke_width=width)


def vectorize(strokes: Sequence[Stroke], mode: VectorizeMode = "pressure", default_width: float = 1.0) -> VectorDocument:
    """
    Converts captured strokes into a 300x300 vector document, one primitive
    per stroke in submission order.

    - pressure: resampled, variable-width filled outline
    - centerline: constant-width stroked polyline
    """
    shapes: List[Shape] = []
    for stroke in strokes:
        stroke = fill_widths(stroke, default_width)
        if mode == "pressure":
            shapes.append(pressure_shape(stroke))
        elif mode == "centerline":
            shapes.append(centerline_shape(stroke))
        else:
            raise ValueError(f"unknown vectorize mode: {mode}")

    logger.debug("Vectorized %d strokes (%s) into %d shapes", len(strokes), mode, len(shapes))
    return VectorDocument(shapes=tuple(shapes))
