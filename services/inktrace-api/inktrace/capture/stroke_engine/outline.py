from typing import List, Sequence, Tuple
import math
from ..ingestion.models import StrokeSample
from .svg_document import svg_number

MIN_SEGMENT_LENGTH = 0.05
MIN_WIDTH = 0.5
# Control-point distance for a quarter circle drawn with one cubic Bezier
KAPPA = 0.5522847498

Vec = Tuple[float, float]
Command = Tuple[str, Tuple[Vec, ...]]


def dist(p1: StrokeSample, p2: StrokeSample) -> float:
    return math.hypot(p2.x - p1.x, p2.y - p1.y)


def _add(a: Vec, b: Vec, k: float = 1.0) -> Vec:
    return (a[0] + b[0] * k, a[1] + b[1] * k)


def capsule(p0: StrokeSample, p1: StrokeSample, radius: float) -> List[Command]:
    """
    Outline of the segment p0->p1 inflated by `radius`, with round caps.

    The contour always runs along the left side first, around p1, back along
    the right side and around p0, so every capsule shares the same winding and
    overlapping capsules merge under the nonzero fill rule.
    """
    length = dist(p0, p1)
    u = ((p1.x - p0.x) / length, (p1.y - p0.y) / length)
    n = (-u[1], u[0])
    neg_u = (-u[0], -u[1])
    neg_n = (-n[0], -n[1])
    k = KAPPA * radius

    start = (p0.x, p0.y)
    end = (p1.x, p1.y)

    a = _add(start, n, radius)
    b = _add(end, n, radius)
    tip = _add(end, u, radius)
    c = _add(end, neg_n, radius)
    d = _add(start, neg_n, radius)
    tail = _add(start, neg_u, radius)

    return [
        ("M", (a,)),
        ("L", (b,)),
        ("C", (_add(b, u, k), _add(tip, n, k), tip)),
        ("C", (_add(tip, neg_n, k), _add(c, u, k), c)),
        ("L", (d,)),
        ("C", (_add(d, neg_u, k), _add(tail, neg_n, k), tail)),
        ("C", (_add(tail, n, k), _add(a, neg_u, k), a)),
        ("Z", ()),
    ]


def stroke_outline(samples: Sequence[StrokeSample]) -> List[Command]:
    """
    Union of per-segment capsules for one stroke. Segments shorter than
    MIN_SEGMENT_LENGTH are skipped; an empty list means no segment qualified.
    """
    commands: List[Command] = []
    for current, nxt in zip(samples, samples[1:]):
        if dist(current, nxt) < MIN_SEGMENT_LENGTH:
            continue
        width = max(MIN_WIDTH, (current.width + nxt.width) / 2)
        commands.extend(capsule(current, nxt, width / 2))
    return commands


def path_data(commands: Sequence[Command]) -> str:
    parts = []
    for op, points in commands:
        parts.append(op)
        for x, y in points:
            parts.append(svg_number(x))
            parts.append(svg_number(y))
    return " ".join(parts)
