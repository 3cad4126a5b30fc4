from typing import List
import math
import numpy as np
from ..ingestion.models import Stroke, StrokeSample

RESAMPLE_SPACING = 1.0


def resample_stroke(stroke: Stroke, spacing: float = RESAMPLE_SPACING) -> List[StrokeSample]:
    """
    Resamples a stroke at a fixed arc-length step so sample density no longer
    depends on drawing speed. Widths are interpolated linearly; the first and
    last samples are kept. A stroke with zero length collapses to one sample.
    """
    points = stroke.samples
    if len(points) == 1:
        return [points[0]]

    xs = np.array([p.x for p in points], dtype=float)
    ys = np.array([p.y for p in points], dtype=float)
    ws = np.array([p.width for p in points], dtype=float)

    # Cumulative distance along the polyline
    seg = np.hypot(np.diff(xs), np.diff(ys))
    dists = np.concatenate(([0.0], np.cumsum(seg)))
    total_len = float(dists[-1])

    if total_len == 0:
        return [points[0]]

    steps = max(1, int(math.ceil(total_len / spacing)))
    targets = np.linspace(0.0, total_len, steps + 1)

    # np.interp needs strictly increasing x; drop repeated samples first
    keep = np.concatenate(([True], seg > 0))
    dists, xs, ys, ws = dists[keep], xs[keep], ys[keep], ws[keep]

    new_x = np.interp(targets, dists, xs)
    new_y = np.interp(targets, dists, ys)
    new_w = np.interp(targets, dists, ws)

    return [
        StrokeSample(x=float(x), y=float(y), width=float(w))
        for x, y, w in zip(new_x, new_y, new_w)
    ]
