"""Segmented (CSR-style) reductions over flattened incidence lists.

An incidence list is stored as one flat array plus ``offsets``/``counts``
per row. The helpers here work on any subset of rows so callers can split the
work into independent chunks; every reduction visits a row's items in stored
order, which keeps floating-point results independent of the chunking.
"""

from __future__ import annotations

import numpy as np


def expand_segments(
    offsets: np.ndarray, counts: np.ndarray, rows: np.ndarray
) -> tuple[np.ndarray, np.ndarray]:
    """Return ``(segment_ids, flat_positions)`` for the items of ``rows``.

    ``segment_ids[k]`` is the position of the owning row inside ``rows`` and
    ``flat_positions[k]`` indexes the flat incidence array.
    """
    cnt = counts[rows]
    total = int(cnt.sum())
    seg = np.repeat(np.arange(rows.shape[0], dtype=np.int64), cnt)
    if total == 0:
        return seg, np.empty(0, dtype=np.int64)
    starts = offsets[rows] - (np.cumsum(cnt) - cnt)
    return seg, np.repeat(starts, cnt) + np.arange(total, dtype=np.int64)


def segment_sum(values: np.ndarray, seg: np.ndarray, n_segments: int) -> np.ndarray:
    """Sum ``values`` rows into ``n_segments`` buckets in item order."""
    out = np.zeros((n_segments,) + values.shape[1:], dtype=float)
    if seg.size:
        np.add.at(out, seg, values)
    return out


def segment_argmax(scores: np.ndarray, seg: np.ndarray, n_segments: int) -> np.ndarray:
    """Return the item index of each segment's largest score.

    Ties go to the earliest item; empty segments get ``-1``.
    """
    best = np.full(n_segments, -1, dtype=np.int64)
    if scores.size == 0:
        return best
    order = np.lexsort((np.arange(scores.shape[0]), -scores, seg))
    sorted_seg = seg[order]
    first = np.ones(order.shape[0], dtype=bool)
    first[1:] = sorted_seg[1:] != sorted_seg[:-1]
    best[sorted_seg[first]] = order[first]
    return best
