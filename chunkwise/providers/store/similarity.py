"""Cosine-similarity ranking shared by the progress store adapters."""

from __future__ import annotations

from collections.abc import Sequence

import numpy as np

from chunkwise.models.chunk import ProgressRecord, RetrievedChunk


def rank_by_similarity(
    records: Sequence[ProgressRecord],
    embedding: list[float],
    top_k: int,
) -> list[RetrievedChunk]:
    """Return the *top_k* records closest to *embedding*, best first.

    Records whose vector length differs from the query are ignored.  A zero
    vector on either side scores 0.0.  Ties keep chunk order.
    """
    if top_k <= 0 or not records:
        return []

    query = np.asarray(embedding, dtype=np.float64)
    candidates = [r for r in records if len(r.embedding) == query.shape[0]]
    if not candidates:
        return []

    matrix = np.asarray([r.embedding for r in candidates], dtype=np.float64)
    norms = np.linalg.norm(matrix, axis=1) * np.linalg.norm(query)
    dots = matrix @ query
    with np.errstate(divide="ignore", invalid="ignore"):
        scores = np.where(norms > 0, dots / norms, 0.0)
    scores = np.clip(scores, -1.0, 1.0)

    # Stable sort on the negated score keeps index order among equal scores.
    order = np.argsort(-scores, kind="stable")[:top_k]
    return [
        RetrievedChunk(record=candidates[i], similarity=float(scores[i]))
        for i in order
    ]
