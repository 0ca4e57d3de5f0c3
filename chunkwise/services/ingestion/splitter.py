"""Recursive character splitting with overlapping windows.

Splits a source document into :class:`~chunkwise.models.chunk.Chunk`
objects of at most ``max_chunk_size`` characters.

The splitting strategy works coarse-to-fine:

1. **Coarsest separator first** -- split on the first separator in
   ``separators`` that occurs in the text (paragraph break by default).
2. **Recurse on oversize pieces** -- any piece still longer than
   ``max_chunk_size`` is split again with the next separator (line, word,
   character).  When the list runs out without a fit, the piece is cut
   at fixed character positions.
3. **Merge with overlap** -- small pieces are packed back together up to
   ``max_chunk_size``; when a chunk is flushed, its trailing pieces (up to
   ``overlap`` characters) start the next chunk so context spanning a
   boundary appears in both.

The output is a pure function of ``(text, config)``.  Resuming ingestion by
chunk index relies on that: the same document must always produce the same
indices.
"""

from __future__ import annotations

import structlog
from pydantic import BaseModel, ConfigDict, Field, model_validator

from chunkwise.models.chunk import Chunk

logger = structlog.get_logger(logger_name=__name__)

DEFAULT_SEPARATORS: tuple[str, ...] = ("\n\n", "\n", " ", "")


class SplitterConfig(BaseModel):
    """Validated splitter parameters."""

    model_config = ConfigDict(frozen=True)

    max_chunk_size: int = Field(default=500, gt=0)
    overlap: int = Field(default=50, ge=0)
    separators: tuple[str, ...] = Field(
        default=DEFAULT_SEPARATORS,
        description="Boundary markers ordered from coarsest to finest.",
    )

    @model_validator(mode="after")
    def _check_bounds(self) -> SplitterConfig:
        if self.overlap >= self.max_chunk_size:
            raise ValueError(
                f"overlap ({self.overlap}) must be smaller than max_chunk_size ({self.max_chunk_size})"
            )
        if not self.separators:
            raise ValueError("separators must contain at least one entry")
        return self


class ChunkSplitter:
    """Deterministic recursive splitter producing indexed chunks.

    Parameters
    ----------
    config:
        Size, overlap, and separator priority.  Defaults to 500 characters
        with 50 characters of overlap over paragraph, line, word, character.
    """

    def __init__(self, config: SplitterConfig | None = None) -> None:
        self._config = config or SplitterConfig()
        self._max = self._config.max_chunk_size
        self._overlap = self._config.overlap

    @property
    def config(self) -> SplitterConfig:
        return self._config

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def split(self, text: str, source_id: str) -> list[Chunk]:
        """Split *text* into ordered, indexed :class:`Chunk` objects.

        Empty or whitespace-only text returns an empty list.  Text that
        already fits in one chunk comes back as a single chunk.
        """
        pieces = self.split_text(text)
        chunks = [
            Chunk(index=i, content=piece, length=len(piece), source_id=source_id)
            for i, piece in enumerate(pieces)
        ]
        logger.debug(
            "split_complete",
            source_id=source_id,
            num_chunks=len(chunks),
            max_chunk_size=self._max,
            overlap=self._overlap,
        )
        return chunks

    def split_text(self, text: str) -> list[str]:
        """Return the chunk texts for *text* without building models."""
        if not text or not text.strip():
            return []
        stripped = text.strip()
        if len(stripped) <= self._max:
            return [stripped]
        return self._split_recursive(text, list(self._config.separators))

    def expected_chunks(self, text: str) -> int:
        """Return how many chunks :meth:`split` would produce for *text*."""
        return len(self.split_text(text))

    # ------------------------------------------------------------------
    # Recursive splitting
    # ------------------------------------------------------------------

    def _split_recursive(self, text: str, separators: list[str]) -> list[str]:
        separator = separators[-1]
        finer: list[str] = []
        for i, candidate in enumerate(separators):
            if candidate == "":
                separator = ""
                break
            if candidate in text:
                separator = candidate
                finer = separators[i + 1 :]
                break

        pieces = text.split(separator) if separator else list(text)

        results: list[str] = []
        fitting: list[str] = []
        for piece in pieces:
            if len(piece) <= self._max:
                fitting.append(piece)
                continue
            # Flush what fits before descending into the oversize piece so
            # chunk order follows document order.
            if fitting:
                results.extend(self._merge(fitting, separator))
                fitting = []
            if finer:
                results.extend(self._split_recursive(piece, finer))
            else:
                results.extend(self._hard_cut(piece))

        if fitting:
            results.extend(self._merge(fitting, separator))
        return results

    def _merge(self, pieces: list[str], separator: str) -> list[str]:
        """Pack *pieces* into chunks of at most ``max_chunk_size``, with overlap."""
        sep_len = len(separator)
        chunks: list[str] = []
        current: list[str] = []
        total = 0

        for piece in pieces:
            piece_len = len(piece)
            joined_len = total + piece_len + (sep_len if current else 0)
            if joined_len > self._max and current:
                chunk = self._join(current, separator)
                if chunk is not None:
                    chunks.append(chunk)
                # Drop leading pieces until what remains fits the overlap
                # budget and leaves room for the incoming piece.
                while total > self._overlap or (
                    total + piece_len + (sep_len if current else 0) > self._max and total > 0
                ):
                    total -= len(current[0]) + (sep_len if len(current) > 1 else 0)
                    current.pop(0)
            current.append(piece)
            total += piece_len + (sep_len if len(current) > 1 else 0)

        chunk = self._join(current, separator)
        if chunk is not None:
            chunks.append(chunk)
        return chunks

    def _hard_cut(self, piece: str) -> list[str]:
        """Cut *piece* at fixed positions, stepping ``max - overlap`` characters."""
        step = self._max - self._overlap
        cuts: list[str] = []
        for start in range(0, len(piece), step):
            window = piece[start : start + self._max].strip()
            if window:
                cuts.append(window)
            if start + self._max >= len(piece):
                break
        return cuts

    @staticmethod
    def _join(pieces: list[str], separator: str) -> str | None:
        text = separator.join(pieces).strip()
        return text or None
