"""Unit tests for ChunkSplitter and SplitterConfig."""

from __future__ import annotations

import pytest
from pydantic import ValidationError

from chunkwise.services.ingestion.splitter import ChunkSplitter, SplitterConfig


class TestSplitterConfig:
    def test_defaults(self) -> None:
        config = SplitterConfig()
        assert config.max_chunk_size == 500
        assert config.overlap == 50
        assert config.separators == ("\n\n", "\n", " ", "")

    def test_rejects_non_positive_size(self) -> None:
        with pytest.raises(ValidationError):
            SplitterConfig(max_chunk_size=0, overlap=0)

    def test_rejects_negative_overlap(self) -> None:
        with pytest.raises(ValidationError):
            SplitterConfig(max_chunk_size=100, overlap=-1)

    def test_rejects_overlap_not_smaller_than_size(self) -> None:
        with pytest.raises(ValidationError):
            SplitterConfig(max_chunk_size=100, overlap=100)

    def test_rejects_empty_separators(self) -> None:
        with pytest.raises(ValidationError):
            SplitterConfig(separators=())


class TestChunkSplitter:
    def test_empty_text_yields_no_chunks(self, splitter: ChunkSplitter) -> None:
        assert splitter.split("", "doc") == []
        assert splitter.split("   \n\n  ", "doc") == []

    def test_short_text_is_single_chunk(self, splitter: ChunkSplitter) -> None:
        chunks = splitter.split("  A short note.\n\nWith two paragraphs.  ", "doc")
        assert len(chunks) == 1
        assert chunks[0].content == "A short note.\n\nWith two paragraphs."
        assert chunks[0].index == 0
        assert chunks[0].length == len(chunks[0].content)
        assert chunks[0].source_id == "doc"

    def test_1200_chars_yield_three_chunks(self, splitter: ChunkSplitter, sample_text: str) -> None:
        assert len(sample_text) == 1200
        chunks = splitter.split(sample_text, "doc")
        assert [c.index for c in chunks] == [0, 1, 2]
        assert splitter.expected_chunks(sample_text) == 3

    def test_chunks_respect_max_size(self, splitter: ChunkSplitter, sample_text: str) -> None:
        for chunk in splitter.split(sample_text, "doc"):
            assert chunk.length <= 500
            assert chunk.length == len(chunk.content)

    def test_consecutive_chunks_overlap(self, splitter: ChunkSplitter, sample_text: str) -> None:
        first, second, third = splitter.split(sample_text, "doc")
        assert first.content.startswith("w000")
        assert first.content.endswith("w099")
        # The tail of each chunk (up to 50 chars) opens the next one.
        assert second.content.startswith("w090")
        assert first.content[-49:] == second.content[:49]
        assert third.content.startswith("w180")
        assert third.content.endswith("w239")

    def test_split_is_deterministic(self, splitter: ChunkSplitter, sample_text: str) -> None:
        first = [c.content for c in splitter.split(sample_text, "doc")]
        second = [c.content for c in splitter.split(sample_text, "doc")]
        assert first == second

    def test_prefers_paragraph_boundaries(self) -> None:
        splitter = ChunkSplitter(SplitterConfig(max_chunk_size=40, overlap=0))
        text = "First paragraph is here.\n\nSecond paragraph is here.\n\nThird one."
        contents = [c.content for c in splitter.split(text, "doc")]
        assert contents == [
            "First paragraph is here.",
            "Second paragraph is here.\n\nThird one.",
        ]

    def test_oversize_paragraph_falls_back_to_words(self) -> None:
        splitter = ChunkSplitter(SplitterConfig(max_chunk_size=20, overlap=0))
        text = "alpha beta gamma delta epsilon zeta\n\nend"
        contents = [c.content for c in splitter.split(text, "doc")]
        assert contents == ["alpha beta gamma", "delta epsilon zeta", "end"]

    def test_unbroken_text_is_cut_at_fixed_positions(self) -> None:
        splitter = ChunkSplitter(SplitterConfig(max_chunk_size=10, overlap=2))
        text = "x" * 25
        contents = [c.content for c in splitter.split(text, "doc")]
        assert all(len(c) <= 10 for c in contents)
        assert "".join(contents).count("x") >= 25

    def test_hard_cut_when_separators_run_out(self) -> None:
        splitter = ChunkSplitter(
            SplitterConfig(max_chunk_size=10, overlap=2, separators=("\n\n",))
        )
        contents = [c.content for c in splitter.split("abcdefghijklmnopqrstuvwxyz", "doc")]
        assert contents == ["abcdefghij", "ijklmnopqr", "qrstuvwxyz"]

    def test_indices_are_contiguous(self, sample_text: str) -> None:
        splitter = ChunkSplitter(SplitterConfig(max_chunk_size=60, overlap=10))
        chunks = splitter.split(sample_text, "doc")
        assert [c.index for c in chunks] == list(range(len(chunks)))
        assert len(chunks) == splitter.expected_chunks(sample_text)
