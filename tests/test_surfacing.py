"""Tests for text rendering of chunk views."""

from mindsort.models import ChunkProposal
from mindsort.ranking import partition_by_importance
from mindsort.surfacing import (
    format_chunk_line,
    format_chunks,
    format_priority_view,
    format_proposals,
    format_stats,
)


class TestFormatChunkLine:
    def test_plain(self, make_chunk) -> None:
        chunk = make_chunk(content="hello", importance="2", pinned=True, starred=True)
        assert format_chunk_line(chunk, color=False) == f"{chunk.id[:8]} 📌★ [2] hello"

    def test_long_content_truncated(self, make_chunk) -> None:
        line = format_chunk_line(make_chunk(content="x" * 200), color=False)
        assert line.endswith("...")
        assert len(line) < 100


class TestFormatProposals:
    def test_numbered_with_labels(self, registry) -> None:
        text = format_proposals([
            ChunkProposal(content="Thanks", category="gratitudes", emotional_intensity="low"),
            ChunkProposal(content="Why?", category="questions"),
        ], registry)
        assert text.splitlines()[0] == "2 proposed chunks:"
        assert "1. [Gratitudes] (low) Thanks" in text
        assert "2. [Questions] Why?" in text

    def test_empty(self, registry) -> None:
        assert format_proposals([], registry) == "No chunks found in that text."


class TestFormatChunks:
    def test_pinned_first_then_groups(self, make_chunk, registry) -> None:
        pinned = make_chunk(content="pinned one", category="wish", pinned=True)
        other = make_chunk(content="plain", category="insights")

        lines = format_chunks([pinned, other], registry, color=False).splitlines()

        assert lines[0] == "━━━ PINNED ━━━"
        assert "pinned one" in lines[1]
        assert "━━━ INSIGHTS (1) ━━━" in lines

    def test_empty(self, registry) -> None:
        assert format_chunks([], registry, color=False) == "No notes yet."


class TestFormatPriorityView:
    def test_sections_in_tier_order(self, make_chunk, registry) -> None:
        chunks = [
            make_chunk(content="later", importance="deprioritized"),
            make_chunk(content="loose"),
            make_chunk(content="top", importance="1"),
        ]

        text = format_priority_view(partition_by_importance(chunks), "ideas", registry, color=False)

        assert text.splitlines()[0] == "━━━ IDEAS BY PRIORITY ━━━"
        assert text.index("Top priority") < text.index("Unranked") < text.index("Deprioritized")
        assert "Second priority" not in text

    def test_empty(self, registry) -> None:
        text = format_priority_view(partition_by_importance([]), None, registry, color=False)
        assert text.endswith("Nothing here yet.")


class TestFormatStats:
    def test_labels(self, registry) -> None:
        text = format_stats({
            "total_chunks": 3,
            "by_category": {"ideas": 3},
            "by_importance": {"unranked": 3},
            "pinned": 0,
            "starred": 1,
        }, registry)
        assert "Total chunks: 3" in text
        assert "Ideas: 3" in text
        assert "Starred: 1" in text
