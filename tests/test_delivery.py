"""Tests for chunking and ordered delivery."""

import pytest

from parley.delivery import Deliverer, chunk_text, split_message


class TestSplitMessage:
    """Greedy line packing."""

    def test_empty_text_gives_no_chunks(self):
        assert split_message("") == []
        assert chunk_text("") == []

    def test_short_text_is_one_chunk(self):
        assert split_message("hello\nworld") == ["hello\nworld"]

    def test_chunks_respect_max_length(self):
        text = "\n".join(f"line {i} " + "y" * (i % 37) for i in range(400))
        chunks = split_message(text, max_length=200)
        assert len(chunks) > 1
        assert all(len(c) <= 200 for c in chunks)

    def test_rejoined_chunks_equal_input(self):
        text = "\n".join(f"line number {i}" for i in range(500))
        assert "\n".join(split_message(text, max_length=300)) == text

    def test_newline_counts_toward_length(self):
        # "aaaa" + "\n" + "bbbb" is 9 chars; the +1 makes it not fit in 8
        assert split_message("aaaa\nbbbb", max_length=8) == ["aaaa", "bbbb"]
        assert split_message("aaaa\nbbbb", max_length=10) == ["aaaa\nbbbb"]

    def test_oversized_line_kept_whole(self):
        long_line = "z" * 50
        chunks = split_message(f"short\n{long_line}\ntail", max_length=20)
        assert chunks == ["short", long_line, "tail"]

    def test_nine_thousand_chars_make_three_chunks(self):
        text = "\n".join("x" * 999 for _ in range(9))
        chunks = split_message(text)
        assert [len(c) for c in chunks] == [3999, 3999, 999]


class TestChunkText:
    """Only the first chunk is a reply."""

    def test_reply_target_only_on_first_chunk(self):
        text = "\n".join("x" * 999 for _ in range(9))
        chunks = chunk_text(text, reply_to_message_id=77)
        assert [c.index for c in chunks] == [0, 1, 2]
        assert [c.reply_to_message_id for c in chunks] == [77, None, None]

    def test_no_reply_target(self):
        chunks = chunk_text("hi", reply_to_message_id=None)
        assert chunks[0].reply_to_message_id is None


class TestDeliverer:
    """Sequential sends."""

    @pytest.mark.asyncio
    async def test_sends_in_order(self, platform):
        chunks = chunk_text("a\nb\nc", max_length=2, reply_to_message_id=9)
        sent = await Deliverer(platform).deliver(100, chunks)

        assert [s.text for s in sent] == ["a", "b", "c"]
        assert [s["text"] for s in platform.sent] == ["a", "b", "c"]
        assert platform.sent[0]["reply_to_message_id"] == 9
        assert platform.sent[1]["reply_to_message_id"] is None

    @pytest.mark.asyncio
    async def test_stops_at_first_failure(self, platform):
        platform.fail_on = 1
        chunks = chunk_text("a\nb\nc", max_length=2)
        sent = await Deliverer(platform).deliver(100, chunks)

        assert [s.text for s in sent] == ["a"]
        assert len(platform.sent) == 1
