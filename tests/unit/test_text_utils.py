"""Unit tests for mentorship/utils/text.py"""
import pytest

from mentorship.utils.text import is_conversation_ending, strip_markdown_emphasis


class TestIsConversationEnding:

    @pytest.mark.parametrize("content", [
        "thanks",
        "Thank you!",
        "ok got it",
        "Sounds good.",
        "thanks dr. raj",
        "Thanks, Dr Raj!",
        "sure, will do",
        "Sounds good, I'm really excited to get started",
        "Can't wait to start learning",
    ])
    def test_endings(self, content):
        assert is_conversation_ending(content, "Dr. Raj") is True

    @pytest.mark.parametrize("content", [
        "",
        "   ",
        "thanks?",
        "ok but what about lesson 3",
        "Thanks! Can you explain attention again",
        "I am stuck on the RAG assignment and I do not know where to begin with the retriever",
        "thanks dr. smith and also one more thing about the project scope",
    ])
    def test_not_endings(self, content):
        assert is_conversation_ending(content, "Dr. Raj") is False

    def test_mentor_name_optional(self):
        assert is_conversation_ending("thanks") is True
        assert is_conversation_ending("thanks dr. raj") is False


class TestStripMarkdownEmphasis:

    def test_bold_and_italic(self):
        assert strip_markdown_emphasis("This is **very** *important*.") == "This is very important."

    def test_bullets_are_kept(self):
        text = "* first item\n* second item"
        assert strip_markdown_emphasis(text) == text

    def test_multiplication_is_kept(self):
        assert strip_markdown_emphasis("2 * 3 * 4") == "2 * 3 * 4"

    def test_plain_text_unchanged(self):
        assert strip_markdown_emphasis("Nothing to strip") == "Nothing to strip"
