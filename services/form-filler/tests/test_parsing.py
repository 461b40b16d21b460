"""Tests for envelope parsing, answer parsing and value normalization."""

import sys
from pathlib import Path

import pytest

sys.path.insert(0, str(Path(__file__).parent.parent))

from conftest import responses_envelope
from errors import EmptyOutput, InvalidJSON
from parsing import find_output_text, normalize_values, parse_answer


class TestFindOutputText:
    def test_responses_output_items(self):
        assert find_output_text(responses_envelope('{"name": "Acme"}')) == '{"name": "Acme"}'

    def test_output_text_convenience_field(self):
        assert find_output_text({"output_text": '{"a": 1}', "output": []}) == '{"a": 1}'

    def test_skips_non_message_items(self):
        envelope = {
            "output": [
                {"type": "reasoning", "content": [{"type": "output_text", "text": "thinking"}]},
                {"type": "message", "content": [{"type": "output_text", "text": "answer"}]},
            ]
        }
        assert find_output_text(envelope) == "answer"

    def test_first_text_item_wins(self):
        envelope = {
            "output": [
                {"type": "message", "content": [
                    {"type": "refusal", "refusal": "no"},
                    {"type": "output_text", "text": "first"},
                    {"type": "output_text", "text": "second"},
                ]},
            ]
        }
        assert find_output_text(envelope) == "first"

    def test_chat_completions_string(self):
        envelope = {"choices": [{"message": {"role": "assistant", "content": '{"a": "b"}'}}]}
        assert find_output_text(envelope) == '{"a": "b"}'

    def test_chat_completions_parts(self):
        envelope = {"choices": [{"message": {"content": [{"type": "text", "text": "hi"}]}}]}
        assert find_output_text(envelope) == "hi"

    def test_output_without_text_raises(self):
        envelope = {"output": [{"type": "message", "content": [{"type": "output_text", "text": "  "}]}]}
        with pytest.raises(EmptyOutput):
            find_output_text(envelope)

    def test_empty_choices_raises(self):
        with pytest.raises(EmptyOutput):
            find_output_text({"choices": []})

    def test_unknown_shape_raises(self):
        with pytest.raises(EmptyOutput, match="Unrecognized"):
            find_output_text({"result": {"text": "hidden"}})

    def test_non_object_raises(self):
        with pytest.raises(EmptyOutput):
            find_output_text(["not", "an", "object"])


class TestParseAnswer:
    def test_direct_json(self):
        assert parse_answer('{"name": "Acme Corp", "agree": true}') == {"name": "Acme Corp", "agree": True}

    def test_whitespace_padded(self):
        assert parse_answer('  \n  {"key": "value"}  \n  ') == {"key": "value"}

    def test_markdown_fence(self):
        assert parse_answer('```json\n{"name": "Acme"}\n```') == {"name": "Acme"}

    def test_think_block_stripped(self):
        raw = '<think>\nThe document shows {"wrong": "data"}\n</think>\n{"name": "Acme"}'
        assert parse_answer(raw) == {"name": "Acme"}

    def test_prose_is_invalid(self):
        with pytest.raises(InvalidJSON):
            parse_answer("I could not find any of the requested fields.")

    def test_preamble_is_invalid(self):
        with pytest.raises(InvalidJSON):
            parse_answer('Here is the data: {"name": "Acme"}')

    def test_array_is_invalid(self):
        with pytest.raises(InvalidJSON, match="JSON object"):
            parse_answer("[1, 2, 3]")

    def test_invalid_message_prefix(self):
        with pytest.raises(InvalidJSON) as exc_info:
            parse_answer("nope")
        assert exc_info.value.public_message.startswith("Invalid AI output")


class TestNormalizeValues:
    def test_empty_and_null_dropped(self):
        assert normalize_values({"k1": "", "k2": "x", "k3": None}) == {"k2": "x"}

    def test_whitespace_only_dropped(self):
        assert normalize_values({"k": "   "}) == {}

    def test_booleans_kept(self):
        assert normalize_values({"yes": True, "no": False}) == {"yes": True, "no": False}

    def test_numbers_kept(self):
        assert normalize_values({"count": 3, "ratio": 0.5}) == {"count": 3, "ratio": 0.5}

    def test_non_scalar_dropped(self):
        assert normalize_values({"list": ["a"], "obj": {"a": 1}, "ok": "v"}) == {"ok": "v"}

    def test_order_preserved(self):
        assert list(normalize_values({"b": "1", "a": "2", "c": "3"})) == ["b", "a", "c"]
