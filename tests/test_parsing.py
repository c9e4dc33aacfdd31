"""Tests for structured output extraction."""

import pytest

from quote_rag.errors import ModelOutputError
from quote_rag.llm.parsing import extract_json, parse_model_json
from quote_rag.llm.schemas import SelectionResponse


class TestExtractJson:
    """Greedy first-opener to last-closer extraction."""

    def test_object_in_prose(self):
        assert extract_json('prefix text {"a":1} suffix') == '{"a":1}'

    def test_fenced_array(self):
        text = 'Here you go:\n```json\n[\n  {"name": "Винт", "price": 3}\n]\n```\nDone.'
        assert extract_json(text) == '[\n  {"name": "Винт", "price": 3}\n]'

    def test_spans_to_last_closer(self):
        # Two objects are captured as one span; the caller's parse rejects it
        text = 'x {"a": 1} and {"b": 2} y'
        assert extract_json(text) == '{"a": 1} and {"b": 2}'

    def test_first_opener_wins(self):
        assert extract_json('list: [1, 2] then {"a": 1}') == "[1, 2]"

    def test_opener_without_closer_is_skipped(self):
        assert extract_json('see [note {"a": 1}') == '{"a": 1}'

    def test_no_braces_fails(self):
        with pytest.raises(ModelOutputError) as exc:
            extract_json("no structured data here")
        assert exc.value.raw_text == "no structured data here"

    def test_empty_text_fails(self):
        with pytest.raises(ModelOutputError):
            extract_json("")

    def test_closer_before_opener_fails(self):
        with pytest.raises(ModelOutputError):
            extract_json("} oops {")

    def test_many_unmatched_openers(self):
        text = "[" * 200_000 + '{"a": 1}'
        assert extract_json(text) == '{"a": 1}'


class TestParseModelJson:
    """Extraction plus parse and schema validation."""

    def test_plain_parse(self):
        assert parse_model_json('ok: {"a": [1, 2]}') == {"a": [1, 2]}

    def test_schema_validation(self):
        result = parse_model_json(
            '```json\n{"found_items": [{"id": 15, "quantity": 10}]}\n```',
            SelectionResponse,
        )
        assert result.found_items[0].id == 15
        assert result.found_items[0].quantity == 10

    def test_broken_json_is_model_output_error(self):
        with pytest.raises(ModelOutputError) as exc:
            parse_model_json('{"found_items": [ } trailing }')
        assert "invalid structured data" in str(exc.value)

    def test_wrong_shape_is_model_output_error(self):
        with pytest.raises(ModelOutputError):
            parse_model_json('{"found_items": [{"id": "x"}]}', SelectionResponse)

    def test_zero_quantity_rejected(self):
        with pytest.raises(ModelOutputError):
            parse_model_json('{"found_items": [{"id": 1, "quantity": 0}]}', SelectionResponse)


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
