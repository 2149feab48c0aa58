"""Tests for JSON extraction utility."""

import json

from recruit_analysis.utils.json_parser import extract_json, parse_json_object


class TestExtractJson:
    def test_direct_json(self):
        assert json.loads(extract_json('{"name": "test"}')) == {"name": "test"}

    def test_fenced_code_block(self):
        text = 'Here is the result:\n```json\n{"name": "test"}\n```\nDone.'
        assert json.loads(extract_json(text)) == {"name": "test"}

    def test_fenced_without_json_tag(self):
        text = '```\n{"key": "value"}\n```'
        assert json.loads(extract_json(text)) == {"key": "value"}

    def test_embedded_json(self):
        text = 'The analysis is: {"score": 90, "pass": true} as shown above.'
        assert json.loads(extract_json(text)) == {"score": 90, "pass": True}

    def test_first_balanced_object_wins(self):
        text = 'First {"a": 1} then {"b": 2}'
        assert json.loads(extract_json(text)) == {"a": 1}

    def test_braces_inside_strings_are_ignored(self):
        text = 'Result: {"note": "use {curly} braces", "score": 3} end'
        assert json.loads(extract_json(text)) == {"note": "use {curly} braces", "score": 3}

    def test_nested_json(self):
        result = json.loads(extract_json('{"outer": {"inner": [1, 2, 3]}}'))
        assert result["outer"]["inner"] == [1, 2, 3]

    def test_prose_only_returns_none(self):
        assert extract_json("I'm sorry, I cannot evaluate this candidate.") is None

    def test_empty_and_none_return_none(self):
        assert extract_json("") is None
        assert extract_json("   ") is None
        assert extract_json(None) is None

    def test_result_always_parses(self):
        for text in (
            '{"a": 1}',
            "```json\n{\"a\": [1, 2]}\n```",
            'noise {"a": {"b": 1}} noise',
            '{"a": [1, 2',
        ):
            raw = extract_json(text)
            assert raw is not None
            json.loads(raw)


class TestTruncationRepair:
    def test_truncated_json_repaired(self):
        text = '{"summary": {"score": 80, "breakdown": {"skills": 70'
        result = json.loads(extract_json(text))
        assert result["summary"]["score"] == 80
        assert result["summary"]["breakdown"] == {"skills": 70}

    def test_truncated_array_closed(self):
        result = json.loads(extract_json('{"suggestions": ["one", "two"'))
        assert result == {"suggestions": ["one", "two"]}

    def test_truncated_mid_string_drops_partial_value(self):
        text = '{"summary": {"score": 80, "narrative": "Strong back'
        result = json.loads(extract_json(text))
        assert result == {"summary": {"score": 80}}

    def test_trailing_comma_before_truncation(self):
        result = json.loads(extract_json('{"a": 1, "b": 2,'))
        assert result == {"a": 1, "b": 2}

    def test_truncated_inside_fence(self):
        text = '```json\n{"score": 55, "alerts": [{"severity": "high"}'
        result = json.loads(extract_json(text))
        assert result["score"] == 55
        assert result["alerts"] == [{"severity": "high"}]


class TestParseJsonObject:
    def test_returns_dict(self):
        assert parse_json_object('{"skills": []}') == {"skills": []}

    def test_array_is_not_an_object(self):
        assert parse_json_object('[1, 2, 3]') is None

    def test_garbage_returns_none(self):
        assert parse_json_object("no json") is None
