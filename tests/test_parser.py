"""Tests for structured model-output parsing."""

import pytest

from validation.parser import ParseResult, extract_json, parse_model_output
from validation.schemas import (
    ClassificationOutput,
    IntentAnalysis,
    SectionPlanOutput,
)


class TestExtractJson:
    def test_plain_json(self):
        assert extract_json('{"a": 1}') == {"a": 1}

    def test_fenced_json(self):
        assert extract_json('```json\n{"a": 1}\n```') == {"a": 1}

    def test_json_wrapped_in_prose(self):
        text = 'Sure! Here is the analysis:\n{"a": {"b": 2}}\nHope this helps.'
        assert extract_json(text) == {"a": {"b": 2}}

    def test_no_object_raises(self):
        with pytest.raises(ValueError):
            extract_json("I cannot answer that")


def test_parse_ok_reads_camel_case_aliases():
    result = parse_model_output(
        '{"isVague": false, "hasSufficientDetail": true, "missingInfo": ["x"], "confidence": 0.8}',
        IntentAnalysis,
        default=None,
    )
    assert result.ok
    assert not result.is_fallback
    assert result.value.has_sufficient_detail is True
    assert result.value.missing_info == ["x"]


def test_parse_failure_returns_default():
    default = IntentAnalysis(confidence=0.5)
    result = parse_model_output("not json at all", IntentAnalysis, default)
    assert result.is_fallback
    assert result.value is default
    assert result.error


def test_schema_violation_returns_default():
    default = SectionPlanOutput(sections=[{"title": "Only"}])
    result = parse_model_output('{"sections": []}', SectionPlanOutput, default)
    assert result.is_fallback
    assert result.value is default


def test_confidence_is_clamped():
    result = parse_model_output('{"confidence": 3.5}', IntentAnalysis, None)
    assert result.value.confidence == 1.0


def test_unknown_complexity_normalized_to_moderate():
    result = parse_model_output('{"category": "api", "complexity": "Very Hard"}', ClassificationOutput, None)
    assert result.ok
    assert result.value.complexity == "moderate"


def test_section_priority_clamped():
    raw = '{"sections": [{"title": "A", "priority": 42}, {"title": "B", "priority": -3}, {"title": "C", "priority": "high"}]}'
    result = parse_model_output(raw, SectionPlanOutput, None)
    assert [s.priority for s in result.value.sections] == [10, 1, 5]


def test_parse_result_constructors():
    ok = ParseResult.success("value")
    assert ok.ok and ok.value == "value" and ok.error is None

    fallback = ParseResult.fallback("default", "bad json")
    assert fallback.is_fallback
    assert (fallback.value, fallback.error) == ("default", "bad json")
