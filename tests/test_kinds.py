"""Tests for report kind strategies."""

import pytest

from report_engine.errors import UnknownReportKind
from report_engine.kinds import BUILTIN_KINDS, default_registry
from report_engine.kinds.base import KindRegistry, ReportKind, answer

SAMPLE_INPUTS = {
    "task_analysis": {"m2_q1_role_category": "engineering", "industry": "Healthcare"},
    "skills_gap": {"m5_q2_current_skills": ["python", "sql"], "m5_q3_desired_skills": ["ml"]},
    "confidence": {"confidence_level": 2, "anxiety_level": 4},
    "ethics": {"m11_q2_ethics_concerns": ["bias"]},
    "future_vision": {"m14_q5_threat_opportunity": "opportunity"},
    "current_ai_usage": {"m1_q2_frequency": "daily"},
    "training_preferences": {"format": "video"},
}


def test_default_registry_has_builtin_kinds():
    registry = default_registry()
    assert registry.kinds() == [k.kind for k in BUILTIN_KINDS]
    assert "career_transitions" in registry
    assert registry.labels()["skills"] == "Skills Analysis"


def test_unknown_kind():
    with pytest.raises(UnknownReportKind):
        default_registry().get("horoscope")
    assert default_registry().find("horoscope") is None


@pytest.mark.parametrize("report_kind", BUILTIN_KINDS, ids=lambda k: k.kind)
def test_prompts_are_deterministic(report_kind):
    inputs = {form: SAMPLE_INPUTS[form] for form in report_kind.all_forms}
    first = report_kind.build_prompt(inputs)
    assert first == report_kind.build_prompt(inputs)
    assert "JSON" in first


@pytest.mark.parametrize("report_kind", BUILTIN_KINDS, ids=lambda k: k.kind)
def test_prompts_tolerate_missing_optional_forms(report_kind):
    inputs = {form: SAMPLE_INPUTS[form] for form in report_kind.required_forms}
    assert report_kind.build_prompt(inputs)


def test_career_prompt_uses_answers():
    kind = default_registry().get("career_transitions")
    prompt = kind.build_prompt(SAMPLE_INPUTS)
    assert "engineering" in prompt
    assert "python, sql" in prompt
    assert "Healthcare" in prompt
    assert "EMOTIONAL CONTEXT" in prompt


def test_validate_top_level_and_nested_keys():
    kind = default_registry().get("career_transitions")
    valid = {
        "transition_readiness": {},
        "viable_transitions": [],
        "closing_message": {"title": "Ready", "message": "Go."},
    }
    assert kind.validate(valid)
    assert not kind.validate({**valid, "closing_message": {"title": "Ready"}})
    assert not kind.validate({"transition_readiness": {}, "viable_transitions": []})
    assert not kind.validate({**valid, "viable_transitions": None})
    assert not kind.validate(["not", "an", "object"])


def test_task_recommendations_split_help_and_keep():
    kind = default_registry().get("task_recommendations")
    inputs = {
        "task_analysis": {
            "m2_q1_role_category": "engineering",
            "m2_q2_eng_debugging": "help",
            "m2_q2_eng_tests": "help",
            "m2_q2_eng_mentoring": "keep",
            "m2_q2_unknown_task": "help",
        },
        "current_ai_usage": {"m1_q3_comfort": "4"},
    }

    prompt = kind.build_prompt(inputs)

    assert "Tasks wanting automation help with: Debugging errors, Writing tests\n" in prompt
    assert "Tasks they want to keep doing themselves: Mentoring junior developers\n" in prompt
    assert "AI Comfort Level: 4/5" in prompt
    assert "EMOTIONAL CONTEXT" not in prompt
    assert kind.required_forms == ("task_analysis", "current_ai_usage")


def test_complex_kinds():
    registry = default_registry()
    assert registry.get("summary").complex is True
    assert registry.get("skills").complex is False


def test_register_custom_kind():
    custom = ReportKind(
        kind="custom",
        label="Custom",
        required_forms=("a",),
        build_prompt=lambda inputs: "prompt",
        required_keys=("x",),
    )
    registry = KindRegistry([custom])
    assert registry.get("custom") is custom
    assert len(registry) == 1
    assert list(registry) == [custom]


def test_answer_formatting():
    assert answer({"a": ["x", "y"]}, "a") == "x, y"
    assert answer({"a": ""}, "a") == "not specified"
    assert answer({}, "a", "unknown") == "unknown"
    assert answer({"a": 3}, "a") == "3"
