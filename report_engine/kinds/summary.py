"""Comprehensive journey summary report."""

from report_engine.kinds.base import JSON_ONLY, ReportKind, answer, confidence_context


def build_prompt(inputs) -> str:
    usage = inputs.get("current_ai_usage", {})
    task = inputs.get("task_analysis", {})
    ethics = inputs.get("ethics", {})
    vision = inputs.get("future_vision", {})

    return f"""Summarize this professional's AI readiness journey across all assessments.

CURRENT AI USAGE
- Tools used: {answer(usage, "m1_q1_tools_used")}
- Frequency: {answer(usage, "m1_q2_frequency")}
- Comfort: {answer(usage, "m1_q3_comfort")}

ROLE
- Category: {answer(task, "m2_q1_role_category", "unknown")}
- Tasks: {answer(task, "m2_q2_describe_tasks")}

ETHICS
- Importance: {answer(ethics, "m11_q1_importance")}
- Concerns: {answer(ethics, "m11_q2_ethics_concerns")}

FUTURE VISION
- Career in 5 years: {answer(vision, "m14_q1_career_5_years")}
- Valuable skills: {answer(vision, "m14_q2_valuable_skills")}
- Threat or opportunity: {answer(vision, "m14_q5_threat_opportunity")}

{confidence_context(inputs.get("confidence", {}))}

{JSON_ONLY}

{{
  "journey_recap": ["milestone 1", "milestone 2"],
  "comprehensive_summary": {{"strengths": ["..."], "opportunities": ["..."], "summary": "..."}},
  "path_forward": [{{"step": "...", "timeframe": "..."}}],
  "ai_enablement_message": {{"title": "2-5 words", "message": "2-3 sentences"}}
}}

Return ONLY JSON."""


SUMMARY = ReportKind(
    kind="summary",
    label="Journey Summary",
    required_forms=("current_ai_usage", "task_analysis", "ethics", "future_vision"),
    optional_forms=("confidence", "training_preferences"),
    build_prompt=build_prompt,
    required_keys=("journey_recap", "comprehensive_summary", "path_forward", "ai_enablement_message"),
    complex=True,
)
