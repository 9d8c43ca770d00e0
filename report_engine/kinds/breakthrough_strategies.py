"""Breakthrough strategies report."""

from report_engine.kinds.base import JSON_ONLY, ReportKind, answer


def build_prompt(inputs) -> str:
    ethics = inputs.get("ethics", {})
    vision = inputs.get("future_vision", {})
    task = inputs.get("task_analysis", {})
    usage = inputs.get("current_ai_usage", {})

    context = []
    if task:
        context.append(f"Role: {answer(task, 'm2_q1_role_category', 'unknown')}")
    if usage:
        context.append(f"AI usage frequency: {answer(usage, 'm1_q2_frequency')}")
        context.append(f"Comfort with AI tools: {answer(usage, 'm1_q3_comfort')}")

    return f"""Design breakthrough strategies that turn AI anxiety into empowerment.

Ethical concerns: {answer(ethics, "m11_q2_ethics_concerns")}
Career outlook in 5 years: {answer(vision, "m14_q1_career_5_years")}
Sees AI as threat or opportunity: {answer(vision, "m14_q5_threat_opportunity")}
{chr(10).join(context)}

{JSON_ONLY}

{{
  "fear_to_empowerment": [{{"fear": "...", "reframe": "...", "action": "..."}}],
  "overcoming_barriers": [{{"barrier": "...", "strategy": "..."}}],
  "confidence_building": {{"quick_wins": ["..."], "milestones": ["..."]}},
  "breakthrough_insights": ["insight 1", "insight 2"]
}}

Return ONLY JSON."""


BREAKTHROUGH_STRATEGIES = ReportKind(
    kind="breakthrough_strategies",
    label="Breakthrough Strategies",
    required_forms=("ethics", "future_vision"),
    optional_forms=("task_analysis", "current_ai_usage"),
    build_prompt=build_prompt,
    required_keys=(
        "fear_to_empowerment",
        "overcoming_barriers",
        "confidence_building",
        "breakthrough_insights",
    ),
)
