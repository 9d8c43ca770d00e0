"""Industry insights report."""

from report_engine.kinds.base import JSON_ONLY, ReportKind, answer


def build_prompt(inputs) -> str:
    task = inputs.get("task_analysis", {})
    industry = task.get("industry") or "their industry"

    return f"""Provide industry insights on how AI is reshaping {industry} for this professional.

Current Role: {answer(task, "m2_q1_role_category", "unknown")}
Typical Tasks: {answer(task, "m2_q2_describe_tasks")}

{JSON_ONLY}

{{
  "industry_overview": {{"summary": "2-3 sentences", "ai_adoption_level": "low|medium|high"}},
  "role_evolution": {{"current_state": "...", "next_3_years": "..."}},
  "competitive_positioning": ["point 1", "point 2"],
  "emerging_trends": [{{"trend": "...", "impact": "..."}}],
  "strategic_recommendations": ["recommendation 1", "recommendation 2"],
  "closing_message": {{"title": "2-5 words", "message": "2-3 sentences"}}
}}

Return ONLY JSON."""


INDUSTRY_INSIGHTS = ReportKind(
    kind="industry_insights",
    label="Industry Insights",
    required_forms=("task_analysis",),
    build_prompt=build_prompt,
    required_keys=(
        "industry_overview",
        "role_evolution",
        "competitive_positioning",
        "emerging_trends",
        "strategic_recommendations",
        "closing_message",
    ),
    complex=True,
)
