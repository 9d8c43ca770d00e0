"""Skills analysis report."""

from report_engine.kinds.base import JSON_ONLY, ReportKind, answer


def build_prompt(inputs) -> str:
    task = inputs.get("task_analysis", {})
    skills = inputs.get("skills_gap", {})

    return f"""Analyze this professional's skills in the context of AI adoption.

Role: {answer(task, "m2_q1_role_category", "unknown")}
Current Skills: {answer(skills, "m5_q2_current_skills")}
Skills They Want to Develop: {answer(skills, "m5_q3_desired_skills")}

{JSON_ONLY}

{{
  "skill_trajectory": [{{"skill": "...", "trend": "rising|stable|declining", "reason": "..."}}],
  "skill_synergies": [{{"combination": ["skill a", "skill b"], "value": "..."}}],
  "ai_advantage": {{"summary": "...", "tools": ["tool 1", "tool 2"]}},
  "motivational_insights": {{"title": "2-5 words", "message": "2-3 sentences"}}
}}

Return ONLY JSON."""


SKILLS = ReportKind(
    kind="skills",
    label="Skills Analysis",
    required_forms=("skills_gap", "task_analysis"),
    build_prompt=build_prompt,
    required_keys=("skill_trajectory", "skill_synergies", "ai_advantage", "motivational_insights"),
)
