"""Career transitions report."""

from report_engine.kinds.base import JSON_ONLY, ReportKind, answer, confidence_context


def build_prompt(inputs) -> str:
    task = inputs.get("task_analysis", {})
    skills = inputs.get("skills_gap", {})
    industry = task.get("industry")

    if industry:
        industry_instruction = (
            f"Focus on career opportunities specifically within or related to the {industry} industry. "
            f"Consider roles that are in high demand in {industry} and where AI skills provide "
            "competitive advantage."
        )
    else:
        industry_instruction = (
            "Consider diverse career opportunities across industries where the user's skills transfer well."
        )

    return f"""Analyze career transition opportunities in the AI era. Be concise.

Current Role: {answer(task, "m2_q1_role_category", "unknown")}
Industry: {industry or "Not specified"}
Current Skills: {answer(skills, "m5_q2_current_skills")}
Desired Skills: {answer(skills, "m5_q3_desired_skills")}

{industry_instruction}

{confidence_context(inputs.get("confidence", {}))}

{JSON_ONLY}

Respond with JSON (limit to 3-4 viable transitions):

{{
  "transition_readiness": {{
    "overall_score": "1-100",
    "summary": "1-2 sentences about their readiness to pivot",
    "key_strengths": ["strength 1", "strength 2"],
    "key_gaps": ["gap 1", "gap 2"]
  }},
  "viable_transitions": [
    {{
      "target_role": "Specific role title",
      "fit_score": "1-10",
      "why_viable": "1-2 sentences why this is a good fit",
      "transferable_skills": ["skill 1", "skill 2"],
      "skills_to_acquire": [{{"skill": "skill name"}}],
      "timeline": "Realistic timeline (e.g., '6-12 months')",
      "first_steps": ["step 1", "step 2", "step 3"]
    }}
  ],
  "closing_message": {{
    "title": "2-5 words, relevant to career transition",
    "message": "2-3 sentences connecting their transition readiness to opportunity."
  }}
}}

TONE RULES for closing_message:
- Be direct and practical
- Focus on market positioning, not self-belief
- Avoid "follow your dreams", "you're ready", "unlimited potential"

Return ONLY JSON."""


CAREER_TRANSITIONS = ReportKind(
    kind="career_transitions",
    label="Career Transitions",
    required_forms=("task_analysis", "skills_gap"),
    optional_forms=("confidence",),
    build_prompt=build_prompt,
    required_keys=("transition_readiness", "viable_transitions", "closing_message"),
    nested_keys=("closing_message.title", "closing_message.message"),
)
