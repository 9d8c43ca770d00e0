"""AI concerns navigator report."""

from report_engine.kinds.base import JSON_ONLY, ReportKind, answer

TRUST_AREAS = ("hiring", "medical", "financial", "creative", "legal")


def build_prompt(inputs) -> str:
    ethics = inputs.get("ethics", {})
    vision = inputs.get("future_vision", {})

    trust = "\n".join(
        f"- {area.title()}: {answer(ethics, f'm11_q3_trust_{area}')}" for area in TRUST_AREAS
    )

    return f"""Help this professional navigate their concerns about AI.

Importance of AI ethics to them: {answer(ethics, "m11_q1_importance")}
Ethical concerns: {answer(ethics, "m11_q2_ethics_concerns")}
Trust in AI decisions by area:
{trust}

Career outlook in 5 years: {answer(vision, "m14_q1_career_5_years")}
Skills they think will be valuable: {answer(vision, "m14_q2_valuable_skills")}
Concerned about ageism: {answer(vision, "m14_q3_ageism_concern")}
Sees AI as threat or opportunity: {answer(vision, "m14_q5_threat_opportunity")}

{JSON_ONLY}

{{
  "concern_assessment": [{{"concern": "...", "validity": "...", "response": "..."}}],
  "ethical_positioning": {{"summary": "...", "actions": ["..."]}},
  "ai_insights": ["insight 1", "insight 2"]
}}

Return ONLY JSON."""


CONCERNS_NAVIGATOR = ReportKind(
    kind="concerns_navigator",
    label="AI Concerns Navigator",
    required_forms=("ethics", "future_vision"),
    build_prompt=build_prompt,
    required_keys=("concern_assessment", "ethical_positioning", "ai_insights"),
)
