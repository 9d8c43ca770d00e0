"""Learning resources report."""

from report_engine.kinds.base import JSON_ONLY, ReportKind, answer, confidence_context


def build_prompt(inputs) -> str:
    task = inputs.get("task_analysis", {})
    skills = inputs.get("skills_gap", {})
    training = inputs.get("training_preferences", {})

    role = answer(task, "m2_q1_role_category", "unknown")
    if role == "other":
        role = answer(task, "m2_q1_other", "unknown")

    preferences = ""
    if training:
        preferences = (
            f"Training Format Preference: {answer(training, 'format')}\n"
            f"Time Available Per Week: {answer(training, 'hours_per_week')}"
        )

    return f"""Build a personalized AI learning plan.

Role: {role}
Current Skills: {answer(skills, "m5_q2_current_skills")}
Wants to Develop: {answer(skills, "m5_q3_want_to_develop")}
Barriers: {answer(skills, "m5_q4_barriers")}
Learning Preference: {answer(skills, "m5_q5_learning_preference")}
{preferences}

{confidence_context(inputs.get("confidence", {}))}

{JSON_ONLY}

{{
  "personalized_learning_path": [{{"phase": "...", "duration": "...", "goals": ["..."]}}],
  "learning_resources": [{{"title": "...", "type": "course|book|project", "why": "..."}}],
  "closing_message": {{"title": "2-5 words", "message": "2-3 sentences"}}
}}

Return ONLY JSON."""


LEARNING_RESOURCES = ReportKind(
    kind="learning_resources",
    label="Learning Resources",
    required_forms=("task_analysis", "skills_gap"),
    optional_forms=("training_preferences", "confidence"),
    build_prompt=build_prompt,
    required_keys=("personalized_learning_path", "learning_resources", "closing_message"),
)
