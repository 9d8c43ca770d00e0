"""AI tool recommendations for task automation."""

from report_engine.kinds.base import JSON_ONLY, ReportKind, answer, confidence_context

TASK_PREFIX = "m2_q2_"

TASK_LABELS = {
    # Sales
    "m2_q2_sales_followup": "Writing follow-up emails",
    "m2_q2_sales_research": "Researching prospects/accounts",
    "m2_q2_sales_scheduling": "Scheduling meetings",
    "m2_q2_sales_relationships": "Building relationships with clients",
    "m2_q2_sales_proposals": "Creating proposals/quotes",
    "m2_q2_sales_crm": "Entering data into CRM",
    "m2_q2_sales_negotiations": "Having complex negotiations",
    "m2_q2_sales_analysis": "Analyzing sales data",
    # Engineering
    "m2_q2_eng_boilerplate": "Writing boilerplate code",
    "m2_q2_eng_debugging": "Debugging errors",
    "m2_q2_eng_docs": "Writing documentation",
    "m2_q2_eng_reviews": "Code reviews",
    "m2_q2_eng_architecture": "System architecture decisions",
    "m2_q2_eng_learning": "Learning new frameworks",
    "m2_q2_eng_tests": "Writing tests",
    "m2_q2_eng_mentoring": "Mentoring junior developers",
    # Marketing
    "m2_q2_mkt_brainstorm": "Brainstorming campaign ideas",
    "m2_q2_mkt_social": "Writing social media posts",
    "m2_q2_mkt_design": "Designing visual assets",
    "m2_q2_mkt_analysis": "Analyzing campaign performance",
    "m2_q2_mkt_strategy": "Creating brand strategy",
    "m2_q2_mkt_ab": "A/B test analysis",
    "m2_q2_mkt_presentations": "Client presentations",
    "m2_q2_mkt_calendar": "Content calendar planning",
    # Operations
    "m2_q2_ops_data_entry": "Data entry",
    "m2_q2_ops_scheduling": "Scheduling / calendar management",
    "m2_q2_ops_email": "Email management",
    "m2_q2_ops_reports": "Report generation",
    "m2_q2_ops_docs": "Process documentation",
    "m2_q2_ops_vendors": "Vendor coordination",
    "m2_q2_ops_meetings": "Meeting coordination",
    "m2_q2_ops_edge_cases": "Problem-solving edge cases",
    # Management
    "m2_q2_mgmt_reviews": "Performance review writing",
    "m2_q2_mgmt_communication": "Team communication",
    "m2_q2_mgmt_planning": "Strategic planning",
    "m2_q2_mgmt_budget": "Budget analysis",
    "m2_q2_mgmt_coaching": "One-on-one coaching",
    "m2_q2_mgmt_hiring": "Hiring decisions",
    "m2_q2_mgmt_conflict": "Conflict resolution",
    "m2_q2_mgmt_vision": "Vision setting",
    # Finance
    "m2_q2_fin_cleaning": "Data cleaning / preparation",
    "m2_q2_fin_models": "Building financial models",
    "m2_q2_fin_viz": "Creating visualizations",
    "m2_q2_fin_trends": "Identifying trends/patterns",
    "m2_q2_fin_forecasting": "Forecasting",
    "m2_q2_fin_reconciliation": "Reconciliation tasks",
    "m2_q2_fin_recommendations": "Strategic recommendations",
    "m2_q2_fin_presentations": "Stakeholder presentations",
    # HR
    "m2_q2_hr_screening": "Resume screening",
    "m2_q2_hr_scheduling": "Interview scheduling",
    "m2_q2_hr_onboarding": "Onboarding documentation",
    "m2_q2_hr_benefits": "Benefits administration",
    "m2_q2_hr_relations": "Employee relations / sensitive issues",
    "m2_q2_hr_training": "Training program design",
    "m2_q2_hr_performance": "Performance management",
    "m2_q2_hr_culture": "Culture building",
}


def split_tasks(task_data):
    """Task labels the person marked ``help`` and ``keep``, in label order."""
    help_tasks, keep_tasks = [], []
    for key, label in TASK_LABELS.items():
        value = task_data.get(key)
        if value == "help":
            help_tasks.append(label)
        elif value == "keep":
            keep_tasks.append(label)
    return help_tasks, keep_tasks


def build_prompt(inputs) -> str:
    task = inputs.get("task_analysis", {})
    usage = inputs.get("current_ai_usage", {})
    help_tasks, keep_tasks = split_tasks(task)

    return f"""Recommend specific AI tools for task automation. Be concise and practical.

Role: {answer(task, "m2_q1_role_category", "unknown")}
AI Comfort Level: {answer(usage, "m1_q3_comfort", "1")}/5
Tasks wanting automation help with: {", ".join(help_tasks)}
Tasks they want to keep doing themselves: {", ".join(keep_tasks)}

{confidence_context(inputs.get("confidence", {}))}

{JSON_ONLY}

For "automatable_tasks", list 10 concrete example tasks this person could automate given their
role and answers (e.g. "Drafting weekly status update emails to stakeholders", not "Email management").

Respond with JSON (3-5 tool recommendations):

{{
  "overview": {{
    "automation_potential": "1-2 sentences",
    "automatable_tasks": ["task 1", "task 2"]
  }},
  "closing_message": {{"title": "2-5 words", "message": "2-3 sentences tied to time savings in this report"}},
  "tool_recommendations": [
    {{
      "task": "specific task name",
      "tool_name": "Specific AI tool",
      "tool_category": "e.g. Writing Assistant",
      "why_recommended": "1 sentence",
      "getting_started": "Concrete first step",
      "time_savings": "e.g. 2-3 hours/week",
      "difficulty": "easy|moderate|advanced",
      "cost": "free|freemium|paid"
    }}
  ],
  "workflow_integration": {{
    "automation_workflows": [
      {{"workflow_name": "...", "tools_combined": ["Tool A", "Tool B"], "process_steps": ["..."], "expected_impact": "..."}}
    ]
  }}
}}

PERSONALIZATION:
- If anxiety > 3: start with low-risk, AI-assisted suggestions rather than full automation
- If confidence < 3: recommend easy tools first
- If excitement is high: suggest an ambitious automation strategy with advanced workflows

TONE for closing_message: direct and quantitative; connect automation to time reclaimed.
Avoid "work smarter", "unleash productivity", "transform your workflow".

Return ONLY JSON."""


TASK_RECOMMENDATIONS = ReportKind(
    kind="task_recommendations",
    label="Task Automation Recommendations",
    required_forms=("task_analysis", "current_ai_usage"),
    optional_forms=("confidence",),
    build_prompt=build_prompt,
    required_keys=("overview", "closing_message", "tool_recommendations", "workflow_integration"),
)
