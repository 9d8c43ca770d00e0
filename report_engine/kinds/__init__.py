"""Built-in report kinds."""

from report_engine.kinds.base import KindRegistry, ReportKind
from report_engine.kinds.breakthrough_strategies import BREAKTHROUGH_STRATEGIES
from report_engine.kinds.career_transitions import CAREER_TRANSITIONS
from report_engine.kinds.concerns_navigator import CONCERNS_NAVIGATOR
from report_engine.kinds.industry_insights import INDUSTRY_INSIGHTS
from report_engine.kinds.learning_resources import LEARNING_RESOURCES
from report_engine.kinds.skills import SKILLS
from report_engine.kinds.summary import SUMMARY
from report_engine.kinds.task_recommendations import TASK_RECOMMENDATIONS

BUILTIN_KINDS = (
    CAREER_TRANSITIONS,
    INDUSTRY_INSIGHTS,
    SKILLS,
    LEARNING_RESOURCES,
    CONCERNS_NAVIGATOR,
    BREAKTHROUGH_STRATEGIES,
    TASK_RECOMMENDATIONS,
    SUMMARY,
)


def default_registry() -> KindRegistry:
    """Registry with every built-in kind."""
    return KindRegistry(BUILTIN_KINDS)


__all__ = ["BUILTIN_KINDS", "KindRegistry", "ReportKind", "default_registry"]
