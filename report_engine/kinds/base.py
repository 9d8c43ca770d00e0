"""Per report-kind prompt and validation strategy."""

import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional, Tuple

from report_engine.errors import UnknownReportKind

logger = logging.getLogger(__name__)

PromptBuilder = Callable[[Mapping[str, Dict[str, Any]]], str]

JSON_ONLY = "CRITICAL: Return ONLY valid JSON. No markdown, no explanations. Start with { and end with }."


@dataclass(frozen=True)
class ReportKind:
    """
    Everything the engine needs to know about one report type.

    ``build_prompt`` receives ``{form_id: submission data}`` for the required
    forms plus whichever optional forms exist, and must be deterministic.
    ``nested_keys`` are dotted paths (``"closing_message.title"``).
    """

    kind: str
    label: str
    required_forms: Tuple[str, ...]
    build_prompt: PromptBuilder
    required_keys: Tuple[str, ...]
    optional_forms: Tuple[str, ...] = ()
    nested_keys: Tuple[str, ...] = ()
    complex: bool = False

    @property
    def all_forms(self) -> Tuple[str, ...]:
        return self.required_forms + self.optional_forms

    def validate(self, parsed: Any) -> bool:
        """Check the parsed response has every required key."""
        if not isinstance(parsed, dict):
            logger.error(f"{self.kind}: AI response is not a JSON object")
            return False

        for key in self.required_keys:
            if parsed.get(key) is None:
                logger.error(f"{self.kind}: AI response missing required field: {key}")
                return False

        for path in self.nested_keys:
            node: Any = parsed
            for part in path.split("."):
                if not isinstance(node, dict) or node.get(part) is None:
                    logger.error(f"{self.kind}: AI response missing required field: {path}")
                    return False
                node = node[part]

        return True


class KindRegistry:
    """Map of kind identifier to strategy."""

    def __init__(self, kinds: Iterable[ReportKind] = ()):
        self._kinds: Dict[str, ReportKind] = {}
        for report_kind in kinds:
            self.register(report_kind)

    def register(self, report_kind: ReportKind) -> None:
        self._kinds[report_kind.kind] = report_kind

    def get(self, kind: str) -> ReportKind:
        try:
            return self._kinds[kind]
        except KeyError:
            raise UnknownReportKind(f"Unknown report kind: {kind}") from None

    def find(self, kind: str) -> Optional[ReportKind]:
        return self._kinds.get(kind)

    def kinds(self) -> List[str]:
        return list(self._kinds)

    def labels(self) -> Dict[str, str]:
        return {k: v.label for k, v in self._kinds.items()}

    def __contains__(self, kind: str) -> bool:
        return kind in self._kinds

    def __iter__(self):
        return iter(self._kinds.values())

    def __len__(self) -> int:
        return len(self._kinds)


def answer(data: Mapping[str, Any], key: str, default: str = "not specified") -> str:
    """Render one form answer for a prompt (lists are comma-joined)."""
    value = data.get(key)
    if value is None or value == "" or value == []:
        return default
    if isinstance(value, (list, tuple)):
        return ", ".join(str(v) for v in value)
    if isinstance(value, dict):
        return ", ".join(f"{k}: {v}" for k, v in sorted(value.items()))
    return str(value)


def confidence_context(data: Mapping[str, Any]) -> str:
    """Optional emotional context used to calibrate tone."""
    if not data:
        return ""
    return (
        "EMOTIONAL CONTEXT (calibrate tone, do not mention explicitly):\n"
        f"- Confidence level (1-5): {answer(data, 'confidence_level')}\n"
        f"- Anxiety level (1-5): {answer(data, 'anxiety_level')}\n"
        f"- Support needed: {answer(data, 'support_needed')}"
    )
