"""Text heuristics over workflow expressions.

These work on raw strings rather than a parsed expression language, so they
only ever answer "yes" when the text is unambiguous. None of them raise:
malformed input degrades to "no information".
"""

import re
from dataclasses import dataclass
from typing import Any

EXPRESSION_SPAN = re.compile(r"\$\{\{.*?\}\}")
_WRAPPER = re.compile(r"\$\{\{|\}\}")
_CANCELLED_GATE = re.compile(r"(?<![!\w])cancelled\(\)")

FALSE_LITERALS = frozenset(["false", "0", "''", '""', "!true", "!(true)", "!1"])

INPUT_SOURCES = (
    ("github.event", ("github.event",)),
    ("git references", ("github.head_ref", "github.base_ref")),
)


@dataclass(frozen=True)
class PathSensitivity:
    """Whether a finding's surroundings consume attacker-influenced input."""

    sensitive_to_input: bool = False
    input_sources: tuple[str, ...] = ()
    data_flow_paths: tuple[str, ...] = ()

    def to_dict(self) -> dict[str, Any]:
        return {
            "sensitiveToInput": self.sensitive_to_input,
            "inputSources": list(self.input_sources),
            "dataFlowPaths": list(self.data_flow_paths),
        }


def _unwrap(condition: Any) -> str:
    text = _WRAPPER.sub("", str(condition))
    return text.strip().lower()


def _strip_parens(text: str) -> str:
    text = text.strip()
    while text.startswith("(") and text.endswith(")") and _balanced(text[1:-1]):
        text = text[1:-1].strip()
    return text


def _balanced(text: str) -> bool:
    depth = 0
    for char in text:
        if char == "(":
            depth += 1
        elif char == ")":
            depth -= 1
            if depth < 0:
                return False
    return depth == 0


def split_top_level(text: str, operator: str) -> list[str]:
    """Split on operator occurrences outside parentheses and quotes."""
    parts: list[str] = []
    depth = 0
    quote = None
    start = 0
    i = 0
    while i < len(text):
        char = text[i]
        if quote:
            if char == quote:
                quote = None
        elif char in ("'", '"'):
            quote = char
        elif char == "(":
            depth += 1
        elif char == ")":
            depth -= 1
        elif depth == 0 and text.startswith(operator, i):
            parts.append(text[start:i])
            i += len(operator)
            start = i
            continue
        i += 1
    parts.append(text[start:])
    return [part.strip() for part in parts]


def _is_false_literal(text: str) -> bool:
    return _strip_parens(text) in FALSE_LITERALS


def looks_always_false(condition: Any) -> bool:
    """True when a gate can only evaluate false under normal execution.

    Matches a literal false value, a false conjunct in a top-level `&&`
    chain, or a gate that only runs when the workflow was cancelled.
    """
    if condition is None:
        return False

    text = _unwrap(condition)
    if not text:
        return False

    if _is_false_literal(text):
        return True

    if any(_is_false_literal(part) for part in split_top_level(_strip_parens(text), "&&")):
        return True

    return bool(_CANCELLED_GATE.search(text)) and "||" not in text


def extract_expression_spans(text: Any) -> list[str]:
    """Every `${{ ... }}` span, in order of appearance."""
    if text is None:
        return []
    return EXPRESSION_SPAN.findall(str(text))


def analyze_path_sensitivity(content: str, finding) -> PathSensitivity:
    """Input origins visible in the document, plus injection flows named by the finding."""
    sources: list[str] = []
    flows: list[str] = []
    sensitive = False

    for label, markers in INPUT_SOURCES:
        if any(marker in content for marker in markers):
            sources.append(label)
            sensitive = True

    if "steps." in content and ".outputs." in content:
        sources.append("step outputs")
        flows.append("step outputs -> current context")

    if "needs." in content and ".outputs." in content:
        sources.append("job outputs")
        flows.append("job outputs -> current context")

    if "injection" in str(getattr(finding, "title", "")).lower():
        for span in extract_expression_spans(getattr(finding, "description", "")):
            if "github.event" in span:
                flows.append(f"{span} -> direct injection point")

    return PathSensitivity(
        sensitive_to_input=sensitive,
        input_sources=tuple(sources),
        data_flow_paths=tuple(flows),
    )
