"""Raw-text line lookups and snippet extraction for workflow documents.

The parsed YAML carries no line information, so findings are located by
scanning the original text. Line numbers are 1-based; 0 means "not found".
"""

import re

from flowaudit.rules.base import CodeSnippet

_KEY_LINE = re.compile(r"^[a-zA-Z_][a-zA-Z0-9_-]*:")
_STEP_KEYS = ("name:", "uses:", "run:", "id:", "if:")


def _indent(line: str) -> int:
    stripped = line.lstrip()
    return len(line) - len(stripped) if stripped else -1


def find_job_line_number(content: str, job_id: str) -> int:
    """Line of the `<job_id>:` key."""
    for i, line in enumerate(content.split("\n")):
        if line.strip().startswith(f"{job_id}:"):
            return i + 1
    return 0


def find_step_line_number(content: str, job_id: str, step_index: int) -> int:
    """Line of the list item that starts step `step_index` of `job_id`."""
    lines = content.split("\n")
    job_found = False
    steps_found = False
    steps_indent = -1
    item_indent = -1
    step_count = 0
    job_indent = -1

    for i, line in enumerate(lines):
        trimmed = line.strip()

        if not job_found:
            if trimmed.startswith(f"{job_id}:"):
                job_found = True
                job_indent = _indent(line)
            continue

        current_indent = _indent(line)
        if current_indent < 0 or trimmed.startswith("#"):
            continue

        # Back at job level or above: left this job
        if current_indent <= job_indent and _KEY_LINE.match(trimmed):
            break

        if trimmed == "steps:":
            steps_found = True
            steps_indent = current_indent
            continue

        if not steps_found:
            continue

        if current_indent <= steps_indent and not trimmed.startswith("-"):
            steps_found = False
            continue

        is_item = trimmed == "-" or (trimmed.startswith("- ") and any(key in trimmed for key in _STEP_KEYS))
        if is_item and item_indent < 0:
            item_indent = current_indent
        # list items nested deeper (e.g. inside a run: block) are not steps
        if is_item and current_indent == item_indent:
            if step_count == step_index:
                return i + 1
            step_count += 1

    return 0


def extract_code_snippet(content: str, target_line: int, context_lines: int = 3) -> CodeSnippet | None:
    """Lines around target_line with context on both sides."""
    if not target_line or target_line <= 0:
        return None

    lines = content.split("\n")
    if target_line > len(lines):
        return None

    start_line = max(1, target_line - context_lines)
    end_line = min(len(lines), target_line + context_lines)

    return CodeSnippet(
        content="\n".join(lines[start_line - 1:end_line]),
        start_line=start_line,
        end_line=end_line,
        highlight_line=target_line - start_line + 1,
    )
