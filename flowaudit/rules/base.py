"""Base contracts for findings exchanged between detectors, the core and renderers."""

from dataclasses import dataclass
from enum import Enum
from typing import Any

from flowaudit.utils.finding_priority import normalize_severity


class Severity(Enum):
    """Standardized severity levels."""

    ERROR = "error"
    WARNING = "warning"
    INFO = "info"


class Category(Enum):
    """Finding category tags."""

    SECURITY = "security"
    PERFORMANCE = "performance"
    BEST_PRACTICE = "best-practice"
    DEPENDENCY = "dependency"
    STRUCTURE = "structure"

    @classmethod
    def parse(cls, value: Any) -> "Category":
        """Parse a category string, accepting the plural best-practices spelling."""
        if isinstance(value, cls):
            return value
        text = str(value or "").strip().lower()
        if text == "best-practices":
            text = "best-practice"
        return cls(text)


@dataclass(frozen=True)
class Location:
    """Where a finding points to inside a workflow document."""

    line: int | None = None
    job: str | None = None
    step: int | None = None

    def to_dict(self) -> dict[str, Any]:
        result: dict[str, Any] = {}
        if self.line:
            result["line"] = self.line
        if self.job is not None:
            result["job"] = self.job
        if self.step is not None:
            result["step"] = self.step
        return result


@dataclass(frozen=True)
class CodeSnippet:
    """Extracted lines around an offending line. highlight_line is 1-based within the snippet."""

    content: str
    start_line: int
    end_line: int
    highlight_line: int | None = None

    def to_dict(self) -> dict[str, Any]:
        result = {
            "content": self.content,
            "startLine": self.start_line,
            "endLine": self.end_line,
        }
        if self.highlight_line is not None:
            result["highlightLine"] = self.highlight_line
        return result


# Keys only AdjustedFinding.to_dict() writes
ADJUSTED_RECORD_KEYS = ("originalSeverity", "contextualSeverity", "reachability")


class SeverityAlreadyAdjustedError(TypeError):
    """Raised when a contextually adjusted finding is fed back into the adjuster."""


@dataclass(frozen=True)
class Finding:
    """A raw finding as produced by a detector or a structural analysis stage."""

    id: str
    category: Category
    severity: Severity
    title: str
    description: str
    file: str

    location: Location | None = None
    suggestion: str | None = None
    links: tuple[str, ...] = ()
    snippet: CodeSnippet | None = None

    @property
    def is_security(self) -> bool:
        return self.category is Category.SECURITY

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        result: dict[str, Any] = {
            "id": self.id,
            "type": self.category.value,
            "severity": self.severity.value,
            "title": self.title,
            "description": self.description,
            "file": self.file,
        }

        if self.location:
            location = self.location.to_dict()
            if location:
                result["location"] = location
        if self.suggestion is not None:
            result["suggestion"] = self.suggestion
        if self.links:
            result["links"] = list(self.links)
        if self.snippet:
            result["codeSnippet"] = self.snippet.to_dict()

        return result

    @classmethod
    def from_dict(cls, data: dict[str, Any], default_file: str = "") -> "Finding":
        """Build a finding from a detector's JSON record.

        Accepts both ``type`` and ``category`` for the category tag and the
        camelCase snippet keys used by the browser front-end.

        Raises:
            ValueError: if the category is unknown or a required field is missing.
            SeverityAlreadyAdjustedError: if the record is a serialized AdjustedFinding.
        """
        if not isinstance(data, dict):
            raise ValueError(f"Finding record must be an object, got {type(data).__name__}")

        adjusted_keys = [key for key in ADJUSTED_RECORD_KEYS if key in data]
        if adjusted_keys:
            raise SeverityAlreadyAdjustedError(
                f"Finding record {data.get('id')!r} was already adjusted ({', '.join(adjusted_keys)})"
            )

        missing = [key for key in ("id", "title") if not data.get(key)]
        if missing:
            raise ValueError(f"Finding record missing required fields: {', '.join(missing)}")

        location = None
        raw_location = data.get("location")
        if isinstance(raw_location, dict):
            location = Location(
                line=raw_location.get("line") or None,
                job=raw_location.get("job"),
                step=raw_location.get("step"),
            )

        snippet = None
        raw_snippet = data.get("codeSnippet") or data.get("snippet")
        if isinstance(raw_snippet, dict) and "content" in raw_snippet:
            snippet = CodeSnippet(
                content=raw_snippet["content"],
                start_line=raw_snippet.get("startLine", raw_snippet.get("start_line", 1)),
                end_line=raw_snippet.get("endLine", raw_snippet.get("end_line", 1)),
                highlight_line=raw_snippet.get("highlightLine", raw_snippet.get("highlight_line")),
            )

        return cls(
            id=str(data["id"]),
            category=Category.parse(data.get("type", data.get("category"))),
            severity=Severity(normalize_severity(data.get("severity"))),
            title=str(data["title"]),
            description=str(data.get("description", "")),
            file=str(data.get("file") or default_file),
            location=location,
            suggestion=data.get("suggestion"),
            links=tuple(data.get("links") or ()),
            snippet=snippet,
        )


@dataclass(frozen=True)
class AdjustedFinding:
    """A security finding after reachability-based severity adjustment.

    Structurally distinct from Finding so the adjuster cannot be applied twice.
    The read surface mirrors Finding so renderers can treat both uniformly.
    """

    finding: Finding
    reachability: Any
    original_severity: Severity
    contextual_severity: Severity
    description: str
    suggestion: str | None = None

    @property
    def id(self) -> str:
        return self.finding.id

    @property
    def category(self) -> Category:
        return self.finding.category

    @property
    def severity(self) -> Severity:
        return self.contextual_severity

    @property
    def title(self) -> str:
        return self.finding.title

    @property
    def file(self) -> str:
        return self.finding.file

    @property
    def location(self) -> Location | None:
        return self.finding.location

    @property
    def links(self) -> tuple[str, ...]:
        return self.finding.links

    @property
    def snippet(self) -> CodeSnippet | None:
        return self.finding.snippet

    @property
    def is_security(self) -> bool:
        return self.finding.is_security

    def to_dict(self) -> dict[str, Any]:
        result = self.finding.to_dict()
        result["severity"] = self.contextual_severity.value
        result["description"] = self.description
        if self.suggestion is not None:
            result["suggestion"] = self.suggestion
        result["originalSeverity"] = self.original_severity.value
        result["contextualSeverity"] = self.contextual_severity.value
        result["reachability"] = self.reachability.to_dict()
        return result
