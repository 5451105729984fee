from __future__ import annotations

from dataclasses import dataclass


class UnknownKindError(ValueError):
    """Raised when a trigger or action name is not part of the catalog."""


class ConfigError(ValueError):
    def __init__(self, kind: str, problems: list[str]) -> None:
        self.kind = kind
        self.problems = list(problems)
        super().__init__(f"Invalid config for {kind}: " + "; ".join(self.problems))


@dataclass(frozen=True)
class ValidationIssue:
    field: str
    message: str

    def __str__(self) -> str:
        return f"{self.field}: {self.message}"


class RuleValidationError(ValueError):
    def __init__(self, issues: list[ValidationIssue]) -> None:
        self.issues = tuple(issues)
        summary = "; ".join(str(issue) for issue in self.issues)
        super().__init__(f"Automation is not valid: {summary}")


class AutomationApiError(RuntimeError):
    def __init__(self, message: str, status_code: int | None = None) -> None:
        self.status_code = status_code
        super().__init__(message)
