"""Centralized exit codes for the flowaudit CLI."""


class ExitCodes:
    """Standard exit codes for flowaudit commands."""

    SUCCESS = 0

    ERROR_FINDINGS = 1

    @classmethod
    def get_description(cls, code: int) -> str:
        """Get human-readable description for an exit code."""
        descriptions = {
            cls.SUCCESS: "Success - No blocking issues found",
            cls.ERROR_FINDINGS: "Error severity findings detected",
        }
        return descriptions.get(code, f"Unknown exit code: {code}")
