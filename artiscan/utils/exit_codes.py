"""Centralized exit codes for the artiscan CLI."""


class ExitCodes:
    """Standard exit codes for artiscan CLI commands."""

    SUCCESS = 0

    ERROR = 1

    FAIL_NO_OP = 2

    VULNERABLE_BUILD = 3

    @classmethod
    def get_description(cls, code: int) -> str:
        """Get human-readable description for an exit code."""
        descriptions = {
            cls.SUCCESS: "Success",
            cls.ERROR: "Command failed",
            cls.FAIL_NO_OP: "Nothing to do - no supported project detected",
            cls.VULNERABLE_BUILD: "Violations that fail the build were found",
        }
        return descriptions.get(code, f"Unknown exit code: {code}")

    @classmethod
    def should_fail_pipeline(cls, code: int) -> bool:
        """Determine if an exit code should fail a CI/CD pipeline."""

        return code != cls.SUCCESS
