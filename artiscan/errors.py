"""Error hierarchy shared by every artiscan component."""


class ArtiscanError(Exception):
    """Base class for errors artiscan raises on purpose."""

    pass


class ConfigMissingError(ArtiscanError):
    """A required environment variable, server or resolver config is absent."""

    pass


class UnsupportedTechnologyError(ArtiscanError):
    """The detected technology has no tree builder (or no curation support)."""

    def __init__(self, tech: str, detail: str = ""):
        self.tech = tech
        message = (
            f"It looks like this project uses '{tech}' to download its dependencies. "
            "This package manager however isn't supported by this command."
        )
        if detail:
            message = f"{message} {detail}"
        super().__init__(message)


class ResolverError(ArtiscanError):
    """A resolver subprocess failed and produced no usable graph."""

    def __init__(self, command: str, returncode: int | None, output: str = ""):
        self.command = command
        self.returncode = returncode
        self.output = output
        message = f"'{command}' failed"
        if returncode is not None:
            message += f" with exit code {returncode}"
        if output:
            message += f":\n{output.strip()}"
        super().__init__(message)


class ParseError(ArtiscanError):
    """Resolver or service output could not be parsed."""

    pass


class LockTokenError(ArtiscanError):
    """A lock directory contains a file that does not follow the token grammar."""

    pass


class LockUnavailableError(ArtiscanError):
    """The lock could not be acquired within the retry limit."""

    pass


class InvalidIndexError(ArtiscanError):
    """A summary index name outside the supported set was requested."""

    pass


class HttpStatusError(ArtiscanError):
    """A remote call answered with an unexpected status code."""

    def __init__(self, message: str, status_code: int):
        self.status_code = status_code
        super().__init__(message)


class ScanTimeoutError(ArtiscanError):
    """A graph scan did not complete within the allowed polling attempts."""

    pass


class CurationError(ExceptionGroup, ArtiscanError):
    """Per-package probe failures collected during a curation run."""

    def derive(self, excs):
        return CurationError(self.message, excs)
