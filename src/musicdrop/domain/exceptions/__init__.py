"""Domain exceptions."""

from typing import Any


class DomainException(Exception):
    """Base exception for all domain exceptions."""

    # Hey future me, we store message as an attribute so code can inspect it without parsing
    # str(exception). Don't raise this directly, always use a specific subclass so the
    # exception handlers can map it to the right HTTP status.
    def __init__(self, message: str, *args: Any) -> None:
        super().__init__(message, *args)
        self.message = message


class EntityNotFoundException(DomainException):
    """Raised when an entity is not found."""

    def __init__(self, entity_type: str, entity_id: Any) -> None:
        super().__init__(f"{entity_type} with id {entity_id} not found")
        self.entity_type = entity_type
        self.entity_id = entity_id


class DuplicateEntityException(DomainException):
    """Raised when trying to create a duplicate entity."""

    def __init__(self, entity_type: str, entity_id: Any) -> None:
        super().__init__(f"{entity_type} with id {entity_id} already exists")
        self.entity_type = entity_type
        self.entity_id = entity_id


class ValidationException(DomainException):
    """Raised when untrusted input fails validation.

    HTTP Status: 400

    Always raised BEFORE any job row is written or any file is touched.
    """

    pass


class InvalidUrlError(ValidationException):
    """Remote URL is not on the allow-list or contains forbidden characters."""

    pass


class InvalidFilenameError(ValidationException):
    """Uploaded filename is empty or tries to escape the target directory."""

    pass


class DisallowedExtensionError(ValidationException):
    """Uploaded file extension is not in the configured allow-list."""

    def __init__(self, filename: str, extension: str, allowed: list[str]) -> None:
        super().__init__(
            f"File type '.{extension}' is not allowed for '{filename}'. "
            f"Allowed: {', '.join(allowed)}"
        )
        self.filename = filename
        self.extension = extension
        self.allowed = allowed


class FileTooLargeError(ValidationException):
    """Uploaded file exceeds the configured size limit."""

    def __init__(self, filename: str, size: int, limit: int) -> None:
        super().__init__(
            f"File '{filename}' is too large: {size} bytes (limit {limit} bytes)"
        )
        self.filename = filename
        self.size = size
        self.limit = limit


class NoFilesUploadedError(ValidationException):
    """Upload request carried no files."""

    def __init__(self, message: str = "No files were uploaded") -> None:
        super().__init__(message)


class InvalidStateException(DomainException):
    """Raised when an entity is in an invalid state for the requested operation.

    Example: completing a job that already failed, or starting one twice.

    HTTP Status: 409
    """

    pass


class AuthenticationError(DomainException):
    """User is not authenticated or the session expired.

    HTTP Status: 401
    """

    pass


class AuthorizationError(DomainException):
    """User is authenticated but not allowed to do this.

    Also raised when a remote source (YouTube, Spotify) is switched off.

    HTTP Status: 403
    """

    pass


class ExternalServiceError(DomainException):
    """An external collaborator (process, tool) failed."""

    pass


class ProcessError(ExternalServiceError):
    """Base for external process failures.

    HTTP Status: 500
    """

    def __init__(self, message: str, executable: str = "") -> None:
        super().__init__(message)
        self.executable = executable


class ProcessSpawnError(ProcessError):
    """Executable could not be started (missing, not executable, ...)."""

    pass


class ProcessFailedError(ProcessError):
    """Process ran but exited with a non-zero status."""

    def __init__(
        self,
        executable: str,
        returncode: int,
        stderr: str = "",
        stdout: str = "",
    ) -> None:
        # stderr is usually the useful part, fall back to stdout for tools that print errors there
        detail = (stderr or stdout).strip()
        message = f"{executable} exited with status {returncode}"
        if detail:
            message = f"{message}: {detail}"
        super().__init__(message, executable)
        self.returncode = returncode
        self.stderr = stderr
        self.stdout = stdout


class ProcessTimeoutError(ProcessError):
    """Process exceeded its time budget and was killed."""

    def __init__(self, executable: str, timeout: float) -> None:
        super().__init__(f"{executable} timed out after {timeout:g} seconds", executable)
        self.timeout = timeout


class ConfigurationError(DomainException):
    """Application misconfiguration, detected at startup.

    HTTP Status: 503 (Service Unavailable)
    """

    pass


class StorageError(DomainException):
    """Filesystem or database write failed.

    HTTP Status: 500
    """

    pass


class PipelineFailedError(DomainException):
    """An acquisition job failed after its row was created.

    The job row already carries status=failed when this surfaces. The original
    error is kept in `cause` (and chained via `raise ... from`). Upload validation
    failures are NOT wrapped, they keep their 400.

    HTTP Status: 500
    """

    def __init__(self, message: str, log_id: int, cause: DomainException) -> None:
        super().__init__(message)
        self.log_id = log_id
        self.cause = cause


__all__ = [
    # Base
    "DomainException",
    # Entity exceptions
    "EntityNotFoundException",
    "DuplicateEntityException",
    # Validation exceptions
    "ValidationException",
    "InvalidUrlError",
    "InvalidFilenameError",
    "DisallowedExtensionError",
    "FileTooLargeError",
    "NoFilesUploadedError",
    # State exceptions
    "InvalidStateException",
    # Auth exceptions
    "AuthenticationError",
    "AuthorizationError",
    # External process exceptions
    "ExternalServiceError",
    "ProcessError",
    "ProcessSpawnError",
    "ProcessFailedError",
    "ProcessTimeoutError",
    # Configuration
    "ConfigurationError",
    # Storage / pipeline
    "StorageError",
    "PipelineFailedError",
]
