"""Typed errors raised by the SOP library core.

Every failure that leaves the core is one of these. The presentation layer
only needs to distinguish the four families (configuration, validation,
remote I/O, consistency); the concrete subclasses carry the user-facing text.
"""


class SOPLibraryError(Exception):

    def __init__(self, message: str, cause: Exception | None = None):
        super().__init__(message)
        self.message = message
        self.cause = cause


################ CONFIGURATION ##################
class ConfigurationError(SOPLibraryError):
    pass


class NotReadyError(ConfigurationError):
    """No organization id is available yet (signed out or profile still resolving)."""

    def __init__(self, message: str = "No organization id available."):
        super().__init__(message)


################ VALIDATION ##################
class InputValidationError(SOPLibraryError):
    pass


class InvalidFileTypeError(InputValidationError):

    def __init__(self, content_type: str | None, allowed: list[str]):
        super().__init__(f"Invalid file type '{content_type}'. Allowed: {', '.join(allowed)}.")
        self.content_type = content_type


class MissingInformationError(InputValidationError):

    def __init__(self, missing: list[str]):
        super().__init__(f"Missing required information: {', '.join(missing)}.")
        self.missing = missing


class DuplicateNameError(InputValidationError):

    def __init__(self, name: str):
        super().__init__(f"A folder named '{name}' already exists.")
        self.name = name


################ REMOTE I/O ##################
class RemoteIOError(SOPLibraryError):

    def __init__(self, message: str, status_code: int | None = None, cause: Exception | None = None):
        super().__init__(message, cause=cause)
        self.status_code = status_code


class ConflictError(RemoteIOError):
    """A conditional write was rejected because its precondition failed."""
    pass


class LoadFailedError(RemoteIOError):
    pass


class UploadFailedError(RemoteIOError):
    pass


class DeleteFailedError(RemoteIOError):
    pass


################ CONSISTENCY ##################
class ConsistencyError(SOPLibraryError):
    pass


class RecordInvalidError(ConsistencyError):

    def __init__(self, record_id: str, reason: str):
        super().__init__(f"Record '{record_id}' is invalid: {reason}.")
        self.record_id = record_id
