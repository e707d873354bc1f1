from typing import Sequence


class OutdatedError(Exception):
    """Base class for every error raised by nuoutdated."""


class CommandValidationError(OutdatedError):
    """The user supplied a path or option we cannot work with."""


class GraphUnavailable(OutdatedError):
    """No restorable dependency graph could be produced. Aborts the run."""


class RestoreFailed(OutdatedError):
    def __init__(self, project_path: str, details: str = ""):
        self.project_path = project_path
        self.details = details.strip()
        message = f"Restore failed for {project_path}"
        if self.details:
            message += f": {self.details}"
        super().__init__(message)


class LockFileMissing(OutdatedError):
    def __init__(self, lock_file_path: str, message: str = ""):
        self.lock_file_path = lock_file_path
        super().__init__(message or f"Lock file not found after restore: {lock_file_path}")


class LockFileInvalid(LockFileMissing):
    def __init__(self, lock_file_path: str, reason: str):
        super().__init__(lock_file_path, f"Unable to read lock file {lock_file_path}: {reason}")


class SourceUnreachable(OutdatedError):
    """None of the configured package sources answered for a package."""

    def __init__(self, package_name: str, sources: Sequence[str]):
        self.package_name = package_name
        self.sources = list(sources)
        if self.sources:
            message = f"Could not reach any package source for {package_name} ({', '.join(self.sources)})"
        else:
            message = f"No package sources configured for {package_name}"
        super().__init__(message)
