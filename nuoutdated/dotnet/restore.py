import logging
import os

from nuoutdated.config import DEFAULT_TIMEOUT
from nuoutdated.core.errors import RestoreFailed
from nuoutdated.dotnet import runner


def restore(project_path: str, timeout: float = DEFAULT_TIMEOUT) -> None:
    """Runs ``dotnet restore`` so the project's assets file is current."""
    logging.info(f"Restoring {project_path}")
    status = runner.run(os.path.dirname(project_path), ["restore", project_path], timeout)

    if not status.is_success:
        # dotnet reports restore errors on stdout
        raise RestoreFailed(project_path, status.errors or status.output)
