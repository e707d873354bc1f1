import os
from typing import List

from nuoutdated.core.errors import CommandValidationError

PROJECT_EXTENSIONS = (".csproj", ".fsproj", ".vbproj")


def _project_files(directory: str) -> List[str]:
    return sorted(
        f for f in os.listdir(directory)
        if f.lower().endswith(PROJECT_EXTENSIONS) and os.path.isfile(os.path.join(directory, f))
    )


def discover_project(path: str) -> str:
    """Returns the project file to analyze for ``path``.

    ``path`` may be a project file or a directory holding exactly one.
    """
    path = os.path.abspath(path)

    if os.path.isfile(path):
        if not path.lower().endswith(PROJECT_EXTENSIONS):
            raise CommandValidationError(f"{path} is not a project file")
        return path

    if not os.path.isdir(path):
        raise CommandValidationError(f"The directory or file '{path}' does not exist")

    projects = _project_files(path)
    if not projects:
        raise CommandValidationError(f"No project file found in {path}")
    if len(projects) > 1:
        names = ", ".join(projects)
        raise CommandValidationError(f"More than one project file found in {path} ({names}), specify which one to use")

    return os.path.join(path, projects[0])
