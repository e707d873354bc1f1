import logging
import subprocess
from dataclasses import dataclass
from typing import List, Optional


@dataclass
class RunStatus:
    output: str
    errors: str
    exit_code: int

    @property
    def is_success(self) -> bool:
        return self.exit_code == 0


def run(working_directory: Optional[str], arguments: List[str], timeout: float) -> RunStatus:
    """Runs ``dotnet`` with the given arguments and captures its output."""
    command = ["dotnet", *arguments]
    logging.debug(f"Running {' '.join(command)} in {working_directory or '.'}")

    try:
        completed = subprocess.run(
            command,
            cwd=working_directory or None,
            capture_output=True,
            text=True,
            timeout=timeout,
        )
    except subprocess.TimeoutExpired:
        logging.error(f"dotnet {arguments[0]} timed out after {timeout} seconds")
        return RunStatus("", f"Timed out after {timeout} seconds", -1)
    except OSError as e:
        logging.error(f"Unable to start dotnet: {e}")
        return RunStatus("", f"Unable to start dotnet: {e}", -1)

    return RunStatus(completed.stdout, completed.stderr, completed.returncode)
