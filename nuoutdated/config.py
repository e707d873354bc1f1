"""Run options and logging setup."""
import logging
import os
from dataclasses import dataclass
from typing import Optional

from nuoutdated.core.errors import CommandValidationError
from nuoutdated.core.model import PrereleasePolicy, VersionLock

DEFAULT_LOG_FILE = "nuoutdated.log"
DEFAULT_CONCURRENCY = 16
DEFAULT_TIMEOUT = 300


@dataclass
class Options:
    path: Optional[str] = None
    include_transitive: bool = False
    transitive_depth: int = 1
    include_auto_references: bool = False
    prerelease: PrereleasePolicy = PrereleasePolicy.AUTO
    version_lock: VersionLock = VersionLock.NONE
    show_only_outdated: bool = False
    concurrency: int = DEFAULT_CONCURRENCY
    timeout: int = DEFAULT_TIMEOUT
    use_tui: bool = True
    log_file: str = DEFAULT_LOG_FILE
    debug: bool = False

    def validate(self) -> "Options":
        if self.transitive_depth < 1:
            raise CommandValidationError("--transitive-depth must be a positive integer")
        if self.concurrency < 1:
            raise CommandValidationError("--concurrency must be a positive integer")
        if self.timeout < 1:
            raise CommandValidationError("--timeout must be a positive number of seconds")
        return self

    @property
    def project_path(self) -> str:
        return self.path or os.getcwd()


def configure_logging(options: Options) -> None:
    # Logs go to a file: the terminal belongs to the UI
    logging.basicConfig(
        filename=options.log_file,
        level=logging.DEBUG if options.debug else logging.INFO,
        filemode="w",
        format="%(asctime)s - %(levelname)s - %(message)s",
    )
    logging.getLogger("httpx").setLevel(logging.DEBUG if options.debug else logging.WARNING)
