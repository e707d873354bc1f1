from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional

from nuoutdated.core.versioning import NuGetVersion, VersionRange


class ProjectStyle(Enum):
    PACKAGE_REFERENCE = "PackageReference"
    PACKAGES_CONFIG = "PackagesConfig"
    PROJECT_JSON = "ProjectJson"
    DOTNET_TOOL_REFERENCE = "DotnetToolReference"
    DOTNET_CLI_TOOL = "DotnetCliTool"
    STANDALONE = "Standalone"
    UNKNOWN = "Unknown"

    @classmethod
    def parse(cls, value: Optional[str]) -> "ProjectStyle":
        for style in cls:
            if value and style.value.lower() == value.lower():
                return style
        return cls.UNKNOWN


class PrereleasePolicy(Enum):
    AUTO = "Auto"
    ALWAYS = "Always"
    NEVER = "Never"


class VersionLock(Enum):
    NONE = "None"
    MAJOR = "Major"
    MINOR = "Minor"


class DependencyStatus(Enum):
    UP_TO_DATE = "UpToDate"
    OUTDATED = "Outdated"
    UNRESOLVABLE = "Unresolvable"


@dataclass
class Dependency:
    name: str
    version_range: Optional[VersionRange] = None
    resolved_version: Optional[NuGetVersion] = None
    auto_referenced: bool = False
    children: List['Dependency'] = field(default_factory=list)


@dataclass
class TargetFramework:
    name: str
    dependencies: List[Dependency] = field(default_factory=list)


@dataclass
class Project:
    name: str
    file_path: str
    sources: List[str] = field(default_factory=list)
    target_frameworks: List[TargetFramework] = field(default_factory=list)

    # Set when restore or lock loading failed for this project only
    error: Optional[str] = None


@dataclass
class DependencyReport:
    dependency: Dependency
    status: DependencyStatus
    depth: int
    latest_version: Optional[NuGetVersion] = None
    latest_error: Optional[str] = None
    children: List['DependencyReport'] = field(default_factory=list)

    # True when this node or any descendant is outdated or failed to resolve
    needs_attention: bool = False

    @property
    def name(self) -> str:
        return self.dependency.name

    @property
    def resolved_version(self) -> Optional[NuGetVersion]:
        return self.dependency.resolved_version


@dataclass
class TargetFrameworkReport:
    name: str
    dependencies: List[DependencyReport] = field(default_factory=list)
    has_dependencies: bool = False


@dataclass
class ProjectReport:
    name: str
    file_path: str
    target_frameworks: List[TargetFrameworkReport] = field(default_factory=list)
    error: Optional[str] = None
