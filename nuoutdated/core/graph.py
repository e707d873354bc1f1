"""Builds per-project dependency trees from restore output.

Two artifacts are read: the restore graph (``.dg`` / dgspec JSON) describing
what every project declares, and the ``project.assets.json`` lock file that
restore writes for each project, describing what was actually resolved.
"""
import json
import logging
import os
import re
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional, Tuple

from nuoutdated.core.errors import GraphUnavailable, LockFileInvalid, LockFileMissing, RestoreFailed
from nuoutdated.core.model import Dependency, Project, ProjectStyle, TargetFramework
from nuoutdated.core.versioning import NuGetVersion, VersionRange, try_parse_range, try_parse_version

LOCK_FILE_NAME = "project.assets.json"

# Upper bound on nodes expanded under one direct dependency. Well formed lock
# files never get close; a cyclic one would otherwise blow up within the depth.
MAX_TREE_NODES = 10000


# --- Restore graph (dgspec) ---

@dataclass
class DependencySpec:
    name: str
    version_range: Optional[VersionRange] = None
    auto_referenced: bool = False


@dataclass
class FrameworkSpec:
    name: str
    dependencies: List[DependencySpec] = field(default_factory=list)


@dataclass
class PackageSpec:
    name: str
    file_path: str
    output_path: str
    style: ProjectStyle
    sources: List[str] = field(default_factory=list)
    frameworks: List[FrameworkSpec] = field(default_factory=list)


@dataclass
class DependencyGraphSpec:
    projects: List[PackageSpec] = field(default_factory=list)

    @classmethod
    def from_json(cls, data: Dict[str, Any]) -> "DependencyGraphSpec":
        projects = []
        for path, body in (data.get("projects") or {}).items():
            restore = body.get("restore") or {}
            file_path = restore.get("projectPath") or path
            name = restore.get("projectName") or os.path.splitext(os.path.basename(file_path))[0]

            frameworks = []
            for framework_name, framework in (body.get("frameworks") or {}).items():
                dependencies = []
                for dep_name, dep in (framework.get("dependencies") or {}).items():
                    if isinstance(dep, str):
                        dep = {"version": dep}
                    version_text = dep.get("version")
                    version_range = try_parse_range(version_text)
                    if version_text and version_range is None:
                        logging.warning(f"Ignoring invalid version range {version_text!r} for {dep_name} in {name}")
                    dependencies.append(DependencySpec(
                        name=dep_name,
                        version_range=version_range,
                        auto_referenced=bool(dep.get("autoReferenced", False)),
                    ))
                frameworks.append(FrameworkSpec(framework_name, dependencies))

            projects.append(PackageSpec(
                name=name,
                file_path=file_path,
                output_path=restore.get("outputPath") or os.path.join(os.path.dirname(file_path), "obj"),
                style=ProjectStyle.parse(restore.get("projectStyle")),
                sources=list((restore.get("sources") or {}).keys()),
                frameworks=frameworks,
            ))
        return cls(projects)


def load_dependency_graph(path: str) -> DependencyGraphSpec:
    """Reads a dgspec file. Any failure means there is no graph to work on."""
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = json.load(f)
    except FileNotFoundError:
        raise GraphUnavailable(f"Dependency graph file was not generated: {path}")
    except (OSError, ValueError) as e:
        raise GraphUnavailable(f"Unable to read dependency graph {path}: {e}")

    if not isinstance(data, dict):
        raise GraphUnavailable(f"Unexpected dependency graph format in {path}")
    return DependencyGraphSpec.from_json(data)


# --- Lock file (project.assets.json) ---

@dataclass
class LockFileLibrary:
    name: str
    version: Optional[NuGetVersion]
    dependencies: List[Tuple[str, Optional[VersionRange]]] = field(default_factory=list)


@dataclass
class LockFileTarget:
    framework: str
    runtime: str = ""
    libraries: Dict[str, LockFileLibrary] = field(default_factory=dict)

    def add(self, library: LockFileLibrary) -> None:
        key = library.name.lower()
        if key in self.libraries:
            logging.warning(f"Duplicate library {library.name} in target {self.framework}, keeping the first entry")
            return
        self.libraries[key] = library

    def find(self, name: str) -> Optional[LockFileLibrary]:
        return self.libraries.get(name.lower())


@dataclass
class LockFile:
    targets: List[LockFileTarget] = field(default_factory=list)

    @classmethod
    def from_json(cls, data: Dict[str, Any]) -> "LockFile":
        """Raises ValueError when the targets section is not shaped like an assets file."""
        targets_section = data.get("targets") or {}
        if not isinstance(targets_section, dict):
            raise ValueError("'targets' is not an object")

        targets = []
        for target_key, libraries in targets_section.items():
            if not isinstance(libraries, (dict, type(None))):
                raise ValueError(f"target {target_key!r} is not an object")
            framework, _, runtime = target_key.partition("/")
            target = LockFileTarget(framework=framework, runtime=runtime)
            for library_key, body in (libraries or {}).items():
                name, _, version_text = library_key.partition("/")
                version = try_parse_version(version_text)
                if version is None:
                    logging.warning(f"Unparseable version {version_text!r} for {name} in {target_key}")

                body = body or {}
                if not isinstance(body, dict):
                    raise ValueError(f"library {library_key!r} in {target_key!r} is not an object")
                declared = body.get("dependencies") or {}
                if not isinstance(declared, dict):
                    raise ValueError(f"dependencies of {library_key!r} in {target_key!r} are not an object")

                dependencies = []
                for dep_name, dep_range in declared.items():
                    dependencies.append((dep_name, try_parse_range(dep_range) if isinstance(dep_range, str) else None))

                target.add(LockFileLibrary(name=name, version=version, dependencies=dependencies))
            targets.append(target)
        return cls(targets)

    def find_target(self, framework: str) -> Optional[LockFileTarget]:
        wanted = normalize_framework(framework)
        matches = [t for t in self.targets if normalize_framework(t.framework) == wanted]
        for target in matches:
            if not target.runtime:
                return target
        return matches[0] if matches else None


def load_lock_file(output_path: str) -> LockFile:
    lock_file_path = os.path.join(output_path, LOCK_FILE_NAME)
    if not os.path.isfile(lock_file_path):
        raise LockFileMissing(lock_file_path)

    try:
        with open(lock_file_path, "r", encoding="utf-8") as f:
            data = json.load(f)
    except (OSError, ValueError) as e:
        raise LockFileInvalid(lock_file_path, str(e))

    if not isinstance(data, dict):
        raise LockFileInvalid(lock_file_path, "root element is not an object")
    try:
        return LockFile.from_json(data)
    except ValueError as e:
        raise LockFileInvalid(lock_file_path, str(e))


_LONG_FRAMEWORK_RE = re.compile(r"^([^,]+),\s*version=v?([0-9.]+)", re.IGNORECASE)


def normalize_framework(name: str) -> str:
    """Maps long framework names to their short form.

    ``.NETCoreApp,Version=v6.0`` -> ``net6.0``,
    ``.NETStandard,Version=v2.0`` -> ``netstandard2.0``,
    ``.NETFramework,Version=v4.7.2`` -> ``net472``.
    Short names are only lower-cased.
    """
    text = name.strip().lower()
    match = _LONG_FRAMEWORK_RE.match(text)
    if not match:
        return text

    identifier, version = match.groups()
    parts = version.split(".")
    if len(parts) == 1:
        parts.append("0")

    if identifier == ".netcoreapp":
        prefix = "net" if int(parts[0]) >= 5 else "netcoreapp"
        return f"{prefix}{parts[0]}.{parts[1]}"
    if identifier == ".netstandard":
        return f"netstandard{parts[0]}.{parts[1]}"
    if identifier == ".netframework":
        while len(parts) > 2 and parts[-1] == "0":
            parts.pop()
        return "net" + "".join(parts)
    return f"{identifier}{version}"


# --- Tree construction ---

def is_package_reference(spec: PackageSpec) -> bool:
    return spec.style is ProjectStyle.PACKAGE_REFERENCE


@dataclass
class _NodeBudget:
    remaining: int
    warned: bool = False

    def take(self, root_name: str) -> bool:
        if self.remaining <= 0:
            if not self.warned:
                logging.warning(f"Stopped expanding {root_name}: more than {MAX_TREE_NODES} transitive nodes")
                self.warned = True
            return False
        self.remaining -= 1
        return True


def build_projects(
    graph: Optional[DependencyGraphSpec],
    include_transitive: bool,
    max_depth: int,
    restore: Callable[[str], None],
    load_lock: Callable[[str], LockFile] = load_lock_file,
) -> List[Project]:
    """Builds the Project trees for every PackageReference project in ``graph``.

    ``restore`` is called with each project file path before its lock file is
    read. Restore and lock file failures are recorded on the project and do
    not stop the other projects.
    """
    if graph is None:
        raise GraphUnavailable("No dependency graph available")
    if max_depth < 1:
        raise ValueError("max_depth must be a positive integer")

    projects = []
    for spec in graph.projects:
        if not is_package_reference(spec):
            logging.info(f"Skipping {spec.name}: {spec.style.value} projects are not supported")
            continue
        projects.append(_build_project(spec, include_transitive, max_depth, restore, load_lock))
    return projects


def _build_project(spec, include_transitive, max_depth, restore, load_lock) -> Project:
    project = Project(name=spec.name, file_path=spec.file_path, sources=list(spec.sources))

    try:
        restore(spec.file_path)
        lock_file = load_lock(spec.output_path)
    except (RestoreFailed, LockFileMissing) as e:
        logging.error(f"{spec.name}: {e}")
        project.error = str(e)
        return project

    for framework_spec in spec.frameworks:
        framework = TargetFramework(name=framework_spec.name)
        project.target_frameworks.append(framework)

        target = lock_file.find_target(framework_spec.name)
        if target is None:
            logging.warning(f"{spec.name}: no resolved target for {framework_spec.name}")
            continue

        for dependency_spec in framework_spec.dependencies:
            library = target.find(dependency_spec.name)
            dependency = Dependency(
                name=dependency_spec.name,
                version_range=dependency_spec.version_range,
                resolved_version=library.version if library else None,
                auto_referenced=dependency_spec.auto_referenced,
            )
            framework.dependencies.append(dependency)

            if include_transitive:
                budget = _NodeBudget(MAX_TREE_NODES)
                _add_dependencies(dependency, library, target, 1, max_depth, budget)

    return project


def _add_dependencies(parent, library, target, level, max_depth, budget) -> None:
    if library is None or not library.dependencies:
        return

    for child_name, child_range in library.dependencies:
        if not budget.take(parent.name):
            return

        child_library = target.find(child_name)
        child = Dependency(
            name=child_name,
            version_range=child_range,
            resolved_version=child_library.version if child_library else None,
        )
        parent.children.append(child)

        if level < max_depth:
            _add_dependencies(child, child_library, target, level + 1, max_depth, budget)
