import asyncio
import logging
from collections import Counter
from typing import Dict, Iterator, List, Optional, Tuple

from nuoutdated.config import Options
from nuoutdated.core.errors import SourceUnreachable
from nuoutdated.core.model import (
    Dependency,
    DependencyReport,
    DependencyStatus,
    Project,
    ProjectReport,
    TargetFramework,
    TargetFrameworkReport,
)
from nuoutdated.core.resolver import VersionCache, resolve_latest
from nuoutdated.core.versioning import NuGetVersion

CANNOT_RESOLVE_REFERENCED = "Cannot resolve referenced version"
CANNOT_RESOLVE_LATEST = "Cannot resolve latest version"
SOURCES_UNREACHABLE = "Could not reach package sources"


async def build_report(projects: List[Project], options: Options, cache: VersionCache) -> List[ProjectReport]:
    """Classifies every dependency node of every project.

    Resolution calls run concurrently, bounded by ``options.concurrency``;
    the output keeps declaration order.
    """
    semaphore = asyncio.Semaphore(options.concurrency)
    reports = await asyncio.gather(
        *(_report_project(project, options, cache, semaphore) for project in projects)
    )
    return list(reports)


async def _report_project(project, options, cache, semaphore) -> ProjectReport:
    report = ProjectReport(name=project.name, file_path=project.file_path, error=project.error)

    frameworks = await asyncio.gather(
        *(_report_framework(project, framework, options, cache, semaphore) for framework in project.target_frameworks)
    )
    report.target_frameworks.extend(frameworks)
    return report


async def _report_framework(
    project: Project,
    framework: TargetFramework,
    options: Options,
    cache: VersionCache,
    semaphore: asyncio.Semaphore,
) -> TargetFrameworkReport:
    dependencies = framework.dependencies
    if not options.include_auto_references:
        dependencies = [d for d in dependencies if not d.auto_referenced]

    reports = await asyncio.gather(
        *(_report_dependency(d, 1, project, framework, options, cache, semaphore) for d in dependencies)
    )

    result = TargetFrameworkReport(name=framework.name, dependencies=list(reports), has_dependencies=bool(dependencies))
    if options.show_only_outdated:
        result.dependencies = [r for r in result.dependencies if r.needs_attention]
    return result


async def _resolve_node(dependency, project, framework, options, cache, semaphore) -> Tuple[Optional[NuGetVersion], Optional[str]]:
    try:
        async with semaphore:
            latest = await resolve_latest(
                dependency.name,
                dependency.resolved_version,
                project.sources,
                dependency.version_range,
                options.version_lock,
                options.prerelease,
                framework.name,
                project.file_path,
                cache,
            )
    except SourceUnreachable as e:
        logging.warning(str(e))
        return None, SOURCES_UNREACHABLE

    if latest is None:
        return None, CANNOT_RESOLVE_LATEST
    return latest, None


async def _report_dependency(
    dependency: Dependency,
    depth: int,
    project: Project,
    framework: TargetFramework,
    options: Options,
    cache: VersionCache,
    semaphore: asyncio.Semaphore,
) -> DependencyReport:
    children = [
        _report_dependency(child, depth + 1, project, framework, options, cache, semaphore)
        for child in dependency.children
    ]

    if dependency.resolved_version is None:
        child_reports = await asyncio.gather(*children)
        report = DependencyReport(
            dependency=dependency,
            status=DependencyStatus.UNRESOLVABLE,
            depth=depth,
            latest_error=CANNOT_RESOLVE_REFERENCED,
        )
    else:
        (latest, error), *child_reports = await asyncio.gather(
            _resolve_node(dependency, project, framework, options, cache, semaphore), *children
        )
        outdated = latest is not None and latest > dependency.resolved_version
        report = DependencyReport(
            dependency=dependency,
            status=DependencyStatus.OUTDATED if outdated else DependencyStatus.UP_TO_DATE,
            depth=depth,
            latest_version=latest,
            latest_error=error,
        )

    report.children = list(child_reports)
    report.needs_attention = (
        report.status is not DependencyStatus.UP_TO_DATE
        or report.latest_error is not None
        or any(child.needs_attention for child in report.children)
    )

    if options.show_only_outdated:
        report.children = [child for child in report.children if child.needs_attention]
    return report


def iter_dependency_reports(reports: List[ProjectReport]) -> Iterator[DependencyReport]:
    """Yields every dependency report, parents before children."""
    for project in reports:
        for framework in project.target_frameworks:
            stack = list(reversed(framework.dependencies))
            while stack:
                node = stack.pop()
                yield node
                stack.extend(reversed(node.children))


def summarize(reports: List[ProjectReport]) -> Dict[DependencyStatus, int]:
    counts = Counter(node.status for node in iter_dependency_reports(reports))
    return {status: counts.get(status, 0) for status in DependencyStatus}
