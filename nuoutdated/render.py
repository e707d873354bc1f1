from typing import List

from rich.console import Console
from rich.markup import escape

from nuoutdated.core.model import DependencyReport, DependencyStatus, ProjectReport, TargetFrameworkReport

INDENT = "  "
NO_DEPENDENCIES = "-- No dependencies --"
EVERYTHING_UP_TO_DATE = "-- Everything up-to-date --"


def dependency_label(report: DependencyReport) -> str:
    """Rich markup for one dependency line."""
    label = escape(report.name)
    if report.dependency.auto_referenced:
        label += " " + escape("[A]")

    if report.status is DependencyStatus.UNRESOLVABLE:
        return f"{label} [white on dark_red]{escape(report.latest_error)}[/]"

    resolved = escape(str(report.resolved_version))
    if report.latest_error:
        return f"{label} [yellow]{resolved}[/] [white on dark_cyan]{escape(report.latest_error)}[/]"

    if report.status is DependencyStatus.OUTDATED:
        return f"{label} [red]{resolved}[/] ([blue]{escape(str(report.latest_version))}[/])"
    return f"{label} [green]{resolved}[/]"


def project_label(project: ProjectReport) -> str:
    return f"[yellow]» {escape(project.name)}[/]"


def framework_label(framework: TargetFrameworkReport) -> str:
    return f"[cyan]{escape('[' + framework.name + ']')}[/]"


def framework_banner(framework: TargetFrameworkReport) -> str:
    """Text shown in place of an empty dependency list, or an empty string."""
    if not framework.has_dependencies:
        return NO_DEPENDENCIES
    if not framework.dependencies:
        return EVERYTHING_UP_TO_DATE
    return ""


def _print_dependency(console: Console, report: DependencyReport, indent: int) -> None:
    console.print(INDENT * indent + dependency_label(report), highlight=False)
    for child in report.children:
        _print_dependency(console, child, indent + 1)


def print_report(console: Console, reports: List[ProjectReport]) -> None:
    for project in reports:
        console.print(project_label(project), highlight=False)

        if project.error:
            console.print(INDENT + f"[bold red]{escape(project.error)}[/]", highlight=False)

        for framework in project.target_frameworks:
            console.print(INDENT + framework_label(framework), highlight=False)

            banner = framework_banner(framework)
            if banner:
                console.print(INDENT * 2 + banner, highlight=False)
            for dependency in framework.dependencies:
                _print_dependency(console, dependency, 2)

        console.print()
