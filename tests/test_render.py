import io
import unittest

from rich.console import Console
from rich.text import Text

from nuoutdated.core.model import (
    Dependency,
    DependencyReport,
    DependencyStatus,
    ProjectReport,
    TargetFrameworkReport,
)
from nuoutdated.core.report import CANNOT_RESOLVE_LATEST, CANNOT_RESOLVE_REFERENCED
from nuoutdated.core.versioning import NuGetVersion
from nuoutdated.render import EVERYTHING_UP_TO_DATE, NO_DEPENDENCIES, dependency_label, print_report


def node(name, resolved, status, latest=None, error=None, children=None, auto_referenced=False):
    dependency = Dependency(
        name=name,
        resolved_version=NuGetVersion.parse(resolved) if resolved else None,
        auto_referenced=auto_referenced,
    )
    return DependencyReport(
        dependency=dependency,
        status=status,
        depth=1,
        latest_version=NuGetVersion.parse(latest) if latest else None,
        latest_error=error,
        children=children or [],
    )


def render(reports):
    console = Console(file=io.StringIO(), width=200, color_system=None)
    print_report(console, reports)
    return console.file.getvalue()


class TestRender(unittest.TestCase):

    def test_outdated_label_shows_latest(self):
        label = dependency_label(node("Serilog", "2.10.0", DependencyStatus.OUTDATED, latest="3.1.1"))
        self.assertIn("[red]2.10.0[/]", label)
        self.assertIn("[blue]3.1.1[/]", label)

    def test_auto_referenced_marker_is_literal(self):
        label = dependency_label(node("Microsoft.NETCore.App", "2.1.0", DependencyStatus.UP_TO_DATE, auto_referenced=True))
        self.assertEqual(Text.from_markup(label).plain, "Microsoft.NETCore.App [A] 2.1.0")

    def test_console_report(self):
        child = node("Serilog.Sinks", "1.0.0", DependencyStatus.UP_TO_DATE, error=CANNOT_RESOLVE_LATEST)
        reports = [
            ProjectReport(
                name="App",
                file_path="/src/App/App.csproj",
                target_frameworks=[
                    TargetFrameworkReport("net6.0", [
                        node("Serilog", "2.10.0", DependencyStatus.OUTDATED, latest="3.1.1", children=[child]),
                        node("Gone", None, DependencyStatus.UNRESOLVABLE, error=CANNOT_RESOLVE_REFERENCED),
                    ], has_dependencies=True),
                    TargetFrameworkReport("net8.0", [], has_dependencies=True),
                    TargetFrameworkReport("netstandard2.0", [], has_dependencies=False),
                ],
            ),
            ProjectReport(name="Broken", file_path="/src/Broken/Broken.csproj", error="Restore failed"),
        ]

        lines = render(reports).splitlines()

        self.assertEqual(lines[0], "» App")
        self.assertEqual(lines[1], "  [net6.0]")
        self.assertEqual(lines[2], "    Serilog 2.10.0 (3.1.1)")
        self.assertEqual(lines[3], f"      Serilog.Sinks 1.0.0 {CANNOT_RESOLVE_LATEST}")
        self.assertEqual(lines[4], f"    Gone {CANNOT_RESOLVE_REFERENCED}")
        self.assertEqual(lines[6], f"    {EVERYTHING_UP_TO_DATE}")
        self.assertEqual(lines[8], f"    {NO_DEPENDENCIES}")
        self.assertIn("Restore failed", lines[11])
