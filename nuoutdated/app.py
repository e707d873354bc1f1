import asyncio
import dataclasses
import logging
from typing import List, Optional

from rich.markup import escape
from textual import work
from textual.app import App, ComposeResult
from textual.binding import Binding
from textual.containers import Container, Horizontal, Vertical, VerticalScroll
from textual.screen import ModalScreen
from textual.widgets import Button, Footer, Header, Label, LoadingIndicator, Markdown, Tree

from nuoutdated.__version__ import __version__
from nuoutdated.analysis import analyze_project, collect_reports
from nuoutdated.config import Options
from nuoutdated.core.model import DependencyReport, DependencyStatus, ProjectReport
from nuoutdated.core.report import summarize
from nuoutdated.render import EVERYTHING_UP_TO_DATE, NO_DEPENDENCIES, dependency_label, framework_label


class DependencyScreen(ModalScreen):
    """Modal with the details of one dependency."""

    DEFAULT_CSS = """
    DependencyScreen {
        align: center middle;
        background: rgba(0, 0, 0, 0.8);
    }
    #dialog {
        padding: 0 1;
        width: 70%;
        height: 70%;
        border: heavy $primary;
        background: $surface;
        layout: vertical;
    }
    #title {
        text-align: center;
        text-style: bold;
        background: $primary;
        color: white;
        width: 100%;
        padding: 1;
    }
    #content-scroll {
        height: 1fr;
        margin: 1 0;
        overflow-y: auto;
    }
    #close-btn {
        width: 100%;
        dock: bottom;
    }
    """

    def __init__(self, report: DependencyReport) -> None:
        super().__init__()
        self.report = report

    def compose(self) -> ComposeResult:
        yield Vertical(
            Label(escape(self.report.name), id="title"),
            VerticalScroll(Markdown(self._build_details()), id="content-scroll"),
            Button("Close (Esc)", variant="primary", id="close-btn"),
            id="dialog",
        )

    def _build_details(self) -> str:
        report = self.report
        dependency = report.dependency
        lines = [
            f"- **Status**: {report.status.value}",
            f"- **Declared range**: {dependency.version_range or 'any'}",
            f"- **Resolved version**: {dependency.resolved_version or '-'}",
            f"- **Latest version**: {report.latest_version or '-'}",
            f"- **Depth**: {report.depth}",
        ]
        if dependency.auto_referenced:
            lines.append("- **Auto-referenced**: yes")
        if report.latest_error:
            lines.append(f"\n> {report.latest_error}")
        if report.children:
            lines.append(f"\n{len(report.children)} transitive dependencies.")
        return "\n".join(lines)

    def on_button_pressed(self, event: Button.Pressed) -> None:
        self.dismiss()

    def key_escape(self) -> None:
        self.dismiss()


class OutdatedApp(App):
    TITLE = "nuoutdated"
    SUB_TITLE = f"v{__version__}"

    DEFAULT_CSS = """
    Screen { layout: vertical; }

    #info-bar {
        height: 3;
        dock: top;
        background: $surface;
        border-bottom: solid $primary;
        align: left middle;
        padding: 0 1;
    }

    .info-label {
        width: auto;
        height: 1;
        padding: 0 2;
        color: $text;
    }

    #tree-container {
        height: 1fr;
        border: none;
        margin: 0 1;
    }
    Tree { padding: 1; background: $surface; }

    #loading-container { height: 100%; align: center middle; }
    """

    BINDINGS = [
        Binding("q", "quit", "Quit"),
        Binding("j", "cursor_down", "Down", show=False),
        Binding("k", "cursor_up", "Up", show=False),
        Binding("l", "expand_node", "Expand"),
        Binding("h", "collapse_node", "Collapse"),
        Binding("enter", "show_details", "Details"),
        Binding("o", "toggle_filter", "Outdated Only"),
    ]

    def __init__(self, options: Options) -> None:
        super().__init__()
        self.options = options
        self.show_only_outdated = options.show_only_outdated
        self.reports: List[ProjectReport] = []
        self.fatal_error: Optional[str] = None

    def compose(self) -> ComposeResult:
        yield Header(show_clock=True)

        with Horizontal(id="info-bar"):
            yield Label("[b]Projects:[/b] [cyan]0[/]", id="lbl-projects", classes="info-label")
            yield Label("[b]Total:[/b] [blue]0[/]", id="lbl-total", classes="info-label")
            yield Label("[b]Outdated:[/b] [red]0[/]", id="lbl-outdated", classes="info-label")
            yield Label("[b]Unresolvable:[/b] [yellow]0[/]", id="lbl-unresolvable", classes="info-label")

        with Container(id="main-area"):
            with Container(id="loading-container"):
                yield LoadingIndicator()
                yield Label("Starting...", id="status-label")

            with Container(id="tree-container"):
                yield Tree("Projects", id="dep-tree")

        yield Footer()

    def on_mount(self) -> None:
        self.query_one("#tree-container").display = False
        self.analyze()

    # --- ACTIONS ---

    def action_cursor_down(self) -> None:
        self.query_one("#dep-tree").action_cursor_down()

    def action_cursor_up(self) -> None:
        self.query_one("#dep-tree").action_cursor_up()

    def action_expand_node(self) -> None:
        tree = self.query_one("#dep-tree")
        if tree.cursor_node:
            tree.cursor_node.expand()

    def action_collapse_node(self) -> None:
        tree = self.query_one("#dep-tree")
        node = tree.cursor_node
        if node:
            if node.is_expanded:
                node.collapse()
            elif node.parent:
                tree.select_node(node.parent)
                node.parent.collapse()

    def action_show_details(self) -> None:
        node = self.query_one("#dep-tree").cursor_node
        if node and isinstance(node.data, DependencyReport):
            self.push_screen(DependencyScreen(node.data))

    def on_tree_node_selected(self, event: Tree.NodeSelected) -> None:
        if isinstance(event.node.data, DependencyReport):
            self.push_screen(DependencyScreen(event.node.data))

    def action_toggle_filter(self) -> None:
        self.show_only_outdated = not self.show_only_outdated
        msg = "Showing outdated packages only." if self.show_only_outdated else "Showing all packages."
        self.notify(msg, severity="warning" if self.show_only_outdated else "information")

        if self.reports:
            self.render_tree()

    # --- LOGIC ---

    def update_status(self, msg: str) -> None:
        self.query_one("#status-label", Label).update(msg)

    def update_dashboard_ui(self) -> None:
        counts = summarize(self.reports)
        total = sum(counts.values())
        self.query_one("#lbl-projects", Label).update(f"[b]Projects:[/b] [cyan]{len(self.reports)}[/]")
        self.query_one("#lbl-total", Label).update(f"[b]Total:[/b] [blue]{total}[/]")
        self.query_one("#lbl-outdated", Label).update(
            f"[b]Outdated:[/b] [red]{counts[DependencyStatus.OUTDATED]}[/]"
        )
        self.query_one("#lbl-unresolvable", Label).update(
            f"[b]Unresolvable:[/b] [yellow]{counts[DependencyStatus.UNRESOLVABLE]}[/]"
        )

    def show_error(self, message: str) -> None:
        self.fatal_error = message
        self.update_status(f"[bold red]Fatal Error:[/]\n{escape(message)}")
        self.query_one(LoadingIndicator).display = False

    @work(thread=False)
    async def analyze(self) -> None:
        try:
            self.update_status("Analyzing project and restoring packages...")
            projects = await asyncio.to_thread(analyze_project, self.options)

            self.update_status("Resolving latest versions...")
            # Filtering happens at render time so it can be toggled
            report_options = dataclasses.replace(self.options, show_only_outdated=False)
            self.reports = await collect_reports(projects, report_options)

            self.update_dashboard_ui()
            self.render_tree()

        except Exception as e:
            logging.exception("Fatal error in worker:")
            self.show_error(str(e))

    def render_tree(self) -> None:
        tree = self.query_one("#dep-tree")
        tree.clear()
        tree.root.expand()

        def add_dependencies(tree_node, reports: List[DependencyReport]) -> None:
            for report in reports:
                if self.show_only_outdated and not report.needs_attention:
                    continue

                label = dependency_label(report)
                if report.children:
                    label += f" [dim]↳[/] {len(report.children)}"

                new_node = tree_node.add(label, expand=self.show_only_outdated, data=report)
                if report.children:
                    add_dependencies(new_node, report.children)
                else:
                    new_node.allow_expand = False

        for project in self.reports:
            project_node = tree.root.add(f"[yellow]{escape(project.name)}[/]", expand=True, data=project)
            if project.error:
                project_node.add_leaf(f"[bold red]{escape(project.error)}[/]")

            for framework in project.target_frameworks:
                framework_node = project_node.add(framework_label(framework), expand=True)
                visible = [
                    r for r in framework.dependencies
                    if r.needs_attention or not self.show_only_outdated
                ]

                if not framework.has_dependencies:
                    framework_node.add_leaf(f"[dim]{NO_DEPENDENCIES}[/]")
                elif not visible:
                    framework_node.add_leaf(f"[green]{EVERYTHING_UP_TO_DATE}[/]")
                else:
                    add_dependencies(framework_node, visible)

        self.query_one("#loading-container").display = False
        self.query_one("#tree-container").display = True
        tree.focus()
