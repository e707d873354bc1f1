"""Wires project discovery, graph generation, restore and the report together."""
import functools
import logging
from typing import List

from nuoutdated.config import Options
from nuoutdated.core.graph import build_projects
from nuoutdated.core.model import Project, ProjectReport
from nuoutdated.core.report import build_report
from nuoutdated.core.resolver import VersionCache
from nuoutdated.dotnet import discover_project, generate_dependency_graph, restore


def analyze_project(options: Options) -> List[Project]:
    """Blocking: runs msbuild and restore for the target project."""
    project_path = discover_project(options.project_path)
    logging.info(f"Analyzing {project_path}")

    graph = generate_dependency_graph(project_path, timeout=options.timeout)
    projects = build_projects(
        graph,
        options.include_transitive,
        options.transitive_depth,
        restore=functools.partial(restore, timeout=options.timeout),
    )
    logging.info(f"Built dependency trees for {len(projects)} project(s)")
    return projects


async def collect_reports(projects: List[Project], options: Options) -> List[ProjectReport]:
    async with VersionCache() as cache:
        return await build_report(projects, options, cache)
