import logging
import os
import tempfile

from nuoutdated.config import DEFAULT_TIMEOUT
from nuoutdated.core.errors import GraphUnavailable
from nuoutdated.core.graph import DependencyGraphSpec, load_dependency_graph
from nuoutdated.dotnet import runner


def generate_dependency_graph(project_path: str, timeout: float = DEFAULT_TIMEOUT) -> DependencyGraphSpec:
    """Asks MSBuild for the restore graph of ``project_path``."""
    with tempfile.TemporaryDirectory(prefix="nuoutdated-") as tmp:
        output_path = os.path.join(tmp, "graph.dg")
        arguments = [
            "msbuild",
            project_path,
            "/t:GenerateRestoreGraphFile",
            f"/p:RestoreGraphOutputPath={output_path}",
        ]

        status = runner.run(os.path.dirname(project_path), arguments, timeout)
        if not status.is_success:
            logging.error(f"Graph generation failed: {status.output} {status.errors}")
            raise GraphUnavailable(
                f"Unable to generate the dependency graph for {project_path}: "
                f"{(status.errors or status.output).strip()}"
            )

        return load_dependency_graph(output_path)
