from .discovery import discover_project
from .dgspec import generate_dependency_graph
from .restore import restore

__all__ = ["discover_project", "generate_dependency_graph", "restore"]
