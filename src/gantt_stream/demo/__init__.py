"""Demo push source emitting dummy project records."""

from .generator import generate_project, generate_projects
from .server import create_app, event_stream

__all__ = ["create_app", "event_stream", "generate_project", "generate_projects"]
