"""Allow ``python -m gantt_stream``."""

from gantt_stream.cli import app

app()
