"""gantt-stream: push-stream ingestion pipeline for a Gantt chart.

Opens a Server-Sent Events connection, reshapes project/sprint records into
a task/link graph and republishes it through a shared state cell.
"""

__version__ = "0.1.0"
