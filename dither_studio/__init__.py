"""Application package exports."""

from .app import APP_VERSION, app, create_app
from .buffer import ImageBuffer
from .pipeline import GraphExecutor, PipelineGraph, linear_graph
from . import infrastructure, pipeline, processing

__version__ = APP_VERSION

__all__ = [
    "APP_VERSION",
    "__version__",
    "app",
    "create_app",
    "ImageBuffer",
    "GraphExecutor",
    "PipelineGraph",
    "linear_graph",
    "infrastructure",
    "pipeline",
    "processing",
]
