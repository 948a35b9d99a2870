"""Workflow execution engine for prompt-composition graphs."""

from .logging_config import configure_logging
from .service import WorkflowEngine

__version__ = "0.1.0"

__all__ = ["WorkflowEngine", "configure_logging", "__version__"]
