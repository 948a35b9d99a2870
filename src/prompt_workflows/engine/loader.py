"""
Workflow definition loader.

Definitions saved by the editor are YAML or JSON documents; both parse with
``yaml.safe_load`` since JSON is a subset of YAML. Loading never raises for
bad input: every function returns a LoadResult.

Graph structure (cycles, dangling edges) is not checked here; that is the
GraphValidator's job at validate/execute time.
"""

import logging
from collections.abc import Iterator
from pathlib import Path

import yaml

from .load_result import LoadResult
from .schema import WorkflowDefinition

logger = logging.getLogger(__name__)

DEFINITION_SUFFIXES = frozenset({".yaml", ".yml", ".json"})


def load_workflow_from_yaml(
    text: str, source: str = "<string>"
) -> LoadResult[WorkflowDefinition]:
    """
    Parse and validate one definition document.

    Args:
        text: YAML or JSON document
        source: Where the text came from, used in messages and metadata

    Example:
        result = load_workflow_from_yaml('''
        id: greet
        name: Greeting
        nodes:
          - id: p1
            kind: prompt
            config:
              template: "Say hello to {{name}}"
        ''')
    """
    try:
        data = yaml.safe_load(text)
    except yaml.YAMLError as e:
        return LoadResult.failure(f"Invalid YAML syntax in {source}: {e}")

    if not isinstance(data, dict):
        return LoadResult.failure(
            f"Definition in {source} must be a YAML dictionary, got {type(data).__name__}"
        )

    validated = WorkflowDefinition.validate_dict(data)
    if validated.is_failure:
        return LoadResult.failure(f"{validated.error}\n(source: {source})")
    return LoadResult.success(validated.unwrap(), metadata={"source": source})


def load_workflow_from_file(file_path: str | Path) -> LoadResult[WorkflowDefinition]:
    """Read ``file_path`` and hand its text to ``load_workflow_from_yaml``."""
    path = Path(file_path)
    if not path.is_file():
        reason = "is not a file" if path.exists() else "does not exist"
        return LoadResult.failure(f"Workflow file {path} {reason}")

    try:
        text = path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as e:
        return LoadResult.failure(f"Cannot read {path}: {e}")

    return load_workflow_from_yaml(text, source=str(path))


def _definition_files(directory: Path) -> Iterator[Path]:
    for path in sorted(directory.iterdir()):
        if path.is_file() and path.suffix.lower() in DEFINITION_SUFFIXES:
            yield path


def discover_workflows(directory: str | Path) -> LoadResult[list[WorkflowDefinition]]:
    """
    Load every definition file (``.yaml``, ``.yml``, ``.json``) in a directory.

    Files that fail to load are skipped; their messages are logged and kept in
    ``metadata["errors"]``. Only a missing directory is a failure.
    """
    dir_path = Path(directory)
    if not dir_path.is_dir():
        reason = "is not a directory" if dir_path.exists() else "does not exist"
        return LoadResult.failure(f"Workflow directory {dir_path} {reason}")

    definitions: list[WorkflowDefinition] = []
    errors: list[str] = []
    for path in _definition_files(dir_path):
        loaded = load_workflow_from_file(path)
        if loaded:
            definitions.append(loaded.unwrap())
        else:
            errors.append(f"{path.name}: {loaded.error}")

    for error in errors:
        logger.warning(f"Skipped workflow file {error}")

    return LoadResult.success(definitions, metadata={"errors": errors})


__all__ = [
    "DEFINITION_SUFFIXES",
    "load_workflow_from_yaml",
    "load_workflow_from_file",
    "discover_workflows",
]
