"""Backend implementations."""

from workflow_manager.backends.memory import MemoryBackend
from workflow_manager.backends.yaml_file import YamlBackend

__all__ = ["MemoryBackend", "YamlBackend"]
