"""Durable task output."""

import logging
import os
import re
import tempfile
from abc import ABC, abstractmethod
from pathlib import Path

from watchbot.core.errors import EmitError
from watchbot.core.models import TaskDescriptor

logger = logging.getLogger(__name__)

_UNSAFE_NAME_CHARS = re.compile(r"[^A-Za-z0-9._-]+")


class TaskSink(ABC):
    """Destination for emitted task descriptors."""

    @abstractmethod
    def emit_task(self, descriptor: TaskDescriptor) -> str:
        """
        Durably write a task.
        
        Args:
            descriptor: Task to write
            
        Returns:
            Handle of the written task (e.g. a file path)
            
        Raises:
            EmitError: If the task could not be written
        """
        pass


def _safe_name(value: str) -> str:
    return _UNSAFE_NAME_CHARS.sub("_", value).strip("._")


def task_filename(descriptor: TaskDescriptor, label: str) -> str:
    """
    Stable file name for a task, e.g. ``KAN-12-ticket-3.md``.

    The same entity and revision always map to the same name, so a task
    re-emitted after a crash overwrites its earlier copy instead of piling up.
    When the display id differs from the entity key, the key is included too
    (``KAN-12-pr-7-review-3.md``) since several entities can share a display id.
    """
    entity = descriptor.entity
    parts = [_safe_name(entity.label)]
    if entity.display_id and entity.display_id != entity.key:
        parts.append(_safe_name(entity.key))
    stem = "-".join(p for p in parts if p) or "task"
    return f"{stem}-{label}-{descriptor.revision}.md"


class FileTaskSink(TaskSink):
    """Writes each task as a Markdown file under a directory."""

    def __init__(self, tasks_dir: Path, label: str):
        """
        Initialize file sink.
        
        Args:
            tasks_dir: Directory receiving task files
            label: Word placed between entity id and revision in file names
        """
        self.tasks_dir = Path(tasks_dir)
        self.label = label

    def emit_task(self, descriptor: TaskDescriptor) -> str:
        task_file = self.tasks_dir / task_filename(descriptor, self.label)
        try:
            self.tasks_dir.mkdir(parents=True, exist_ok=True)
            self._atomic_write(task_file, descriptor.rendered_body)
        except OSError as e:
            raise EmitError(f"Failed to write task file {task_file}: {e}") from e

        logger.info("Created %s task: %s", self.label, task_file)
        return str(task_file)

    @staticmethod
    def _atomic_write(path: Path, content: str) -> None:
        fd, tmp_name = tempfile.mkstemp(prefix=f".{path.name}.", suffix=".tmp", dir=str(path.parent))
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write(content)
                f.flush()
                os.fsync(f.fileno())
            os.replace(tmp_name, path)
        except BaseException:
            try:
                os.unlink(tmp_name)
            except OSError:
                pass
            raise
