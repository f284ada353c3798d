"""Durable task ledger: published task snapshots plus JSON file persistence."""

from __future__ import annotations

import json
import os
import tempfile
from pathlib import Path

import structlog

from agentchain.core.exceptions import LedgerError, TaskNotFoundError
from agentchain.core.state import Status, Task

logger = structlog.get_logger(__name__)


class TaskLedger:
    """Holds the latest published snapshot of every task.

    Writers hand whole :class:`Task` objects to :meth:`publish`; the ledger
    stores a private copy in one assignment, so a reader never sees a task
    halfway through an update. After every publish the full collection is
    written to ``path`` (skipped when ``path`` is ``None``).

    Usage::

        ledger = TaskLedger(".agentchain/tasks.json")
        ledger.load()
        ledger.publish(task)
        ledger.get(task.id).status
    """

    def __init__(self, path: Path | str | None = None) -> None:
        """Initialise an empty ledger.

        Args:
            path: JSON file the collection is written to and loaded from.
                ``None`` keeps the ledger in memory only.
        """
        self._path = Path(path) if path is not None else None
        self._tasks: dict[str, Task] = {}

    @property
    def path(self) -> Path | None:
        return self._path

    def __len__(self) -> int:
        return len(self._tasks)

    def __contains__(self, task_id: object) -> bool:
        return task_id in self._tasks

    # ---- reads ----

    def get(self, task_id: str) -> Task:
        """Return the published snapshot of a task.

        Callers must not mutate the returned object; take a
        :meth:`Task.snapshot` first.

        Args:
            task_id: Id of the task to look up.

        Returns:
            The task as last published.

        Raises:
            TaskNotFoundError: If the id is unknown.
        """
        task = self._tasks.get(task_id)
        if task is None:
            raise TaskNotFoundError(task_id)
        return task

    def all(self) -> list[Task]:
        """All published tasks in insertion order."""
        return list(self._tasks.values())

    # ---- writes ----

    def publish(self, task: Task) -> bool:
        """Make ``task`` the visible state of its id and persist the ledger.

        Once a task is recorded as CANCELLED its record is frozen; later
        publishes for it are dropped. When persisting fails the previous
        record of the id (or its absence) is restored before the error is
        raised, so the in-memory view never runs ahead of the file.

        Args:
            task: The full task state to record. A private copy is stored.

        Returns:
            ``True`` if the task was recorded, ``False`` if it was dropped
            because the task is cancelled.

        Raises:
            LedgerError: If the ledger cannot be serialised or written.
        """
        previous = self._tasks.get(task.id)
        if previous is not None and previous.status == Status.CANCELLED and task.status != Status.CANCELLED:
            logger.debug("ledger_update_discarded", task_id=task.id, status=task.status.value)
            return False

        self._tasks[task.id] = task.snapshot()
        try:
            self.save()
        except LedgerError:
            if previous is None:
                self._tasks.pop(task.id, None)
            else:
                self._tasks[task.id] = previous
            raise
        return True

    def save(self) -> None:
        """Overwrite the ledger file with every task.

        The collection is serialised in full before anything is written, then
        written next to its final location and moved into place, so a crash
        leaves either the old or the new collection on disk.

        Raises:
            LedgerError: If a task cannot be serialised or the file cannot be
                written.
        """
        if self._path is None:
            return
        payload = [task.to_dict() for task in self._tasks.values()]
        try:
            text = json.dumps(payload, indent=2, default=str)
        except (TypeError, ValueError) as exc:
            logger.error("ledger_serialise_failed", path=str(self._path), error=str(exc))
            raise LedgerError(self._path, f"cannot serialise: {exc}") from exc

        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(
                prefix=f".{self._path.name}.", suffix=".tmp", dir=self._path.parent,
            )
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as fh:
                    fh.write(text)
                os.replace(tmp_name, self._path)
            except BaseException:
                Path(tmp_name).unlink(missing_ok=True)
                raise
        except OSError as exc:
            logger.error("ledger_save_failed", path=str(self._path), error=str(exc))
            raise LedgerError(self._path, f"cannot write: {exc}") from exc
        logger.debug("ledger_saved", path=str(self._path), tasks=len(payload))

    def load(self) -> int:
        """Replace the in-memory collection with what was last persisted.

        A missing file yields an empty ledger. Returns the number of tasks loaded.

        Raises:
            LedgerError: If the file exists but cannot be read or parsed.
        """
        if self._path is None or not self._path.exists():
            return 0
        try:
            raw = json.loads(self._path.read_text(encoding="utf-8"))
            if not isinstance(raw, list):
                raise ValueError("expected a JSON array of tasks")
            tasks = [Task.from_dict(item) for item in raw]
        except (OSError, ValueError, KeyError, TypeError) as exc:
            raise LedgerError(self._path, f"cannot load: {exc}") from exc

        self._tasks = {task.id: task for task in tasks}
        logger.info("ledger_loaded", path=str(self._path), tasks=len(self._tasks))
        return len(self._tasks)
