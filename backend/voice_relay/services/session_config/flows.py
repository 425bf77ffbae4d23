"""Flow-definition store.

Flow definitions are mermaid flowcharts describing the conversational steps
of a task, stored as ``task{N}.mmd`` in the flows directory. The same
directory may hold a ``profile.json`` with pre-seeded profile state that is
shown to the model during profile-update sessions.
"""

import json
import logging
from pathlib import Path
from typing import Any

from voice_relay.core.exceptions import ConfigurationError, FlowNotFoundError

logger = logging.getLogger(__name__)

FLOW_FILENAME_TEMPLATE = "task{task_id}.mmd"
PROFILE_FILENAME = "profile.json"


class FlowStore:
    """Reads flow documents and the profile seed from a directory."""

    def __init__(self, directory: Path | str) -> None:
        self._directory = Path(directory)

    @property
    def directory(self) -> Path:
        return self._directory

    def flow_path(self, task_id: int) -> Path:
        return self._directory / FLOW_FILENAME_TEMPLATE.format(task_id=task_id)

    def load(self, task_id: int) -> str:
        """Return the flow-definition text for a task.

        Raises:
            FlowNotFoundError: If the document is missing, unreadable or empty.
        """
        path = self.flow_path(task_id)
        try:
            text = path.read_text(encoding="utf-8")
        except OSError as exc:
            raise FlowNotFoundError(task_id, str(path)) from exc

        if not text.strip():
            raise FlowNotFoundError(task_id, str(path))

        logger.debug("Loaded flow for task %d from %s (%d chars)", task_id, path, len(text))
        return text

    def load_profile(self) -> dict[str, Any] | None:
        """Return the pre-seeded profile, or None when no profile file exists.

        Raises:
            ConfigurationError: If the profile file is not a JSON object.
        """
        path = self._directory / PROFILE_FILENAME
        if not path.is_file():
            return None

        try:
            data = json.loads(path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as exc:
            raise ConfigurationError(f"Invalid profile seed {path}: {exc}") from exc

        if not isinstance(data, dict):
            raise ConfigurationError(f"Profile seed {path} must be a JSON object")
        return data

    def available_tasks(self) -> list[int]:
        """Task ids that have a flow document, sorted."""
        task_ids = []
        for path in self._directory.glob("task*.mmd"):
            suffix = path.stem[len("task"):]
            if suffix.isdigit():
                task_ids.append(int(suffix))
        return sorted(task_ids)
