"""Resolve a task id into the session's conversational configuration.

The system instruction is assembled from:

1. a fixed persona preamble,
2. the current time in the reference time zone,
3. the task's flow definition (mermaid flowchart),
4. task-specific extraction instructions naming the logging function,
5. fallback guidance for unclear audio and unfamiliar words.

Resolution is pure for a given (task_id, now): the only inputs read are the
flow store documents. A missing flow document fails the session instead of
falling back to a generic prompt.
"""

import logging
from datetime import UTC, datetime
from typing import Any
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from voice_relay.core.exceptions import ConfigurationError
from voice_relay.services.session_config.flows import FlowStore
from voice_relay.services.session_config.models import SessionConfig
from voice_relay.services.session_config.tools import get_tool_schema

logger = logging.getLogger(__name__)

DEFAULT_TASK_ID = 1
PROFILE_UPDATE_TASK_ID = 3

PERSONA_PREAMBLE = (
    "You are Cheesecake, a friendly medication reminder assistant.\n"
    "You must strictly follow the flow described in this mermaid flowchart."
)

FALLBACK_GUIDANCE = (
    "You are interacting with the user via voice. Keep your responses short, conversational "
    "and follow the flowchart exactly.\n"
    "If you don't hear a response or it doesn't make sense, repeat the question. "
    "Ask the user to spell things out if you don't know the spelling."
)

TASK_EXTRACTION_INSTRUCTIONS: dict[int, str] = {
    1: (
        "Whenever you collect new information (the user's name, medication name, dosage, frequency, "
        "time of day, or caregiver details), call the `{tool}` function with the fields you just collected. "
        "Do not read the logged data back as a list; just continue the conversation."
    ),
    2: (
        "Once the user tells you whether they took their medication, call the `{tool}` function with "
        "status set to TAKEN, MISSED or SNOOZED. If they ask to be reminded later, include reminder_time."
    ),
    3: (
        "Walk through the user's profile and confirm each detail. Whenever the user changes a value, "
        "call the `{tool}` function with only the fields that changed."
    ),
}

DEFAULT_INITIAL_TRIGGER = "Hello"

SCRIPTED_INITIAL_TRIGGERS: dict[int, str] = {
    PROFILE_UPDATE_TASK_ID: (
        'Start the call by saying exactly: "Hi, it\'s Cheesecake! I\'d like to make sure the details '
        'in your profile are still up to date. Do you have a minute?"'
    ),
}


def parse_task_id(raw: Any, default: int = DEFAULT_TASK_ID) -> int:
    """Parse the connection-time task selector.

    Absent, unparseable and non-positive values select the default task.
    """
    if raw is None:
        return default
    try:
        task_id = int(str(raw).strip())
    except ValueError:
        logger.warning("Invalid task id %r, using default task %d", raw, default)
        return default
    if task_id < 1:
        logger.warning("Task id %d out of range, using default task %d", task_id, default)
        return default
    return task_id


def format_current_time(now: datetime, timezone_name: str) -> str:
    """Render the current-time statement for the system instruction."""
    return f"The current date and time is {now.strftime('%A, %B %d, %Y at %I:%M %p')} ({timezone_name})."


def format_profile(profile: dict[str, Any]) -> str:
    """Render a pre-seeded profile as a bullet list."""
    lines = ["The user's profile currently on file:"]
    for key, value in profile.items():
        lines.append(f"- {key.replace('_', ' ')}: {value}")
    return "\n".join(lines)


class SessionConfigResolver:
    """Builds a SessionConfig for a task id.

    Usage::

        resolver = SessionConfigResolver(FlowStore(settings.FLOWS_DIR))
        config = resolver.resolve(task_id=2)
    """

    def __init__(self, flow_store: FlowStore, timezone_name: str = "America/New_York") -> None:
        try:
            self._timezone = ZoneInfo(timezone_name)
        except (ZoneInfoNotFoundError, ValueError) as exc:
            raise ConfigurationError(f"Unknown reference time zone '{timezone_name}'") from exc
        self._timezone_name = timezone_name
        self._flow_store = flow_store

    def resolve(self, task_id: int, now: datetime | None = None) -> SessionConfig:
        """Resolve the configuration for one session.

        Args:
            task_id: The session's task selector.
            now: Current time. Naive datetimes are taken as UTC. Defaults
                to the wall clock.

        Raises:
            FlowNotFoundError: If the task has no flow document.
            ConfigurationError: If the profile seed is invalid.
        """
        if now is None:
            now = datetime.now(UTC)
        elif now.tzinfo is None:
            now = now.replace(tzinfo=UTC)
        local_now = now.astimezone(self._timezone)

        flow = self._flow_store.load(task_id)
        tool_schema = get_tool_schema(task_id)

        sections = [
            PERSONA_PREAMBLE,
            format_current_time(local_now, self._timezone_name),
            flow.strip(),
        ]

        if task_id == PROFILE_UPDATE_TASK_ID:
            profile = self._flow_store.load_profile()
            if profile:
                sections.append(format_profile(profile))

        if tool_schema is not None and task_id in TASK_EXTRACTION_INSTRUCTIONS:
            sections.append("INSTRUCTIONS:\n" + TASK_EXTRACTION_INSTRUCTIONS[task_id].format(tool=tool_schema.name))

        sections.append(FALLBACK_GUIDANCE)

        config = SessionConfig(
            task_id=task_id,
            system_instruction_text="\n\n".join(sections),
            tool_schema=tool_schema,
            initial_trigger=SCRIPTED_INITIAL_TRIGGERS.get(task_id, DEFAULT_INITIAL_TRIGGER),
        )
        logger.info(
            "Resolved session config for task %d (tool=%s, instruction=%d chars)",
            task_id,
            config.tool_name,
            len(config.system_instruction_text),
        )
        return config
