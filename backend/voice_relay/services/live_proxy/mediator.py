"""Tool-call mediation for relay sessions.

The model reports collected data by calling the task's logging function.
For every recognized call the mediator:

1. formats the arguments as ``FIELD: value`` lines,
2. logs the block on the ``voice_relay.collected`` logger and produces a
   ``{"type": "log"}`` message for the client,
3. builds a ``{result: "success"}`` acknowledgment.

Acknowledgments for one upstream message are batched into a single
toolResponse. The toolCall message itself is never forwarded to the client.

Text-only model turns may instead carry an inline ``[LOG_DATA: ...]`` block;
``extract_log_data`` pulls it out so it is logged under the same banner.
"""

import json
import logging
import re
from collections.abc import Iterable
from dataclasses import dataclass, field
from typing import Any

from google.genai.types import FunctionResponse

from voice_relay.services.live_proxy.messages import build_tool_response
from voice_relay.services.live_proxy.models import LogMessage, ToolCallEvent

logger = logging.getLogger(__name__)
collected_logger = logging.getLogger("voice_relay.collected")

SUCCESS_RESPONSE = {"result": "success"}
UNKNOWN_FUNCTION_RESPONSE = {"error": "unknown function"}

# Inline data block the model may speak in text-only turns: [LOG_DATA: NAME=Ann, DOSE=10mg]
LOG_DATA_PATTERN = re.compile(r"\[LOG_DATA:\s*(.*?)\]")


def format_collected(args: dict[str, Any]) -> str:
    """Render call arguments as one ``FIELD: value`` line per field."""
    lines = []
    for key, value in args.items():
        if isinstance(value, (dict, list)):
            value = json.dumps(value)
        lines.append(f"{key.upper()}: {value}")
    return "\n".join(lines)


def extract_log_data(text: str) -> str | None:
    """Return the contents of the first ``[LOG_DATA: ...]`` block in model text."""
    match = LOG_DATA_PATTERN.search(text)
    return match.group(1).strip() if match else None


def log_collected(block: str) -> None:
    """Write a collected-data block under the COLLECTED INFORMATION banner."""
    collected_logger.info(
        "\n=== COLLECTED INFORMATION ===\n%s\n=============================",
        block,
    )


@dataclass
class MediationResult:
    """Outcome of mediating one toolCall message."""

    log_messages: list[LogMessage] = field(default_factory=list)
    function_responses: list[FunctionResponse] = field(default_factory=list)
    ignored: list[ToolCallEvent] = field(default_factory=list)

    @property
    def tool_response(self) -> dict[str, Any] | None:
        """The batched toolResponse message, or None when nothing is acknowledged."""
        if not self.function_responses:
            return None
        return build_tool_response(self.function_responses)


class ToolCallMediator:
    """Answers the extraction tool calls of one session.

    Usage::

        mediator = ToolCallMediator(registered_names={"log_task2_data"})
        result = mediator.mediate(message.calls)
        for log in result.log_messages:
            await send_downstream(log.model_dump_json())
        if result.tool_response:
            await upstream.send_json(result.tool_response)
    """

    def __init__(
        self,
        registered_names: Iterable[str],
        ack_unknown: bool = False,
        session_id: str = "",
    ) -> None:
        self._registered_names = frozenset(registered_names)
        self._ack_unknown = ack_unknown
        self._session_id = session_id

    @property
    def registered_names(self) -> frozenset[str]:
        return self._registered_names

    def mediate(self, calls: list[ToolCallEvent]) -> MediationResult:
        result = MediationResult()

        for call in calls:
            if call.name not in self._registered_names:
                logger.warning(
                    "Session %s: ignoring unregistered tool call %s(id=%s)",
                    self._session_id,
                    call.name,
                    call.id,
                )
                result.ignored.append(call)
                if self._ack_unknown:
                    result.function_responses.append(
                        FunctionResponse(id=call.id, name=call.name, response=dict(UNKNOWN_FUNCTION_RESPONSE))
                    )
                continue

            block = format_collected(call.args)
            log_collected(block)
            result.log_messages.append(LogMessage(data=block))
            result.function_responses.append(
                FunctionResponse(id=call.id, name=call.name, response=dict(SUCCESS_RESPONSE))
            )

        logger.info(
            "Session %s mediated %d tool call(s): %d logged, %d ignored",
            self._session_id,
            len(calls),
            len(result.log_messages),
            len(result.ignored),
        )
        return result
