"""Session configuration service: flows, tool schemas, system instructions.

Public API:
    - SessionConfigResolver: task id -> SessionConfig.
    - SessionConfig: Resolved per-session configuration.
    - FlowStore: Flow-definition documents and profile seed.
    - parse_task_id: Connection-time task selector parsing.
    - TASK_TOOL_SCHEMAS: Extraction tool declaration per task.
"""

from voice_relay.services.session_config.flows import FlowStore
from voice_relay.services.session_config.models import SessionConfig
from voice_relay.services.session_config.resolver import (
    DEFAULT_TASK_ID,
    SessionConfigResolver,
    parse_task_id,
)
from voice_relay.services.session_config.tools import (
    TASK_TOOL_SCHEMAS,
    build_tools,
    get_tool_schema,
    schema_fields,
    tools_payload,
)

__all__ = [
    "DEFAULT_TASK_ID",
    "FlowStore",
    "SessionConfig",
    "SessionConfigResolver",
    "TASK_TOOL_SCHEMAS",
    "build_tools",
    "get_tool_schema",
    "parse_task_id",
    "schema_fields",
    "tools_payload",
]
