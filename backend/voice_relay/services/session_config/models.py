"""Session configuration models."""

from google.genai.types import FunctionDeclaration
from pydantic import BaseModel, ConfigDict


class SessionConfig(BaseModel):
    """Conversational configuration for one relay session.

    Resolved once when the upstream connection opens and never changed
    afterwards.
    """

    model_config = ConfigDict(frozen=True)

    task_id: int
    system_instruction_text: str
    tool_schema: FunctionDeclaration | None = None
    initial_trigger: str

    @property
    def tool_name(self) -> str | None:
        """Name of the session's registered function, if any."""
        return self.tool_schema.name if self.tool_schema is not None else None
