"""Structured data-extraction tool schemas, one per task.

Gemini is asked to call the task's logging function whenever it has collected
new information from the user. Each task has its own declaration with a
disjoint set of fields:

- task 1 ``log_task1_data``: full medication intake
- task 2 ``log_task2_data``: daily check-in
- task 3 ``log_task3_data``: profile update

The relay does not execute anything for these calls; it only republishes the
arguments and acknowledges the call.
"""

from typing import Any

from google.genai.types import FunctionDeclaration, Tool


def _string_field(description: str) -> dict[str, str]:
    return {"type": "string", "description": description}


# ---------------------------------------------------------------------------
# Function declarations
# ---------------------------------------------------------------------------

TASK1_INTAKE_DECLARATION = FunctionDeclaration(
    name="log_task1_data",
    description=(
        "Log information collected during the medication intake. "
        "Call this every time the user provides new details; include only the fields you just learned."
    ),
    parameters={
        "type": "object",
        "properties": {
            "patient_name": _string_field("The user's full name"),
            "medication_name": _string_field("Name of the medication, spelled as confirmed by the user"),
            "dosage": _string_field("Dose per intake (e.g. '500 mg', 'two tablets')"),
            "frequency": _string_field("How often the medication is taken (e.g. 'daily', 'twice a day')"),
            "dose_time": _string_field("Time(s) of day the medication is taken (e.g. '8am')"),
            "caregiver_name": _string_field("Name of the caregiver to notify, if any"),
            "caregiver_phone": _string_field("Caregiver's phone number, if provided"),
        },
    },
)

TASK2_CHECK_IN_DECLARATION = FunctionDeclaration(
    name="log_task2_data",
    description=(
        "Log the outcome of the daily medication check-in. "
        "Call this once the user has said whether they took their medication."
    ),
    parameters={
        "type": "object",
        "properties": {
            "status": _string_field("Medication status: TAKEN, MISSED or SNOOZED"),
            "reminder_time": _string_field("When to remind the user again, if they asked to be reminded later"),
        },
        "required": ["status"],
    },
)

TASK3_PROFILE_DECLARATION = FunctionDeclaration(
    name="log_task3_data",
    description=(
        "Log changes to the user's profile. "
        "Call this whenever the user confirms an updated value; include only the changed fields."
    ),
    parameters={
        "type": "object",
        "properties": {
            "preferred_name": _string_field("Name the user wants to be called"),
            "phone_number": _string_field("Updated phone number"),
            "address": _string_field("Updated home address"),
            "emergency_contact": _string_field("Updated emergency contact name and number"),
            "notes": _string_field("Any other profile change the user mentioned"),
        },
    },
)


# Tool schema per task id
TASK_TOOL_SCHEMAS: dict[int, FunctionDeclaration] = {
    1: TASK1_INTAKE_DECLARATION,
    2: TASK2_CHECK_IN_DECLARATION,
    3: TASK3_PROFILE_DECLARATION,
}


def get_tool_schema(task_id: int) -> FunctionDeclaration | None:
    """Return the tool schema for a task, or None if the task has none."""
    return TASK_TOOL_SCHEMAS.get(task_id)


def schema_fields(declaration: FunctionDeclaration) -> set[str]:
    """Field names declared by a tool schema."""
    if declaration.parameters is None or not declaration.parameters.properties:
        return set()
    return set(declaration.parameters.properties)


def build_tools(declaration: FunctionDeclaration | None) -> list[Tool]:
    """Wrap a declaration in the google.genai Tool list used in the setup message."""
    if declaration is None:
        return []
    return [Tool(function_declarations=[declaration])]


def tools_payload(declaration: FunctionDeclaration | None) -> list[dict[str, Any]]:
    """Serialize the session's tools for the raw ``setup.tools`` wire field."""
    return [
        tool.model_dump(mode="json", by_alias=True, exclude_none=True)
        for tool in build_tools(declaration)
    ]
