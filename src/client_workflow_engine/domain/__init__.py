"""Domain types for the workflow hierarchy and AI governance.

- Entity models (pydantic) and status enums
- An explicit transition table per hierarchy level
"""

__all__: list[str] = []
