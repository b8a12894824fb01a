# Re-export the base tool interfaces and registry
from .base import (  # noqa: F401
    BaseTool,
    ToolResponseType,
    ToolTextResponse,
    ToolResponse,
    register_tool,
    unregister_tool,
    get_tool,
    get_all_tools,
    tool,
)

# Built-in tools register themselves on import
from . import edit_tool  # noqa: F401,E402
