from abc import ABC, abstractmethod
from enum import Enum
from typing import TYPE_CHECKING, Any, Dict, Optional, Type

from pydantic import BaseModel, Field

from voedit.settings import ToolSpec

if TYPE_CHECKING:
    from voedit.workspace import Workspace


# Models
class ToolResponseType(str, Enum):
    text = "text"


class ToolTextResponse(BaseModel):
    type: ToolResponseType = Field(default=ToolResponseType.text)
    text: Optional[str] = None


ToolResponse = ToolTextResponse

# Global registry of tool name -> tool class
_registry: Dict[str, Type["BaseTool"]] = {}


def register_tool(name: str, tool: Type["BaseTool"]) -> None:
    """Registers a tool class."""
    if name in _registry:
        raise ValueError(f"Tool with name '{name}' already registered.")
    _registry[name] = tool


def unregister_tool(name: str) -> bool:
    """Unregister a tool by name. Returns True if removed, False if not present."""
    return _registry.pop(name, None) is not None


def get_tool(name: str) -> Optional[Type["BaseTool"]]:
    """Gets a tool class by name."""
    return _registry.get(name)


def get_all_tools() -> Dict[str, Type["BaseTool"]]:
    """Returns a copy of the tool registry."""
    return dict(_registry)


def tool(name: str):
    """Class decorator registering a BaseTool subclass under name."""

    def wrap(cls: Type["BaseTool"]) -> Type["BaseTool"]:
        cls.name = name
        register_tool(name, cls)
        return cls

    return wrap


class BaseTool(ABC):
    # Set by the @tool decorator
    name: str

    def __init__(self, workspace: "Workspace") -> None:
        self.workspace = workspace

    @abstractmethod
    async def run(self, spec: ToolSpec, args: Any) -> Optional[ToolResponse]:
        """
        Execute this tool against the workspace.
        Args:
            spec: ToolSpec including name and optional config for this invocation.
            args: Parsed arguments structure (e.g., dict). Not a JSON string.
        Returns:
            ToolResponse with the text handed back to the caller.
        """
        pass

    @abstractmethod
    async def openapi_spec(self, spec: ToolSpec) -> Dict[str, Any]:
        """
        Return this tool's definition in OpenAI 'function' tool format,
        using JSON Schema for parameters.
        """
        pass
