"""
Tool abstractions and the named tool registry the reasoning engine executes against.
"""
from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional, Type

import pydantic
from pydantic import BaseModel

from agents.tools.exceptions import DuplicateToolError, ToolNotFoundError
from agents.validators import format_validation_errors
from utils.logger import get_logger

logger = get_logger(__name__)


@dataclass
class ToolResult:
    """Outcome of one tool execution. Failures are values, never exceptions."""

    success: bool
    data: Optional[Dict[str, Any]] = None
    error: Optional[str] = None


class NoParams(BaseModel):
    model_config = pydantic.ConfigDict(extra="ignore")


class ToolBase(ABC):
    """Abstract base class for tool metadata and execution."""

    params_model: Type[BaseModel] = NoParams

    def __init__(self, name: str, description: str):
        self.name = name
        self.description = description

    def __str__(self) -> str:
        return f"{self.__class__.__name__}({self.name})"

    def get_summary(self) -> Dict[str, str]:
        """Return the name/description pair used for introspection."""
        return {"name": self.name, "description": self.description}

    def parse_params(self, params: Optional[Dict[str, Any]]) -> BaseModel:
        return self.params_model.model_validate(params or {})

    @abstractmethod
    def run(self, params: BaseModel) -> Dict[str, Any]:
        """Execute the tool with validated parameters and return its payload."""
        raise NotImplementedError


class FunctionTool(ToolBase):
    """Adapts a plain callable taking a typed parameter model into a tool."""

    def __init__(
        self,
        name: str,
        description: str,
        func: Callable[[Any], Dict[str, Any]],
        params_model: Type[BaseModel] = NoParams,
    ):
        super().__init__(name, description)
        self.func = func
        self.params_model = params_model

    def run(self, params: BaseModel) -> Dict[str, Any]:
        return self.func(params)


class ToolRegistry:
    """Named catalogue of tools. Registration order is preserved for listing."""

    def __init__(self) -> None:
        self._tools: Dict[str, ToolBase] = {}

    def register(self, tool: ToolBase) -> None:
        if tool.name in self._tools:
            raise DuplicateToolError(tool.name)
        self._tools[tool.name] = tool
        logger.debug("tool_registered", tool_name=tool.name)

    def get(self, name: str) -> Optional[ToolBase]:
        return self._tools.get(name)

    def require(self, name: str) -> ToolBase:
        tool = self._tools.get(name)
        if tool is None:
            raise ToolNotFoundError(name, self._tools)
        return tool

    def has(self, name: str) -> bool:
        return name in self._tools

    def list_names(self) -> List[str]:
        return list(self._tools)

    def list_tools(self) -> List[Dict[str, str]]:
        return [tool.get_summary() for tool in self._tools.values()]

    def execute(self, name: str, params: Optional[Dict[str, Any]] = None) -> ToolResult:
        """Run a tool by name. Unknown names, bad parameters and tool exceptions all become failed results."""
        try:
            tool = self.require(name)
        except ToolNotFoundError as exc:
            return ToolResult(success=False, error=str(exc))

        try:
            parsed = tool.parse_params(params)
        except pydantic.ValidationError as exc:
            error = f"Invalid parameters for {name}: {format_validation_errors(exc)}"
            logger.warning("tool_params_invalid", tool_name=name, error=error)
            return ToolResult(success=False, error=error)

        try:
            data = tool.run(parsed)
        except Exception as exc:
            logger.error("tool_execution_failed", tool_name=name, error=str(exc), exc_info=True)
            return ToolResult(success=False, error=str(exc) or exc.__class__.__name__)

        logger.info("tool_executed", tool_name=name, success=True)
        return ToolResult(success=True, data=data)
