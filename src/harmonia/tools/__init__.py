"""Tool registry for harmony-script tool calls."""

from harmonia.tools.registry import RegisteredTool, ToolDescriptor, ToolRegistry

__all__ = ["RegisteredTool", "ToolDescriptor", "ToolRegistry"]
