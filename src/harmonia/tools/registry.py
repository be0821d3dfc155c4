"""Tool registry serving ``namespace.function`` recipients."""

from __future__ import annotations

import inspect
import json
import re
import time
import typing
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

from loguru import logger
from pydantic import create_model
from republic import Tool

from harmonia.errors import ToolArgumentsError

MODEL_NAME_RE = re.compile(r"[^A-Za-z0-9_]")


def _shorten_text(text: str, width: int = 30, placeholder: str = "...") -> str:
    """Shorten text to width characters, cutting in the middle of words if needed."""
    if len(text) <= width:
        return text

    available = width - len(placeholder)
    if available <= 0:
        return placeholder

    return text[:available] + placeholder


@dataclass(frozen=True)
class ToolDescriptor:
    """Tool metadata and runtime handle."""

    name: str
    short_description: str
    detail: str
    tool: Tool
    source: str = "builtin"


class RegisteredTool:
    """A registry entry resolved for one tool-call dispatch."""

    def __init__(self, registry: ToolRegistry, descriptor: ToolDescriptor) -> None:
        self._registry = registry
        self._descriptor = descriptor

    @property
    def name(self) -> str:
        return self._descriptor.name

    @property
    def parameters(self) -> dict[str, Any]:
        return dict(self._descriptor.tool.parameters or {})

    async def invoke(self, arguments: dict[str, Any]) -> Any:
        return await self._registry.execute(self._descriptor.name, kwargs=arguments)


class ToolRegistry:
    """Registry of republic tools addressed as ``namespace.function``.

    Names are matched case-insensitively so ``Functions.Search`` and
    ``functions.search`` resolve to the same tool.
    """

    def __init__(self) -> None:
        self._tools: dict[str, ToolDescriptor] = {}

    def register(self, descriptor: ToolDescriptor) -> None:
        if "." not in descriptor.name.strip("."):
            raise ValueError(f"Tool name must look like 'namespace.function': {descriptor.name}")
        self._tools[descriptor.name.casefold()] = descriptor

    def register_function(
        self,
        name: str,
        *,
        short_description: str = "",
        detail: str = "",
        source: str = "builtin",
    ) -> Callable[[Callable[..., Any]], Callable[..., Any]]:
        """Register a plain function; parameters are derived from its signature."""

        def decorator(func: Callable[..., Any]) -> Callable[..., Any]:
            description = short_description or (inspect.getdoc(func) or "").split("\n", 1)[0]
            tool = Tool(
                name=name,
                description=description,
                parameters=_parameters_schema(name, func),
                handler=func,
            )
            self.register(
                ToolDescriptor(
                    name=name,
                    short_description=description,
                    detail=detail or description,
                    tool=tool,
                    source=source,
                )
            )
            return func

        return decorator

    def register_namespace(self, namespace: str, tools: list[Tool], *, source: str = "plugin") -> None:
        """Register republic tools under ``namespace`` using each tool's own name as the function."""

        for tool in tools:
            self.register(
                ToolDescriptor(
                    name=f"{namespace}.{tool.name}",
                    short_description=tool.description or "",
                    detail=tool.description or "",
                    tool=tool,
                    source=source,
                )
            )

    def has(self, name: str) -> bool:
        return name.casefold() in self._tools

    def get(self, name: str) -> ToolDescriptor | None:
        return self._tools.get(name.casefold())

    def descriptors(self) -> list[ToolDescriptor]:
        return sorted(self._tools.values(), key=lambda item: item.name)

    def compact_rows(self) -> list[str]:
        return [f"{descriptor.name}: {descriptor.short_description}" for descriptor in self.descriptors()]

    def resolve(self, namespace: str, function: str) -> RegisteredTool | None:
        descriptor = self.get(f"{namespace}.{function}")
        if descriptor is None:
            return None
        return RegisteredTool(self, descriptor)

    async def execute(self, name: str, *, kwargs: dict[str, Any]) -> Any:
        descriptor = self.get(name)
        if descriptor is None:
            raise KeyError(name)

        self._log_tool_call(descriptor.name, kwargs)
        start = time.monotonic()
        try:
            result = descriptor.tool.run(**kwargs)
            if inspect.isawaitable(result):
                result = await result
            return result
        except Exception:
            logger.exception("tool.call.error name={}", descriptor.name)
            raise
        finally:
            duration = time.monotonic() - start
            logger.info("tool.call.end name={} duration={:.3f}ms", descriptor.name, duration * 1000)

    def _log_tool_call(self, name: str, kwargs: dict[str, Any]) -> None:
        params: list[str] = []
        for key, value in kwargs.items():
            try:
                rendered = json.dumps(value, ensure_ascii=False)
            except TypeError:
                rendered = repr(value)
            value = _shorten_text(rendered, width=30, placeholder="...")
            if value.startswith('"') and not value.endswith('"'):
                value = value + '"'
            if value.startswith("{") and not value.endswith("}"):
                value = value + "}"
            if value.startswith("[") and not value.endswith("]"):
                value = value + "]"
            params.append(f"{key}={value}")
        logger.info("tool.call.start name={} {{ {} }}", name, ", ".join(params))


def _parameters_schema(name: str, func: Callable[..., Any]) -> dict[str, Any]:
    try:
        hints = typing.get_type_hints(func)
    except (NameError, TypeError) as exc:
        raise ToolArgumentsError(f"Cannot resolve annotations of tool '{name}': {exc}") from exc

    fields: dict[str, Any] = {}
    for parameter in inspect.signature(func).parameters.values():
        if parameter.kind in (inspect.Parameter.VAR_POSITIONAL, inspect.Parameter.VAR_KEYWORD):
            continue
        annotation = hints.get(parameter.name, Any)
        default = ... if parameter.default is inspect.Parameter.empty else parameter.default
        fields[parameter.name] = (annotation, default)

    model = create_model(MODEL_NAME_RE.sub("_", f"{name}_params"), **fields)
    return model.model_json_schema()
