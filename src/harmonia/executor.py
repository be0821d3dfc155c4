"""HarmonyScript step interpreter."""

from __future__ import annotations

import asyncio
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from typing import Any

from loguru import logger

from harmonia.errors import (
    ExecutionCancelledError,
    ExecutionError,
    ExpressionError,
    ScriptNotFoundError,
    StepValidationError,
    ToolArgumentsError,
    ToolInvocationError,
    ToolNotFoundError,
    UnsupportedStepError,
)
from harmonia.expressions import (
    EXPRESSION_SENTINEL,
    Scope,
    VarStore,
    evaluate,
    evaluate_condition,
    render_template,
)
from harmonia.models import Envelope, ExecutionResult, HarmonyError
from harmonia.providers import ChatProvider, ChatTurn, ToolHandle, ToolProvider
from harmonia.schema import SchemaValidator
from harmonia.semantic import check_for_hrf
from harmonia.steps import (
    AssistantMessageStep,
    ExtractInputStep,
    HaltStep,
    IfStep,
    Script,
    Step,
    ToolCallStep,
    is_material,
    split_recipient,
)

EXECUTION_ERROR = "HRF_EXECUTION_ERROR"
SUMMARY_PROMPT = "Summarize the results from the executed plan above for the user."


@dataclass
class ExecutionContext:
    """Mutable state of one run; never shared between runs."""

    scope: Scope
    log: list[ChatTurn] = field(default_factory=list)
    final_text: str = ""
    cancel_event: asyncio.Event | None = None


class HarmonyExecutor:
    """Walks a validated script, dispatching to the chat and tool providers."""

    def __init__(self, *, chat: ChatProvider, tools: ToolProvider) -> None:
        self._chat = chat
        self._tools = tools

    async def execute_envelope(
        self,
        envelope: Envelope | str | Mapping[str, Any],
        inputs: Mapping[str, Any] | None = None,
        *,
        schema: SchemaValidator | None = None,
        cancel_event: asyncio.Event | None = None,
    ) -> ExecutionResult:
        """Validate (when a schema is given), extract the script and run it.

        ``envelope`` may be a model, JSON text or decoded JSON. The conversation
        log starts with the envelope's plain system prompts and its first user
        message.
        """

        if schema is not None:
            checked = check_for_hrf(envelope, schema)
            if isinstance(checked, HarmonyError):
                return ExecutionResult(error=checked)
            envelope = checked
        elif not isinstance(envelope, Envelope):
            try:
                envelope = Envelope.parse_json(envelope) if isinstance(envelope, str) else Envelope.from_dict(envelope)
            except ValueError as exc:
                return ExecutionResult(error=HarmonyError(code=EXECUTION_ERROR, message=f"Invalid envelope: {exc}"))

        try:
            script = envelope.get_script()
        except (ScriptNotFoundError, StepValidationError) as exc:
            return ExecutionResult(error=HarmonyError(code=EXECUTION_ERROR, message=str(exc)))

        log = [ChatTurn(role="system", content=text) for _, text in envelope.plain_system_prompts() if text.strip()]
        user = envelope.user_message()
        if user is not None and user[1].strip():
            log.append(ChatTurn(role="user", content=user[1]))
        return await self.execute(script, inputs, log=log, cancel_event=cancel_event)

    async def execute(
        self,
        script: Script,
        inputs: Mapping[str, Any] | None = None,
        *,
        log: Sequence[ChatTurn] | None = None,
        cancel_event: asyncio.Event | None = None,
    ) -> ExecutionResult:
        ctx = ExecutionContext(
            scope=Scope(vars=VarStore(script.vars or {}), input=dict(inputs or {})),
            log=list(log or []),
            cancel_event=cancel_event,
        )
        logger.info("harmony.run.start steps={} vars={}", len(script.steps), len(ctx.scope.vars))

        try:
            await self._run_steps(ctx, script.steps, depth=0)
            if not ctx.final_text.strip():
                ctx.log.append(ChatTurn(role="system", content=SUMMARY_PROMPT))
                ctx.final_text = await self._chat.complete(ctx.log)
        except (ExecutionError, ExpressionError) as exc:
            logger.warning("harmony.run.error error={}", exc)
            return ExecutionResult(
                final_text=ctx.final_text,
                vars=ctx.scope.vars.snapshot(),
                error=HarmonyError(code=EXECUTION_ERROR, message=str(exc), details={"type": type(exc).__name__}),
            )

        logger.info("harmony.run.finish final_chars={} vars={}", len(ctx.final_text), len(ctx.scope.vars))
        return ExecutionResult(final_text=ctx.final_text, vars=ctx.scope.vars.snapshot())

    async def _run_steps(self, ctx: ExecutionContext, steps: Sequence[Step], *, depth: int) -> bool:
        """Run steps in order; return True when a halt was reached."""

        for step in steps:
            if ctx.cancel_event is not None and ctx.cancel_event.is_set():
                raise ExecutionCancelledError("Execution cancelled")
            logger.debug("harmony.step.start type={} depth={}", step.type, depth)
            if await self._run_step(ctx, step, depth=depth):
                return True
        return False

    async def _run_step(self, ctx: ExecutionContext, step: Step, *, depth: int) -> bool:
        if isinstance(step, ExtractInputStep):
            bound = {name: evaluate(expression, ctx.scope) for name, expression in step.output.items()}
            ctx.scope.vars.update(bound)
            return False

        if isinstance(step, ToolCallStep):
            ctx.scope.vars[step.save_as] = await self._call_tool(ctx, step)
            return False

        if isinstance(step, IfStep):
            branch = step.then if evaluate_condition(step.condition, ctx.scope) else step.else_
            return await self._run_steps(ctx, branch, depth=depth + 1)

        if isinstance(step, AssistantMessageStep):
            await self._assistant_message(ctx, step)
            return False

        if isinstance(step, HaltStep):
            logger.info("harmony.step.halt depth={}", depth)
            return True

        raise UnsupportedStepError(getattr(step, "type", type(step).__name__))

    async def _assistant_message(self, ctx: ExecutionContext, step: AssistantMessageStep) -> None:
        if step.content_template is not None and step.content_template.strip():
            text = render_template(step.content_template, ctx.scope)
        else:
            text = step.content or ""

        if step.channel == "analysis":
            if text.strip():
                ctx.log.append(ChatTurn(role="assistant", content=text))
            return

        if is_material(text):
            ctx.final_text = text
            return
        ctx.final_text = await self._chat.complete(ctx.log)

    async def _call_tool(self, ctx: ExecutionContext, step: ToolCallStep) -> Any:
        try:
            namespace, function = split_recipient(step.recipient)
        except ValueError as exc:
            raise ToolArgumentsError(str(exc)) from exc

        arguments = {
            name: evaluate(value, ctx.scope) if isinstance(value, str) and value.startswith(EXPRESSION_SENTINEL) else value
            for name, value in step.args.items()
        }

        tool = self._tools.resolve(namespace, function)
        if tool is None:
            raise ToolNotFoundError(step.recipient)

        arguments = normalize_arguments(tool, arguments)
        logger.info("harmony.tool.call recipient={} save_as={}", step.recipient, step.save_as)
        try:
            return await tool.invoke(arguments)
        except (TypeError, ValueError) as exc:
            raise ToolArgumentsError(f"Invalid arguments for '{step.recipient}': {exc}") from exc
        except Exception as exc:
            raise ToolInvocationError(step.recipient, exc) from exc


def normalize_arguments(tool: ToolHandle, arguments: Mapping[str, Any]) -> dict[str, Any]:
    """Coerce values for parameters declared as arrays of strings.

    A single comma-separated string becomes a trimmed list, and any other list
    becomes a list of strings. Parameter names match case-insensitively.
    """

    properties = tool.parameters.get("properties") or {}
    declared = {name.casefold(): spec for name, spec in properties.items() if isinstance(spec, Mapping)}

    normalized: dict[str, Any] = {}
    for name, value in arguments.items():
        spec = declared.get(name.casefold())
        if spec is not None and _is_string_list(spec):
            if isinstance(value, str):
                value = [part.strip() for part in value.split(",") if part.strip()]
            elif isinstance(value, list | tuple):
                value = ["" if item is None else str(item) for item in value]
        normalized[name] = value
    return normalized


def _is_string_list(spec: Mapping[str, Any]) -> bool:
    candidates = [spec, *(option for option in spec.get("anyOf", ()) if isinstance(option, Mapping))]
    for candidate in candidates:
        items = candidate.get("items")
        if candidate.get("type") == "array" and isinstance(items, Mapping) and items.get("type") == "string":
            return True
    return False
