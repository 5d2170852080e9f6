"""
Agent — model-tier handling for input the router did not resolve.

    handle_simple   — fast tier, at most one capability call. The model
                      answers in a small text protocol:
                          TOOL: <capability name>
                          ARGS: {"json": "object"}
                      or just talks.
    handle_complex  — thinking tier, OpenAI function calling in a loop until
                      the model stops asking for tools or the iteration cap
                      is reached.
"""

import json
import logging
import re

from valet.capability import ExecutionContext
from valet.llm_service import LLMUnavailable

logger = logging.getLogger("valet.agent")

_TOOL_LINE = re.compile(r"TOOL:\s*(\w+)", re.IGNORECASE)
_ARGS_LINE = re.compile(r"ARGS:\s*(\{.*?\})", re.IGNORECASE | re.DOTALL)
_PROTOCOL_LINES = re.compile(r"^(TOOL|ARGS):.*$", re.IGNORECASE | re.MULTILINE)

FALLBACK_REPLY = "I'm not sure how to help with that. Try 'help' for commands."
UNAVAILABLE_REPLY = "I'm having trouble connecting. Try a simpler command or 'help'."

SIMPLE_PROMPT = """You are Valet, a concise personal assistant.

You can call ONE of these capabilities:
{capabilities}

If one fits the request, reply with exactly two lines:
TOOL: <capability name>
ARGS: <JSON object of arguments>

Otherwise answer the user directly in one or two sentences."""

COMPLEX_PROMPT = """You are Valet, a personal assistant working through a multi-step request.

Call capabilities as needed, one step at a time, using earlier results to
decide the next step. When you have everything, reply to the user with a
short summary of what you did or found. Never invent data that a
capability could look up."""


def parse_tool_reply(response: str):
    """Extract (tool_name, args) from a simple-tier reply, or (None, {})."""
    tool_match = _TOOL_LINE.search(response)
    if not tool_match:
        return None, {}

    args = {}
    args_match = _ARGS_LINE.search(response)
    if args_match:
        try:
            parsed = json.loads(args_match.group(1))
            if isinstance(parsed, dict):
                args = parsed
        except json.JSONDecodeError:
            logger.debug(f"Failed to parse tool args: {args_match.group(1)!r}")
    return tool_match.group(1), args


def strip_protocol(response: str) -> str:
    return _PROTOCOL_LINES.sub("", response).strip()


class Agent:
    """Model-backed handler for model-simple and model-complex results."""

    def __init__(self, services, registry):
        self.services = services
        self.registry = registry
        self.tool_schemas = registry.tool_schemas()
        self.tools = {cap.name: cap for cap in registry.agent_tools}

    def _context(self, text: str, session_id: str) -> ExecutionContext:
        return ExecutionContext(input=text, services=self.services, session_id=session_id)

    async def handle_simple(self, text: str, session_id: str = "default") -> str:
        system_prompt = SIMPLE_PROMPT.format(capabilities=self.registry.describe(agent_only=True))
        try:
            response = await self.services.llm.chat([
                {"role": "system", "content": system_prompt},
                {"role": "user", "content": text},
            ], tier="fast")
        except LLMUnavailable as e:
            logger.warning(f"Simple LLM call failed: {e}")
            return UNAVAILABLE_REPLY

        tool_name, args = parse_tool_reply(response)
        if tool_name:
            cap = self.tools.get(tool_name)
            if cap is not None:
                logger.debug(f"Simple agent tool call: {tool_name} {args}")
                output = await cap.execute(args, self._context(text, session_id))
                return output or ""
            logger.warning(f"Agent referenced unknown capability: {tool_name}")

        return strip_protocol(response) or FALLBACK_REPLY

    async def handle_complex(self, text: str, session_id: str = "default") -> str:
        max_iterations = self.services.llm.max_iterations
        messages = [
            {"role": "system", "content": COMPLEX_PROMPT},
            {"role": "user", "content": text},
        ]
        logger.info(f"Starting agentic loop (max_iterations={max_iterations}): {text[:50]!r}")

        try:
            for iteration in range(max_iterations):
                message = await self.services.llm.chat_with_tools(
                    messages, self.tool_schemas, tier="thinking"
                )
                tool_calls = message.get("tool_calls") or []
                if not tool_calls:
                    logger.info(f"Agentic loop complete after {iteration + 1} iteration(s)")
                    return message.get("content") or "I've completed the task."

                messages.append({
                    "role": "assistant",
                    "content": message.get("content") or "",
                    "tool_calls": tool_calls,
                })
                for call in tool_calls:
                    result = await self._run_tool_call(call, text, session_id)
                    messages.append({
                        "role": "tool",
                        "tool_call_id": call.get("id", ""),
                        "content": result,
                    })
        except LLMUnavailable as e:
            logger.warning(f"Complex LLM call failed: {e}")
            return UNAVAILABLE_REPLY

        logger.warning(f"Agentic loop hit max iterations ({max_iterations})")
        return "I worked on that but couldn't finish within my step limit. Try breaking it into smaller requests."

    async def _run_tool_call(self, call: dict, text: str, session_id: str) -> str:
        function = call.get("function") or {}
        name = function.get("name", "")
        cap = self.tools.get(name)
        if cap is None:
            logger.warning(f"Agentic loop referenced unknown capability: {name}")
            return f"Unknown tool: {name}"

        try:
            args = json.loads(function.get("arguments") or "{}")
            logger.debug(f"Agentic tool call: {name} {args}")
            output = await cap.execute(args, self._context(text, session_id))
        except Exception as e:
            # Reported back to the model as the tool result
            logger.error(f"Tool execution failed ({name}): {e}")
            return f"Error executing {name}: {e}"
        return output or ""
