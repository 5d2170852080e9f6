"""
LLM Service

Tiered access to OpenAI-compatible chat endpoints (Ollama, llama-server):

    router   — tiny model, complexity classification only
    fast     — single tool call / conversational replies
    thinking — agentic loop with function calling

Each tier gets a reachability probe at startup (GET {url}/models, bounded by
llm.health_timeout). Requests run in worker threads via requests and are
bounded with asyncio.wait_for so no call blocks the event loop.

When a tier is unhealthy and llm.api.fallback_enabled is set, plain chat
requests fall back to the Anthropic API.
"""

import asyncio
import logging
import re
import time
from typing import Dict, List, Optional

import requests

logger = logging.getLogger("valet.llm")

TIERS = ("router", "fast", "thinking")


class LLMUnavailable(Exception):
    """The requested tier could not answer (unreachable, error, or timeout)."""


_ARTIFACT_PATTERNS = [
    (re.compile(r"<think>[\s\S]*?</think>", re.IGNORECASE), ""),
    (re.compile(r"</?think>", re.IGNORECASE), ""),
    (re.compile(r"<\|im_end\|>", re.IGNORECASE), ""),
    (re.compile(r"<\|im_start\|>", re.IGNORECASE), ""),
    (re.compile(r"<\|end\|>", re.IGNORECASE), ""),
    (re.compile(r"<\|eot_id\|>", re.IGNORECASE), ""),
    (re.compile(r"<\|assistant\|>", re.IGNORECASE), ""),
    (re.compile(r"<\|user\|>", re.IGNORECASE), ""),
    (re.compile(r"\n{3,}"), "\n\n"),
]


def clean_llm_output(text: str) -> str:
    """Strip thinking blocks and chat-template tokens from model output."""
    for pattern, replacement in _ARTIFACT_PATTERNS:
        text = pattern.sub(replacement, text)
    return text.strip()


class LLMService:
    """Routes chat requests to the configured model tiers."""

    def __init__(self, config):
        self.config = config
        self.tiers: Dict[str, dict] = {}
        for tier in TIERS:
            self.tiers[tier] = {
                "url": config.get(f"llm.{tier}.url", "").rstrip("/"),
                "model": config.get(f"llm.{tier}.model"),
                "max_tokens": config.get(f"llm.{tier}.max_tokens", 512),
            }
        self.health_timeout = float(config.get("llm.health_timeout", 35.0))
        self.request_timeout = float(config.get("llm.request_timeout", 120.0))
        self.max_iterations = int(config.get("llm.agent_max_iterations", 10))

        self.api_model = config.get("llm.api.model", "claude-sonnet-4-20250514")
        self.api_key_env = config.get("llm.api.api_key_env")
        self.api_fallback = bool(config.get("llm.api.fallback_enabled", False))

        self._healthy = {tier: False for tier in TIERS}
        # Call metadata for the status capability
        self.last_call_info = None

    async def initialize(self) -> None:
        await asyncio.gather(*(self.check_health(tier) for tier in TIERS))
        logger.info(f"LLMService initialized (healthy={self._healthy})")

    async def check_health(self, tier: str) -> bool:
        """Probe one tier; any failure or timeout marks it unhealthy."""
        url = f"{self.tiers[tier]['url']}/models"
        try:
            response = await asyncio.wait_for(
                asyncio.to_thread(requests.get, url, timeout=self.health_timeout),
                timeout=self.health_timeout,
            )
            self._healthy[tier] = response.ok
            logger.debug(f"LLM {tier} health check: ok={response.ok}")
        except Exception as e:
            logger.warning(f"LLM {tier} tier health check failed: {e}")
            self._healthy[tier] = False
        return self._healthy[tier]

    def is_healthy(self, tier: str) -> bool:
        return self._healthy.get(tier, False)

    def health(self) -> Dict[str, bool]:
        return dict(self._healthy)

    # -------------------------------------------------------------------
    # Chat
    # -------------------------------------------------------------------

    async def chat(self, messages: List[dict], *,
                   tier: str = "fast",
                   max_tokens: Optional[int] = None,
                   tools: Optional[list] = None,
                   timeout: Optional[float] = None) -> str:
        """
        Send a chat completion and return the cleaned text

        Raises:
            LLMUnavailable: tier unreachable, rejected, or timed out (and no
                API fallback applies)
        """
        if not self.is_healthy(tier) and self.api_fallback and not tools:
            return await self._chat_api(messages, max_tokens or self.tiers[tier]["max_tokens"])

        message = await self._complete(messages, tier=tier, max_tokens=max_tokens,
                                       tools=tools, timeout=timeout)
        return clean_llm_output(message.get("content") or "")

    async def chat_with_tools(self, messages: List[dict], tools: list,
                              tier: str = "thinking") -> dict:
        """Chat with function calling; returns the raw assistant message.

        The message dict carries "content" and, when the model wants tools,
        "tool_calls" in OpenAI format.
        """
        message = await self._complete(messages, tier=tier, tools=tools)
        if message.get("content"):
            message["content"] = clean_llm_output(message["content"])
        return message

    async def _complete(self, messages, *, tier, max_tokens=None, tools=None,
                        timeout=None) -> dict:
        tier_config = self.tiers[tier]
        bound = timeout if timeout is not None else self.request_timeout
        payload = {
            "model": tier_config["model"],
            "messages": messages,
            "max_tokens": max_tokens or tier_config["max_tokens"],
        }
        if tools:
            payload["tools"] = tools
            payload["tool_choice"] = "auto"

        logger.debug(f"LLM chat: tier={tier}, model={tier_config['model']}, "
                     f"tools={len(tools) if tools else 0}")
        start = time.time()
        try:
            data = await asyncio.wait_for(
                asyncio.to_thread(self._post_chat, tier_config["url"], payload, bound),
                timeout=bound,
            )
        except asyncio.TimeoutError as e:
            self._record_call(tier, start, error="timeout")
            raise LLMUnavailable(f"{tier} tier timed out after {bound}s") from e
        except requests.RequestException as e:
            self._record_call(tier, start, error=str(e))
            raise LLMUnavailable(f"{tier} tier request failed: {e}") from e

        try:
            usage = data.get("usage") or {}
            self._record_call(tier, start,
                              input_tokens=usage.get("prompt_tokens"),
                              output_tokens=usage.get("completion_tokens"))
            choices = data.get("choices") or [{}]
            message = dict(choices[0].get("message") or {})
        except (AttributeError, TypeError, KeyError, IndexError, ValueError) as e:
            self._record_call(tier, start, error="malformed response")
            raise LLMUnavailable(f"{tier} tier returned a malformed response") from e

        if not isinstance(message.get("content") or "", str):
            raise LLMUnavailable(f"{tier} tier returned non-text content")
        return message

    @staticmethod
    def _post_chat(url: str, payload: dict, timeout: float) -> dict:
        response = requests.post(f"{url}/chat/completions", json=payload, timeout=timeout)
        if response.status_code == 400:
            try:
                err = response.json().get("error", {})
            except ValueError:
                err = {}
            logger.error(f"LLM server rejected request: {err}")
        response.raise_for_status()
        return response.json()

    async def _chat_api(self, messages: List[dict], max_tokens: int) -> str:
        """Anthropic API fallback for plain chat requests."""
        api_key = self.config.get_env(self.api_key_env)
        if not api_key:
            raise LLMUnavailable("Anthropic API key not configured")

        try:
            import anthropic
        except ImportError as e:
            raise LLMUnavailable("anthropic package not installed") from e

        system = "\n".join(m["content"] for m in messages if m.get("role") == "system")
        convo = [
            {"role": m["role"], "content": m["content"]}
            for m in messages if m.get("role") in ("user", "assistant")
        ]
        kwargs = {"model": self.api_model, "max_tokens": max_tokens, "messages": convo}
        if system:
            kwargs["system"] = system

        start = time.time()
        client = anthropic.Anthropic(api_key=api_key)
        try:
            message = await asyncio.wait_for(
                asyncio.to_thread(client.messages.create, **kwargs),
                timeout=self.request_timeout,
            )
        except asyncio.TimeoutError as e:
            self._record_call("api", start, error="timeout")
            raise LLMUnavailable("Anthropic API timed out") from e
        except anthropic.APIError as e:
            self._record_call("api", start, error=str(e))
            raise LLMUnavailable(f"Anthropic API call failed: {e}") from e

        self._record_call("api", start,
                          input_tokens=message.usage.input_tokens,
                          output_tokens=message.usage.output_tokens)
        return clean_llm_output(message.content[0].text)

    def _record_call(self, tier, start, *, input_tokens=None, output_tokens=None, error=None):
        self.last_call_info = {
            "tier": tier,
            "input_tokens": input_tokens,
            "output_tokens": output_tokens,
            "latency_ms": (time.time() - start) * 1000,
            "error": error,
        }
