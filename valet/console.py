#!/usr/bin/env python3
"""
Valet Console — interactive line-oriented surface.

Each line goes through CommandRouter.route(); routed results execute
deterministically, model-simple and model-complex results go to the Agent.

Usage:
    valet                          # default config.yaml
    valet --config my.yaml
    valet --session alice          # separate conversational session
"""

import argparse
import asyncio
import os
import sys

from valet.agent import Agent
from valet.capabilities.system import EXIT_SENTINEL
from valet.capability import RouterError, RouterResultType
from valet.config import load_config
from valet.logger import get_logger
from valet.router import DEFAULT_SESSION, CommandRouter
from valet.services import close_services, init_services

BANNER = "Valet ready. Type 'help' for commands, 'quit' to exit."
NO_MATCH_REPLY = "I didn't understand that. Type 'help' for commands."
FAILURE_REPLY = "Sorry, something went wrong handling that."


async def handle_line(router: CommandRouter, agent: Agent, text: str,
                      session_id: str = DEFAULT_SESSION) -> str:
    """Route one line and produce the reply text."""
    result = await router.route(text, session_id)

    if result.type is RouterResultType.MODEL_COMPLEX:
        return await agent.handle_complex(text, session_id)
    if result.type is RouterResultType.MODEL_SIMPLE:
        return await agent.handle_simple(text, session_id)
    if result.route is None:
        return NO_MATCH_REPLY
    return await router.execute(result.route, text, session_id)


async def run_console(config, session_id: str = DEFAULT_SESSION):
    logger = get_logger("valet", config)
    services = await init_services(config)
    try:
        router = CommandRouter()
        await router.initialize(services)
        agent = Agent(services, router.registry)

        print(BANNER)
        while True:
            try:
                line = await asyncio.to_thread(input, "> ")
            except EOFError:
                break

            text = line.strip()
            if not text:
                continue

            try:
                reply = await handle_line(router, agent, text, session_id)
            except RouterError as e:
                logger.error(f"Dispatch failed for {text!r}: {e}")
                reply = FAILURE_REPLY
            except Exception as e:
                logger.exception(f"Capability failed for {text!r}: {e}")
                reply = FAILURE_REPLY

            if reply == EXIT_SENTINEL:
                print("Goodbye.")
                break
            if reply:
                print(reply)
    finally:
        close_services(services)


def main(argv=None):
    parser = argparse.ArgumentParser(description="Valet interactive console")
    parser.add_argument("--config", help="Path to config.yaml")
    parser.add_argument("--session", default=DEFAULT_SESSION, help="Session id")
    args = parser.parse_args(argv)

    # stdout belongs to the conversation
    os.environ.setdefault("VALET_LOG_FILE_ONLY", "1")

    try:
        config = load_config(args.config)
    except (FileNotFoundError, ValueError) as e:
        print(f"Config error: {e}", file=sys.stderr)
        return 1

    try:
        asyncio.run(run_console(config, args.session))
    except KeyboardInterrupt:
        print()
    return 0


if __name__ == "__main__":
    sys.exit(main())
