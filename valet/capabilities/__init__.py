"""Capability definitions for the command router.

Each .py file in this package exports:
    CAPABILITIES: list[Capability]  -- registered in list order

Every Capability carries:
    name, description               -- unique name; description for model prompts
    execute(args, ctx) -> str|None  -- async; None defers to another handler
    routing                         -- patterns, keywords, examples, priority
    parse_args(input, match)        -- optional; pure arg extraction
    should_handle(input, ctx)       -- optional async claim on the next input
    parameters                      -- optional JSON schema for the agent

Capabilities declaring patterns must set a priority.
"""
