"""Local deterministic agent for CLI runner integration tests."""

from __future__ import annotations

import argparse
import json
import os
import sys
from pathlib import Path

from artifact_flow.agents.prompt import split_prompt_messages


def main(argv: list[str] | None = None) -> int:
    """Echo the prompt back.

    The format defaults to the runner's ``ARTIFACT_FLOW_RESPONSE_FORMAT``.
    Text mode prints ``echo: <last message>``. JSON mode prints the last message
    that is a JSON object, or ``{"echo": <last message>}`` when there is none.
    ``--fail`` exits non-zero.
    """

    parser = argparse.ArgumentParser()
    parser.add_argument("--prompt-file", required=True)
    parser.add_argument("--format", choices=("text", "json"), default=None)
    parser.add_argument("--fail", action="store_true")
    args, _ = parser.parse_known_args(argv)

    if args.fail:
        sys.stderr.write("echo agent asked to fail\n")
        return 3

    prompt = Path(args.prompt_file).read_text("utf-8")
    messages = split_prompt_messages(prompt)
    last = messages[-1] if messages else prompt.strip()

    output_format = args.format or _format_from_env()
    if output_format == "text":
        sys.stdout.write(f"echo: {last}\n")
        return 0

    payload = next(
        (parsed for parsed in map(_json_object, reversed(messages)) if parsed is not None),
        {"echo": last},
    )
    sys.stdout.write(json.dumps(payload, ensure_ascii=False) + "\n")
    return 0


def _json_object(text: str) -> dict | None:
    try:
        parsed = json.loads(text)
    except json.JSONDecodeError:
        return None
    return parsed if isinstance(parsed, dict) else None


def _format_from_env() -> str:
    return "json" if os.getenv("ARTIFACT_FLOW_RESPONSE_FORMAT") == "json_object" else "text"


if __name__ == "__main__":  # pragma: no cover
    sys.exit(main())
