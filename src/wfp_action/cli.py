"""
Command-line runner for the workforce subject delete action.

Feeds JSON params (and an optional JSON execution context) to one lifecycle entry
point and prints the resulting record as JSON.

Usage:
    wfp-action invoke --params params.json --context context.json
    echo '{"workforce_pool_id": "pool", "subject_id": "user"}' | wfp-action invoke --params -
    wfp-action halt --params params.json
"""

import argparse
import asyncio
import json
import sys
from typing import Any
from typing import Dict
from typing import List
from typing import Optional

from wfp_action import action
from wfp_action.errors import ActionError
from wfp_action.monitoring.logger import configure_logger
from wfp_action.settings import Settings

# sysexits.h EX_TEMPFAIL: the scheduler may retry
EXIT_RETRYABLE = 75
EXIT_FATAL = 1


def _load_json(source: Optional[str]) -> Dict[str, Any]:
    if source is None:
        return {}
    if source == "-":
        return json.load(sys.stdin)
    with open(source, encoding="utf-8") as f:
        return json.load(f)


def build_parser() -> argparse.ArgumentParser:
    """Build the argument parser."""
    parser = argparse.ArgumentParser(
        prog="wfp-action",
        description="Delete a subject from a Google Cloud IAM workforce pool",
    )
    parser.add_argument("entry_point", choices=["invoke", "error", "halt"], help="Lifecycle entry point to run")
    parser.add_argument("--params", required=True, help="Path to the JSON params file, or - for stdin")
    parser.add_argument("--context", default=None, help="Path to the JSON execution context (secrets, env)")
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    """Run one lifecycle entry point and print its result."""
    args = build_parser().parse_args(argv)
    settings = Settings()
    configure_logger(level=settings.log_level, sink=sys.stderr)

    try:
        params = _load_json(args.params)
        context = _load_json(args.context)
    except (OSError, json.JSONDecodeError) as e:
        print(json.dumps({"status": "failed", "retryable": False, "error": f"Unable to read input: {e}"}))
        return EXIT_FATAL

    try:
        if args.entry_point == "invoke":
            result = asyncio.run(action.invoke(params, context, settings=settings))
        elif args.entry_point == "error":
            result = asyncio.run(action.error(params, context))
        else:
            result = asyncio.run(action.halt(params, context))
    except ActionError as e:
        print(json.dumps({"status": "failed", "retryable": e.retryable, "error": e.message}))
        return EXIT_RETRYABLE if e.retryable else EXIT_FATAL

    print(json.dumps(result, default=str))
    return 0


if __name__ == "__main__":
    sys.exit(main())
