# =============================================================================
# POLYMARKET APPROVALS - TOOL CLI
# =============================================================================
#
# Runs ONE tool action and prints the JSON response to stdout.
# Logs go to stderr (and logs/tool/ unless --no-log-file).
#
# USAGE:
#   python -m polymarket_tool --action status
#   python -m polymarket_tool --action market --params '{"marketSlug": "..."}'
#   python -m polymarket_tool --action place_order --session chat-1 \
#       --params '{"marketSlug": "...", "outcome": "Yes", "side": "buy", "price": 0.42, "size": 10}'
#   python -m polymarket_tool --action resume --session chat-1 \
#       --params '{"token": "<resumeToken>", "approve": true}'
#
# EXIT CODES:
#   0 = response ok
#   1 = response not ok
#   2 = invalid command line
#
# =============================================================================

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import List, Optional

# Ensure project root is in path
sys.path.insert(0, str(Path(__file__).parent.parent))

from shared.config import load_config, load_env
from shared.logging_config import AuditLogger, setup_logging
from approvals.models import ToolContext
from polymarket_tool.tool import PolymarketTool

logger = logging.getLogger(__name__)


def _print_json(payload: dict) -> None:
    print(json.dumps(payload, indent=2, ensure_ascii=False, default=str))


# =============================================================================
# ARGUMENT PARSER
# =============================================================================


def create_parser() -> argparse.ArgumentParser:
    """Create the argument parser."""
    parser = argparse.ArgumentParser(
        prog="python -m polymarket_tool",
        description="Polymarket agent tool with resumable order approvals",
        epilog="Orders are never placed without an approved resume token.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )

    parser.add_argument(
        "--action", "-a",
        type=str,
        required=True,
        help="Tool action (status, market, search, place_order, resume, ...)",
    )

    parser.add_argument(
        "--params", "-p",
        type=str,
        default="{}",
        help="Action parameters as a JSON object",
        metavar="JSON",
    )

    parser.add_argument(
        "--config", "-c",
        type=str,
        default=None,
        help="YAML config file (default: config/polymarket.yaml)",
        metavar="PATH",
    )

    parser.add_argument(
        "--env-file",
        type=str,
        default=None,
        help=".env file with credentials (default: .env in the project root)",
        metavar="PATH",
    )

    parser.add_argument(
        "--session", "-s",
        type=str,
        default=None,
        help="Session key the approval token is bound to",
    )

    parser.add_argument(
        "--sandboxed",
        action="store_true",
        help="Run in a sandboxed context (mutating actions are refused)",
    )

    parser.add_argument(
        "--audit-dir",
        type=str,
        default=None,
        help="Directory for JSON-lines audit records",
        metavar="PATH",
    )

    parser.add_argument(
        "--no-log-file",
        action="store_true",
        help="Log to stderr only",
    )

    parser.add_argument(
        "--verbose", "-v",
        action="store_true",
        help="Debug logging",
    )

    return parser


# =============================================================================
# MAIN
# =============================================================================


def main(argv: Optional[List[str]] = None) -> int:
    """
    Main entry point.

    Returns:
        Exit code
    """
    parser = create_parser()
    args = parser.parse_args(argv)

    setup_logging(
        level=logging.DEBUG if args.verbose else logging.INFO,
        console_output=True,
        file_output=not args.no_log_file,
    )
    load_env(args.env_file)

    try:
        params = json.loads(args.params)
    except ValueError as e:
        _print_json({"ok": False, "error": {"type": "invalid_request", "message": f"--params is not valid JSON: {e}"}})
        return 2
    if not isinstance(params, dict):
        _print_json({"ok": False, "error": {"type": "invalid_request", "message": "--params must be a JSON object"}})
        return 2
    params["action"] = args.action

    try:
        config = load_config(args.config)
    except ValueError as e:
        _print_json({"ok": False, "error": {"type": "error", "message": str(e)}})
        return 1

    tool = PolymarketTool(
        config,
        context=ToolContext(sandboxed=args.sandboxed, session_key=args.session),
        audit=AuditLogger(args.audit_dir),
    )
    response = tool.execute(params)
    _print_json(response)
    return 0 if response.get("ok") else 1


if __name__ == "__main__":
    sys.exit(main())
