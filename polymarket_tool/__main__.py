# =============================================================================
# POLYMARKET APPROVALS - TOOL ENTRY POINT
# =============================================================================
#
# This file enables `python -m polymarket_tool` invocation.
# It delegates to run.py for all CLI functionality.
#
# =============================================================================

from polymarket_tool.run import main
import sys

if __name__ == "__main__":
    sys.exit(main())
