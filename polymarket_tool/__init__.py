# =============================================================================
# POLYMARKET APPROVALS - AGENT TOOL PACKAGE
# =============================================================================
#
# Caller-facing surface: strict parameter parsing, action dispatch,
# JSON responses and the command line entry point.
#
# =============================================================================

"""
Polymarket Agent Tool

Usage:
    from polymarket_tool import PolymarketTool
    from shared.config import load_config

    tool = PolymarketTool(load_config())
    tool.execute({"action": "market", "marketSlug": "will-it-rain"})
"""

from polymarket_tool.tool import PolymarketTool

__all__ = ["PolymarketTool"]
