# =============================================================================
# POLYMARKET APPROVALS - EXTERNAL COLLABORATORS
# =============================================================================
#
# - gamma_client: public market data (requests)
# - clob_client:  authenticated order-matching client (py-clob-client)
#
# =============================================================================

from trading.gamma_client import GammaClient
from trading.clob_client import ClobTradingClient, SubmittedOrder, format_units

__all__ = ["GammaClient", "ClobTradingClient", "SubmittedOrder", "format_units"]
