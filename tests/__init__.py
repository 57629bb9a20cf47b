# =============================================================================
# POLYMARKET APPROVALS - TEST SUITE
# =============================================================================
#
# Structure:
#   tests/
#     fakes.py        - Fake market data, CLOB client and credentials
#     unit/           - Token codec, resolver, safety gate, models, config
#     integration/    - Order staging, agent tool, HTTP/CLOB clients, CLI
#
# Usage:
#   pytest                       # All tests
#   pytest tests/unit            # Unit tests only
#   pytest tests/integration     # Integration tests only
#
# No test touches the network. py-clob-client and requests are mocked.
#
# =============================================================================

__version__ = "1.0.0"
