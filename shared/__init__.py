# =============================================================================
# POLYMARKET APPROVALS - SHARED MODULE
# =============================================================================
#
# GOVERNANCE:
# This module contains ONLY shared utilities used by every other package.
# No approval logic lives here.
#
# CONTENTS:
# - Enums (lifecycle states, error kinds, tool actions)
# - Configuration and credential source
# - Logging setup and audit logger
#
# =============================================================================

from .enums import ApprovalState, ErrorKind, OrderSide, ToolAction
from .config import ToolConfig, EnvCredentialSource, load_config, load_env
from .logging_config import setup_logging, AuditLogger

__all__ = [
    "ApprovalState",
    "ErrorKind",
    "OrderSide",
    "ToolAction",
    "ToolConfig",
    "EnvCredentialSource",
    "load_config",
    "load_env",
    "setup_logging",
    "AuditLogger",
]
