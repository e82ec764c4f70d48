"""
ROWA - Token Vesting Platform

Time-based unlocking of the fixed ROWA token allocation across funding
categories (public, private and seed sales, team, advisors, partnerships and
four treasury funds).

Main Components:
- Vesting: schedule registry, release computation, allocation caps and the
  create/release/revoke lifecycle
- Core: token ledger, access control, persistence, logging and configuration
- API: Flask blueprint exposing the vesting query and lifecycle surface
- CLI: local inspection of persisted vesting state
"""

__version__ = "0.1.0"
__author__ = "ROWA Development Team"

__all__ = []
