"""
ROWA Core Module

Shared infrastructure for the vesting platform:
- Reference token ledger and single-owner access control
- Exception hierarchy and structured logging
- Persistent storage of the vesting registry
- Configuration, metrics and the HTTP API surface
"""

__all__ = []
