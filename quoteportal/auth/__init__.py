"""
Authorization layer.

- ``gate``: role resolution from session claims and the role checks every
  mutating/administrative operation goes through
- ``identity``: session token verification (identity provider adapter)
- ``session_events``: auth-state subscriptions with explicit cleanup
"""

from .gate import ANONYMOUS, AuthorizationGate, Caller, Role

__all__ = ["ANONYMOUS", "AuthorizationGate", "Caller", "Role"]
