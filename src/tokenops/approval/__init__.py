"""Delegated approval of signing credentials."""

from __future__ import annotations

from tokenops.approval.broker import (
    ApprovalBroker,
    ApprovalState,
    AuthorizationSurface,
    AuthorizationWindow,
    MessageListener,
    PendingApproval,
    origin_of,
)
from tokenops.approval.loopback import LoopbackAuthorizationSurface, LoopbackWindow

__all__ = [
    "ApprovalBroker",
    "ApprovalState",
    "AuthorizationSurface",
    "AuthorizationWindow",
    "LoopbackAuthorizationSurface",
    "LoopbackWindow",
    "MessageListener",
    "PendingApproval",
    "origin_of",
]
