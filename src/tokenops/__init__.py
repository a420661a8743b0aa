"""tokenops - identifiers, co-signing and delegated approval for ledger tokens."""

from __future__ import annotations

from importlib import import_module
from typing import Any, TYPE_CHECKING

__all__ = [
    "ApprovalBroker",
    "EnvelopeSigner",
    "Identifier",
    "OperationOrchestrator",
    "TokenKind",
    "TokenOpsConfig",
    "TokenOpsError",
    "derive_identifier",
    "open_session",
]

if TYPE_CHECKING:
    from .approval import ApprovalBroker
    from .config import TokenOpsConfig
    from .errors import TokenOpsError
    from .identifier import Identifier, TokenKind, derive_identifier
    from .ledger import EnvelopeSigner
    from .orchestrator import OperationOrchestrator
    from .session import open_session


def __getattr__(name: str) -> Any:
    """Lazily import submodules so ``import tokenops`` stays cheap."""

    module_map = {
        "ApprovalBroker": "approval",
        "EnvelopeSigner": "ledger",
        "Identifier": "identifier",
        "OperationOrchestrator": "orchestrator",
        "TokenKind": "identifier",
        "TokenOpsConfig": "config",
        "TokenOpsError": "errors",
        "derive_identifier": "identifier",
        "open_session": "session",
    }

    if name not in module_map:
        raise AttributeError(name)

    module = import_module(f".{module_map[name]}", __name__)
    return getattr(module, name)
