"""In-process models of the on-chain contracts."""

from .bridge import BridgeContract, CommitEvent
from .token import TokenContract, TokenLedger

__all__ = ["BridgeContract", "CommitEvent", "TokenContract", "TokenLedger"]
