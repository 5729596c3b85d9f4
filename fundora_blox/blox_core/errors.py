"""
Engine Errors
=============

Exceptions raised by the stacking engine. Commands issued in the wrong phase
are not errors (they are ignored); these cover the cases a caller must react to.
"""

from __future__ import annotations


class EngineError(Exception):
    """Base engine error"""


class StateError(EngineError):
    """Unknown command or misuse of the controller API"""


class StakeError(EngineError):
    """Stake is not one of the allowed tiers"""


class InsufficientFundsError(EngineError):
    """Wallet refused the stake debit"""


class RngUnavailableError(EngineError):
    """Random source failed or produced a value outside [0, 1)"""
