"""
Engine: per-user state handles and the SequencingFacade entry point.
"""
from zenjin.engine.facade import SequencingFacade
from zenjin.engine.user_state import UserState

__all__ = ["SequencingFacade", "UserState"]
