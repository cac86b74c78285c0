"""
Helix: the three-path rotation scheme (one active, two preparing).
"""
from zenjin.helix.path_rotator import PathRotator
from zenjin.helix.path_state import PathState

__all__ = ["PathRotator", "PathState"]
