from .base import Base, metadata_obj
from .goal import Goal
from .mechanism import Mechanism, MechanismCompletion, ScheduleException
from .profile import Generation, Profile

__all__ = [
    "metadata_obj",
    "Base",
    "Generation",
    "Profile",
    "Goal",
    "Mechanism",
    "ScheduleException",
    "MechanismCompletion",
]
