# Application Package
from .engine import SrsEngine
from .scheduler import Scheduler

__all__ = ["SrsEngine", "Scheduler"]
