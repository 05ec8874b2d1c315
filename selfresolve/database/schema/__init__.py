from .base import Base
from .participant import Participant
from .question import AwardRow, EstimateRow, Question

__all__ = ["Base", "Participant", "Question", "EstimateRow", "AwardRow"]
