from .forecast import PredictionForecast
from .user_report import UserReport


__all__ = ["PredictionForecast", "UserReport"]
