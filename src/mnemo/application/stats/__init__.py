# Application Stats Package
from .aggregator import StatisticsAggregator, current_streak, longest_streak

__all__ = ["StatisticsAggregator", "current_streak", "longest_streak"]
