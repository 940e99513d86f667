# Application Stats Package
from .metrics_calculator import WordStats, WordStatsCalculator
from .service import OverallStats, ProgressStatsService

__all__ = ["OverallStats", "ProgressStatsService", "WordStats", "WordStatsCalculator"]
