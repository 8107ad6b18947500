"""
NFL Briefing - categorized injury, roster and breaking-news aggregator.

This package polls a small closed set of NFL news sources, classifies what it
finds into three categories and returns short cited bullets per category,
widening its window and optionally asking an LLM for help when a category
comes up sparse.

Main entry point is the CLI via `nfl-briefing run` command, or
`get_categorized_results` from code.

Example:
    $ nfl-briefing run --run-label afternoon
"""

__all__ = [
    "__version__",
    "AppConfig",
    "CategorizedResults",
    "CategoryResult",
    "get_categorized_results",
    "load_config",
    "run_aggregation",
]
__version__ = "0.1.0"

from .aggregator import get_categorized_results, run_aggregation
from .config import AppConfig, load_config
from .types import CategorizedResults, CategoryResult
