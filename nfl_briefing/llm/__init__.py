"""Enhancement collaborator: providers, factory and the budgeted wrapper."""

from .base import EnhancementProvider
from .enhancer import BudgetedEnhancer
from .factory import available_providers, create_provider

__all__ = ["BudgetedEnhancer", "EnhancementProvider", "available_providers", "create_provider"]
