"""
GRC Trainer Configuration
"""

from grc_trainer.config.settings import (
    SectionKind,
    PipelineConfig,
    DEFAULT_SEARCH_BUDGETS,
    get_config,
)

__all__ = [
    "SectionKind",
    "PipelineConfig",
    "DEFAULT_SEARCH_BUDGETS",
    "get_config",
]
