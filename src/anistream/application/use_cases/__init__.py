from .catalog_browse import CatalogBrowseUseCase
from .resolve_episode import ResolutionAttempt, ResolutionState, ResolveEpisodeUseCase

__all__ = [
    "CatalogBrowseUseCase",
    "ResolutionAttempt",
    "ResolutionState",
    "ResolveEpisodeUseCase",
]
