from .identity_resolver import (
    EpisodeIdentityResolver,
    construct_fallback_id,
    find_episode_id,
)

__all__ = ["EpisodeIdentityResolver", "construct_fallback_id", "find_episode_id"]
