from .catalog import (
    CatalogEpisode,
    HomePage,
    SearchPage,
    TitleDetail,
    TitleSummary,
    TopTen,
)
from .streaming import (
    ResolvedStream,
    SkipRange,
    SourceQuality,
    StreamingEpisode,
    StreamingEpisodeIndex,
    StreamingPayload,
    StreamingSource,
    SubtitleTrack,
    TrackOrigin,
    coerce_episode_number,
)

__all__ = [
    "CatalogEpisode",
    "HomePage",
    "ResolvedStream",
    "SearchPage",
    "SkipRange",
    "SourceQuality",
    "StreamingEpisode",
    "StreamingEpisodeIndex",
    "StreamingPayload",
    "StreamingSource",
    "SubtitleTrack",
    "TitleDetail",
    "TitleSummary",
    "TopTen",
    "TrackOrigin",
    "coerce_episode_number",
]
