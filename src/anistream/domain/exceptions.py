"""Pipeline error taxonomy.

Every error carries an ``ErrorKind`` so the presentation layer can render
distinct messaging (connection problem vs. content not found vs. temporary
server issue) without inspecting exception types.
"""

from __future__ import annotations

from enum import Enum


class ErrorKind(str, Enum):
    CONNECTION = "connection"
    TIMEOUT = "timeout"
    SERVER = "server"
    NOT_FOUND = "not_found"
    ACCESS_DENIED = "access_denied"
    REQUEST = "request"
    MALFORMED = "malformed"
    RESOLUTION = "resolution"
    NO_SOURCES = "no_sources"


_TITLES: dict[ErrorKind, tuple[str, str]] = {
    ErrorKind.CONNECTION: (
        "Connection Problem",
        "Unable to reach the server. Check your internet connection.",
    ),
    ErrorKind.TIMEOUT: (
        "Request Timeout",
        "The request took too long to complete.",
    ),
    ErrorKind.SERVER: (
        "Server Error",
        "The server is experiencing issues. This is temporary.",
    ),
    ErrorKind.NOT_FOUND: (
        "Content Not Found",
        "The requested content could not be found.",
    ),
    ErrorKind.ACCESS_DENIED: (
        "Access Denied",
        "You don't have permission to access this content.",
    ),
    ErrorKind.REQUEST: (
        "Request Error",
        "There was a problem with the request.",
    ),
    ErrorKind.MALFORMED: (
        "Unexpected Response",
        "The provider returned data that could not be read.",
    ),
    ErrorKind.RESOLUTION: (
        "Episode Lookup Failed",
        "The episode list could not be loaded from the streaming provider.",
    ),
    ErrorKind.NO_SOURCES: (
        "No Sources Available",
        "No streaming sources are available for this episode.",
    ),
}


class AnistreamError(Exception):
    """Base error for the resolution pipeline."""

    kind: ErrorKind = ErrorKind.REQUEST

    @property
    def title(self) -> str:
        return _TITLES[self.kind][0]

    @property
    def user_message(self) -> str:
        return _TITLES[self.kind][1]


class InvalidRequest(AnistreamError, ValueError):
    """Caller input failed validation."""

    kind = ErrorKind.REQUEST


class InvalidEpisodeRequest(InvalidRequest):
    """Title id or episode number failed validation."""


# ---------------------------------------------------------------------------
# Transport / provider errors (classified by the provider HTTP helper)
# ---------------------------------------------------------------------------


class ProviderError(AnistreamError):
    """Failure talking to a provider."""

    def __init__(self, message: str, *, provider: str = "", url: str = "") -> None:
        super().__init__(message)
        self.provider = provider
        self.url = url


class TransientNetworkError(ProviderError):
    """Connection failure or timeout. Retried per policy."""

    def __init__(
        self,
        message: str,
        *,
        provider: str = "",
        url: str = "",
        timeout: bool = False,
    ) -> None:
        super().__init__(message, provider=provider, url=url)
        self.timeout = timeout

    @property
    def kind(self) -> ErrorKind:  # type: ignore[override]
        return ErrorKind.TIMEOUT if self.timeout else ErrorKind.CONNECTION


class UpstreamStatusError(ProviderError):
    """Non-2xx response; carries the status code."""

    def __init__(
        self,
        message: str,
        *,
        status_code: int,
        provider: str = "",
        url: str = "",
    ) -> None:
        super().__init__(message, provider=provider, url=url)
        self.status_code = status_code


class UpstreamServerError(UpstreamStatusError):
    """5xx response. Retried; terminal after exhaustion."""

    kind = ErrorKind.SERVER


class UpstreamClientError(UpstreamStatusError):
    """4xx response. Only the streaming policy retries these."""

    @property
    def kind(self) -> ErrorKind:  # type: ignore[override]
        if self.status_code == 404:
            return ErrorKind.NOT_FOUND
        if self.status_code in (401, 403):
            return ErrorKind.ACCESS_DENIED
        return ErrorKind.REQUEST


class MalformedResponseError(ProviderError):
    """Body could not be decoded. Never retried."""

    kind = ErrorKind.MALFORMED


# ---------------------------------------------------------------------------
# Business-outcome errors
# ---------------------------------------------------------------------------


class IdentityResolutionExhausted(AnistreamError):
    """The per-title episode index could not be fetched after retries.

    Distinct from "episode not found", which is handled by fallback id
    construction and never raises.
    """

    kind = ErrorKind.RESOLUTION

    def __init__(self, title_id: str, cause: BaseException | None = None) -> None:
        super().__init__(f"episode index fetch failed for {title_id!r}")
        self.title_id = title_id
        self.cause = cause


class NoPlayableSourceError(AnistreamError):
    """Streaming fetch succeeded but yielded no usable sources."""

    kind = ErrorKind.NO_SOURCES

    def __init__(self, streaming_episode_id: str) -> None:
        super().__init__(f"no playable source for {streaming_episode_id!r}")
        self.streaming_episode_id = streaming_episode_id


class SubtitleFetchFailure(AnistreamError):
    """Catalog subtitle branch failed. Always non-fatal."""

    kind = ErrorKind.REQUEST

    def __init__(self, episode_ref: str, cause: BaseException | None = None) -> None:
        super().__init__(f"subtitle fetch failed for {episode_ref!r}")
        self.episode_ref = episode_ref
        self.cause = cause


class TitleNotFound(AnistreamError):
    """Catalog provider has no data for the title id."""

    kind = ErrorKind.NOT_FOUND

    def __init__(self, title_id: str) -> None:
        super().__init__(f"title {title_id!r} not found")
        self.title_id = title_id
