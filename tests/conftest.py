import pytest
import pytest_asyncio

from guild_jukebox.application.interfaces.audio_sink import (
    AudioSink,
    SinkEvent,
    SinkEventHandler,
)
from guild_jukebox.application.interfaces.providers import (
    CatalogProvider,
    CatalogTrack,
    SearchCandidate,
    SearchProvider,
    StreamHandle,
)
from guild_jukebox.domain.music.value_objects import SinkEventKind
from guild_jukebox.domain.shared.exceptions import ResolutionError

GUILD_ID = 111111111111111111
OTHER_GUILD_ID = 222222222222222222
CHANNEL_ID = 333333333333333333
OTHER_CHANNEL_ID = 444444444444444444


def make_candidate(video_id: str, title: str | None = None, duration: int = 180) -> SearchCandidate:
    return SearchCandidate(
        id=video_id,
        title=title or f"Track {video_id}",
        duration_seconds=duration,
        thumbnail_url=f"https://img.example/{video_id}.jpg",
        source_url=f"https://media.example/watch?id={video_id}",
    )


# ============================================================================
# In-memory Collaborators
# ============================================================================


class FakeSearchProvider(SearchProvider):
    """Search provider answering from dictionaries and recording every call."""

    def __init__(self) -> None:
        self.results: dict[str, list[SearchCandidate]] = {}
        self.lookups: dict[str, SearchCandidate] = {}
        self.search_error: ResolutionError | None = None
        self.unplayable: set[str] = set()
        self.search_calls: list[tuple[str, int]] = []
        self.lookup_calls: list[str] = []
        self.stream_calls: list[str] = []

    def add(self, query: str, *candidates: SearchCandidate) -> None:
        self.results[query] = list(candidates)

    async def search(self, query: str, limit: int = 1) -> list[SearchCandidate]:
        self.search_calls.append((query, limit))
        if self.search_error is not None:
            raise self.search_error
        return list(self.results.get(query, []))[:limit]

    async def lookup(self, reference: str) -> SearchCandidate | None:
        self.lookup_calls.append(reference)
        return self.lookups.get(reference)

    async def open_stream(self, source_url: str) -> StreamHandle:
        self.stream_calls.append(source_url)
        if source_url in self.unplayable:
            raise ResolutionError.not_found(f"gone: {source_url}")
        return StreamHandle(url=f"{source_url}&stream=1", source_url=source_url)


class FakeCatalogProvider(CatalogProvider):
    def __init__(self) -> None:
        self.tracks: dict[str, CatalogTrack] = {}
        self.error: ResolutionError | None = None
        self.calls: list[str] = []
        self.closed = False

    async def get_track(self, reference_id: str) -> CatalogTrack:
        self.calls.append(reference_id)
        if self.error is not None:
            raise self.error
        if reference_id not in self.tracks:
            raise ResolutionError.not_found(f"no track {reference_id}")
        return self.tracks[reference_id]

    async def aclose(self) -> None:
        self.closed = True


class FakeAudioSink(AudioSink):
    """Audio sink that reports ``started`` immediately and completes on demand."""

    def __init__(self) -> None:
        self.handler: SinkEventHandler | None = None
        self.connected: dict[int, int] = {}
        self.connect_result = True
        self.play_result = True
        self.auto_start = True
        self.played: list[tuple[int, StreamHandle, int, int]] = []
        self.generations: dict[int, int] = {}
        self.volumes: list[tuple[int, int]] = []
        self.calls: list[tuple[str, int]] = []

    def set_event_handler(self, handler: SinkEventHandler) -> None:
        self.handler = handler

    def emit(self, guild_id: int, kind: SinkEventKind, generation: int, error: str | None = None) -> None:
        assert self.handler is not None
        self.handler(SinkEvent(guild_id=guild_id, kind=kind, generation=generation, error=error))

    def complete(self, guild_id: int, *, generation: int | None = None, error: str | None = None) -> None:
        """Report the end of the stream most recently started in *guild_id*."""
        gen = generation if generation is not None else self.generations[guild_id]
        kind = SinkEventKind.ERRORED if error else SinkEventKind.COMPLETED
        self.emit(guild_id, kind, gen, error)

    async def connect(self, guild_id: int, channel_id: int, *, timeout: float) -> bool:
        self.calls.append(("connect", guild_id))
        if self.connect_result:
            self.connected[guild_id] = channel_id
        return self.connect_result

    async def disconnect(self, guild_id: int) -> bool:
        self.calls.append(("disconnect", guild_id))
        self.connected.pop(guild_id, None)
        return True

    async def play(self, guild_id: int, stream: StreamHandle, *, volume: int, generation: int) -> bool:
        self.calls.append(("play", guild_id))
        if not self.play_result:
            return False
        self.played.append((guild_id, stream, volume, generation))
        self.generations[guild_id] = generation
        if self.auto_start:
            self.emit(guild_id, SinkEventKind.STARTED, generation)
        return True

    async def stop(self, guild_id: int) -> bool:
        self.calls.append(("stop", guild_id))
        return True

    async def pause(self, guild_id: int) -> bool:
        self.calls.append(("pause", guild_id))
        return True

    async def resume(self, guild_id: int) -> bool:
        self.calls.append(("resume", guild_id))
        return True

    def set_volume(self, guild_id: int, volume: int) -> bool:
        self.volumes.append((guild_id, volume))
        return True

    def is_connected(self, guild_id: int) -> bool:
        return guild_id in self.connected

    def count(self, name: str) -> int:
        return sum(1 for call, _ in self.calls if call == name)


# ============================================================================
# Fixtures
# ============================================================================


@pytest.fixture
def requester():
    from guild_jukebox.domain.music.entities import Requester

    return Requester(id=555555555555555555, username="listener")


@pytest.fixture
def search_provider():
    return FakeSearchProvider()


@pytest.fixture
def catalog_provider():
    return FakeCatalogProvider()


@pytest.fixture
def sink():
    return FakeAudioSink()


@pytest_asyncio.fixture
async def broadcaster():
    from guild_jukebox.application.services.broadcaster import EventBroadcaster

    b = EventBroadcaster(stats_interval=0.01)
    yield b
    await b.stop()


@pytest.fixture
def queue_updates(broadcaster):
    """Collect every QueueUpdated event published through the broadcaster.

    Delivery is asynchronous: await ``broadcaster.flush()`` before reading.
    """
    updates = []

    async def record(event):
        updates.append(event)

    broadcaster.subscribe_queue_updates(record)
    return updates


@pytest.fixture
def resolver(search_provider, catalog_provider):
    from guild_jukebox.application.services.track_resolver import TrackResolver

    return TrackResolver(search_provider=search_provider, catalog_provider=catalog_provider)


@pytest_asyncio.fixture
async def controller(resolver, search_provider, sink, broadcaster):
    """A started controller whose sink events are delivered straight to it."""
    import random

    from guild_jukebox.application.services.playback_controller import PlaybackController

    ctrl = PlaybackController(
        guild_id=GUILD_ID,
        resolver=resolver,
        search_provider=search_provider,
        sink=sink,
        broadcaster=broadcaster,
        rng=random.Random(7),
    )
    sink.set_event_handler(ctrl.notify)
    ctrl.start()
    yield ctrl
    await ctrl.close()


@pytest_asyncio.fixture
async def registry(resolver, search_provider, sink, broadcaster):
    from guild_jukebox.application.services.session_registry import SessionRegistry

    reg = SessionRegistry(
        resolver=resolver,
        search_provider=search_provider,
        sink=sink,
        broadcaster=broadcaster,
        connect_timeout=1.0,
    )
    yield reg
    await reg.cleanup()
