import pytest

from models.turn_models import Transcript
from services.errors import UnsupportedSource, UpstreamUnavailable
from services.transcription.platforms import Platform, classify_url, oembed_endpoint
from services.transcription.router import TranscriptionRouter


class _FakeMetadata:
    def __init__(self, title="Demo", author="Channel"):
        self.title = title
        self.author = author
        self.calls = []

    async def lookup(self, platform, media_url):
        self.calls.append((platform, media_url))
        return self.title, self.author


@pytest.mark.parametrize(
    "url, platform",
    [
        ("https://www.youtube.com/watch?v=abc123", Platform.YOUTUBE),
        ("https://youtu.be/abc123", Platform.YOUTUBE),
        ("https://youtube.com/shorts/abc123", Platform.YOUTUBE),
        ("https://www.tiktok.com/@user/video/123", Platform.TIKTOK),
        ("https://vm.tiktok.com/ZMabc/", Platform.TIKTOK),
        ("https://www.instagram.com/reel/Cabc/", Platform.INSTAGRAM),
        ("https://video.example/abc", Platform.GENERIC),
        ("https://www.youtube.com/about", Platform.GENERIC),
    ],
)
def test_classify_url(url, platform):
    assert classify_url(url) is platform


def test_oembed_endpoint_only_for_known_platforms():
    assert oembed_endpoint(Platform.YOUTUBE, "https://youtu.be/x").startswith("https://www.youtube.com/oembed")
    assert oembed_endpoint(Platform.GENERIC, "https://video.example/abc") is None


@pytest.mark.asyncio
async def test_routes_by_platform(make_transcriber):
    youtube = make_transcriber("captions", result=Transcript(text="from captions"))
    generic = make_transcriber("direct", result=Transcript(text="from direct"))
    router = TranscriptionRouter({Platform.YOUTUBE: [youtube]}, default=generic)

    yt = await router.transcribe("https://youtu.be/abc")
    other = await router.transcribe("https://video.example/abc")

    assert yt.text == "from captions"
    assert other.text == "from direct"
    assert other.source_url == "https://video.example/abc"


@pytest.mark.asyncio
async def test_falls_back_once_on_upstream_failure(make_transcriber, unavailable):
    primary = make_transcriber("primary", error=unavailable)
    secondary = make_transcriber("secondary", result=Transcript(text="rescued"))
    router = TranscriptionRouter({Platform.TIKTOK: [primary, secondary]})

    transcript = await router.transcribe("https://www.tiktok.com/@u/video/1")

    assert transcript.text == "rescued"
    assert primary.calls == secondary.calls == ["https://www.tiktok.com/@u/video/1"]


@pytest.mark.asyncio
async def test_fallback_chain_has_at_most_one_hop(make_transcriber, unavailable):
    first = make_transcriber("first", error=unavailable)
    second = make_transcriber("second", error=UpstreamUnavailable("also down"))
    third = make_transcriber("third", result=Transcript(text="never used"))
    router = TranscriptionRouter({Platform.YOUTUBE: [first, second, third]})

    with pytest.raises(UpstreamUnavailable, match="also down"):
        await router.transcribe("https://youtu.be/abc")
    assert third.calls == []


@pytest.mark.asyncio
async def test_source_errors_do_not_fall_back(make_transcriber):
    primary = make_transcriber("primary", error=UnsupportedSource("private video"))
    secondary = make_transcriber("secondary", result=Transcript(text="unused"))
    router = TranscriptionRouter({Platform.YOUTUBE: [primary, secondary]})

    with pytest.raises(UnsupportedSource):
        await router.transcribe("https://youtu.be/abc")
    assert secondary.calls == []


@pytest.mark.asyncio
async def test_unknown_platform_without_default_is_unsupported(make_transcriber):
    router = TranscriptionRouter({Platform.YOUTUBE: [make_transcriber(result=Transcript(text="x"))]})

    with pytest.raises(UnsupportedSource):
        await router.transcribe("https://video.example/abc")


@pytest.mark.asyncio
@pytest.mark.parametrize("url", ["", "   ", "ftp://files.example/a.mp3", "not a url"])
async def test_malformed_references_are_rejected_before_dispatch(make_transcriber, url):
    backend = make_transcriber(result=Transcript(text="x"))
    router = TranscriptionRouter({}, default=backend)

    with pytest.raises(UnsupportedSource):
        await router.transcribe(url)
    assert backend.calls == []


@pytest.mark.asyncio
async def test_metadata_fills_missing_title_and_author(make_transcriber):
    metadata = _FakeMetadata()
    backend = make_transcriber(result=Transcript(text="hello world"))
    router = TranscriptionRouter({Platform.YOUTUBE: [backend]}, metadata=metadata)

    transcript = await router.transcribe("https://youtu.be/abc")

    assert (transcript.title, transcript.author) == ("Demo", "Channel")
    assert metadata.calls == [(Platform.YOUTUBE, "https://youtu.be/abc")]


def test_backends_lists_chains(make_transcriber):
    router = TranscriptionRouter(
        {Platform.YOUTUBE: [make_transcriber("job"), make_transcriber("whisper")]},
        default=make_transcriber("whisper"),
    )
    assert router.backends == {"youtube": ["job", "whisper"], "generic": ["whisper"]}
