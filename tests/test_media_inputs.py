import base64

from models.turn_models import Transcript
from services.openai.media_inputs import DEFAULT_IMAGE_PROMPT, build_turn_text, build_vision_input, to_image_data_url


def test_turn_text_without_transcript_is_the_query():
    assert build_turn_text("  Summarize  ") == "Summarize"


def test_turn_text_puts_grounding_before_query_in_fixed_order():
    transcript = Transcript(
        text="hello world",
        title="Demo",
        author="Someone",
        source_url="https://video.example/abc",
    )

    text = build_turn_text("Summarize", transcript)

    assert text.split("\n") == [
        "Title: Demo",
        "Author: Someone",
        "URL: https://video.example/abc",
        "Transcript: hello world",
        "User query: Summarize",
    ]


def test_turn_text_skips_missing_author_and_url():
    text = build_turn_text("Summarize", Transcript(text="hello world", title="Demo"))
    assert text.split("\n") == ["Title: Demo", "Transcript: hello world", "User query: Summarize"]


def test_data_url_encodes_raw_bytes():
    url = to_image_data_url(b"\x89PNG", "image/png")
    assert url == "data:image/png;base64," + base64.b64encode(b"\x89PNG").decode("ascii")


def test_vision_input_falls_back_to_default_prompt():
    parts = build_vision_input("", "data:image/jpeg;base64,AAAA")[0]["content"]
    assert parts[0]["text"] == DEFAULT_IMAGE_PROMPT
    assert parts[1] == {"type": "input_image", "image_url": "data:image/jpeg;base64,AAAA"}


def test_turn_text_omits_unknown_title():
    text = build_turn_text("Summarize", Transcript(text="hello world", source_url="https://video.example/abc"))
    assert text.split("\n") == ["URL: https://video.example/abc", "Transcript: hello world", "User query: Summarize"]
