import pytest

from wordwise_gen.annotation import (
    annotate,
    annotate_document,
    annotate_text,
    clean_word,
    render_gloss,
)
from wordwise_gen.dictionary import dictionary_from_rows
from wordwise_gen.mediator import DistanceMediator

DICTIONARY = dictionary_from_rows(
    {
        "amateur": ("non-professional", 3),
        "arcane": ("mysterious", 4),
        "sly": ("cunning & quiet", 2),
    }
)

AMATEUR = "<ruby>amateur<rt>non-professional</rt></ruby>"


@pytest.mark.parametrize(
    ("token", "expected"),
    [
        ("word.", "word"),
        ('"Word"', "Word"),
        ("  “Quote”! ", "Quote"),
        ("[note]?", "note"),
        ("–dash–", "dash"),
        ("...", ""),
    ],
)
def test_clean_word_strips_whitespace_and_punctuation(token: str, expected: str):
    assert clean_word(token) == expected


def test_repeated_word_is_annotated_once_within_distance():
    """Only the first 'amateur' is glossed when both fall inside max_distance."""
    text = "Jack is an amateur. An amateur is here."
    result = annotate_document(text, DICTIONARY, DistanceMediator(1000), 5)

    assert result.text == f"Jack is an {AMATEUR}. An amateur is here."
    assert result.annotations == 1


def test_distance_is_measured_in_characters_from_token_start():
    # First "amateur." starts at offset 11, the second "amateur" at 23.
    text = "Jack is an amateur. An amateur is here."

    allowed = annotate_text(text, DICTIONARY, DistanceMediator(12), 5)
    assert allowed.count("<ruby>") == 2

    suppressed = annotate_text(text, DICTIONARY, DistanceMediator(13), 5)
    assert suppressed.count("<ruby>") == 1


def test_hint_level_ceiling_filters_entries():
    text = "An arcane ritual."
    shown = annotate_text(text, DICTIONARY, DistanceMediator(1000), 4)
    hidden = annotate_text(text, DICTIONARY, DistanceMediator(1000), 3)

    assert shown == "An <ruby>arcane<rt>mysterious</rt></ruby> ritual."
    assert hidden == text


def test_filtered_word_does_not_consume_distance():
    mediator = DistanceMediator(1000)
    annotate_text("arcane", DICTIONARY, mediator, 3)
    assert mediator.last_position("arcane") is None


def test_unknown_words_and_spacing_pass_through_unchanged():
    text = " Plain  words,\nwith  odd   spacing. "
    result = annotate_document(text, DICTIONARY, DistanceMediator(1000), 5)

    assert result.text == text
    assert result.annotations == 0


def test_every_space_delimited_token_is_visited_once():
    text = "one two  three"
    result = annotate_document(text, DICTIONARY, DistanceMediator(1000), 5)
    # "one", "two", "" and "three"
    assert result.tokens_scanned == 4
    assert result.text == text


def test_surrounding_punctuation_and_case_are_preserved():
    output = annotate_text('"Amateur!"', DICTIONARY, DistanceMediator(1000), 5)
    assert output == '"<ruby>Amateur<rt>non-professional</rt></ruby>!"'


def test_lookup_is_case_insensitive_and_shares_distance():
    output = annotate_text("AMATEUR amateur", DICTIONARY, DistanceMediator(1000), 5)
    assert output == "<ruby>AMATEUR<rt>non-professional</rt></ruby> amateur"


def test_internal_punctuation_leaves_token_untouched():
    mediator = DistanceMediator(1000)
    output = annotate_text("ama'teur", DICTIONARY, mediator, 5)

    assert output == "ama'teur"
    assert len(mediator) == 0


def test_gloss_is_html_escaped():
    assert render_gloss("sly", "cunning & quiet") == "<ruby>sly<rt>cunning &amp; quiet</rt></ruby>"
    output = annotate_text("a sly fox", DICTIONARY, DistanceMediator(1000), 5)
    assert "<rt>cunning &amp; quiet</rt>" in output


def test_last_token_without_trailing_delimiter_is_flushed():
    output = annotate_text("so amateur", DICTIONARY, DistanceMediator(1000), 5)
    assert output.endswith(AMATEUR)


def test_empty_document():
    result = annotate_document("", DICTIONARY, DistanceMediator(1000), 5)
    assert result.text == ""
    assert result.annotations == 0


def test_annotate_bytes_keeps_undecodable_bytes():
    content = b"\xff an amateur"
    output = annotate(content, DICTIONARY, DistanceMediator(1000), 5)

    assert output.startswith(b"\xff an ")
    assert output.endswith(AMATEUR.encode("utf-8"))


def test_fresh_mediator_resets_distance_state():
    text = "amateur"
    shared = DistanceMediator(1000)
    annotate_text(text, DICTIONARY, shared, 5)
    assert annotate_text(text, DICTIONARY, shared, 5) == text
    assert annotate_text(text, DICTIONARY, DistanceMediator(1000), 5) == AMATEUR
