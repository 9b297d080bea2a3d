"""Tests for mapping cards between owned, community and imported shapes."""

from __future__ import annotations

import pytest

from deck_app.services import card_transcoder
from deck_app.services.errors import ValidationError

SOURCE_CARDS = [
    {
        "card_type": "classic-flip",
        "front": "Capital of France?",
        "back": "Paris",
        "front_image_url": "https://cdn.example.com/paris.png",
        "back_image_url": None,
        "front_audio": "https://cdn.example.com/q.mp3",
        "back_audio": "https://cdn.example.com/a.mp3",
        "correct_answers": None,
        "incorrect_answers": None,
        "accepted_answers": None,
        "position": 4,
    },
    {
        "card_type": "multiple-choice",
        "front": "2 + 2",
        "back": None,
        "correct_answers": ["4"],
        "incorrect_answers": ["3", "5"],
        "accepted_answers": None,
        "position": 9,
    },
    {
        "card_type": "type-answer",
        "front": "Largest planet",
        "back": "Jupiter",
        "correct_answers": None,
        "incorrect_answers": None,
        "accepted_answers": ["Jupiter", "jupiter"],
        "position": 2,
    },
]


@pytest.mark.parametrize("source", SOURCE_CARDS, ids=lambda card: card["card_type"])
def test_round_trip_is_lossless_apart_from_position(source):
    published = card_transcoder.source_to_published(source)
    imported = card_transcoder.published_to_imported(published, position=0)
    assert card_transcoder.semantic_fields(imported) == card_transcoder.semantic_fields(source)
    assert imported["position"] == 0


def test_audio_fields_are_renamed_for_community_cards():
    published = card_transcoder.source_to_published(SOURCE_CARDS[0])
    assert published["audio_url"] == "https://cdn.example.com/q.mp3"
    assert published["back_audio_url"] == "https://cdn.example.com/a.mp3"
    assert "front_audio" not in published

    imported = card_transcoder.published_to_imported(published)
    assert imported["front_audio"] == "https://cdn.example.com/q.mp3"
    assert imported["back_audio"] == "https://cdn.example.com/a.mp3"
    assert "audio_url" not in imported


def test_answer_arrays_only_kept_for_matching_type():
    stray = dict(SOURCE_CARDS[0], correct_answers=["x"], accepted_answers=["y"])
    published = card_transcoder.source_to_published(stray)
    assert published["correct_answers"] is None
    assert published["accepted_answers"] is None

    choice = card_transcoder.source_to_published(dict(SOURCE_CARDS[1], accepted_answers=["4"]))
    assert choice["accepted_answers"] is None
    assert choice["incorrect_answers"] == ["3", "5"]


def test_lists_are_copied_not_shared():
    published = card_transcoder.source_to_published(SOURCE_CARDS[1])
    published["correct_answers"].append("four")
    assert SOURCE_CARDS[1]["correct_answers"] == ["4"]


def test_snapshot_renumbers_positions_in_order():
    rows = card_transcoder.snapshot_cards(SOURCE_CARDS)
    assert [row["position"] for row in rows] == [0, 1, 2]
    assert [row["front"] for row in rows] == ["Largest planet", "Capital of France?", "2 + 2"]

    imported = card_transcoder.import_cards(reversed(rows))
    assert [row["front"] for row in imported] == ["Largest planet", "Capital of France?", "2 + 2"]


def test_unknown_card_type_is_rejected():
    with pytest.raises(ValidationError) as excinfo:
        card_transcoder.source_to_published({"card_type": "cloze", "front": "x"})
    assert excinfo.value.code == "unknown_card_type"


def test_choice_options_conversion():
    correct, incorrect = card_transcoder.from_choice_options(["a", "b", "c", "d"], [1, 3])
    assert correct == ["b", "d"]
    assert incorrect == ["a", "c"]

    options, indices = card_transcoder.to_choice_options(correct, incorrect)
    assert options == ["b", "d", "a", "c"]
    assert indices == [0, 1]
    assert card_transcoder.from_choice_options(options, indices) == (correct, incorrect)


def test_choice_index_out_of_range():
    with pytest.raises(ValidationError):
        card_transcoder.from_choice_options(["a", "b"], [2])


@pytest.mark.parametrize(
    "card_type, correct, incorrect, accepted",
    [
        ("multiple-choice", [], ["b"], None),
        ("multiple-choice", ["a"], [], None),
        ("type-answer", None, None, []),
    ],
)
def test_validate_answers_requires_type_specific_answers(card_type, correct, incorrect, accepted):
    with pytest.raises(ValidationError):
        card_transcoder.validate_answers(card_type, correct, incorrect, accepted)


def test_validate_answers_accepts_classic_flip_without_arrays():
    card_transcoder.validate_answers("classic-flip", None, None, None)
