"""Field mapping between owned, community and imported card shapes.

Owned and imported cards share the ``cards`` table layout. Community cards
differ in two places:

* audio lives in ``audio_url`` / ``back_audio_url`` instead of
  ``front_audio`` / ``back_audio``;
* answer arrays are only kept for the card type that uses them
  (multiple-choice keeps ``correct_answers`` / ``incorrect_answers``,
  type-answer keeps ``accepted_answers``).

Editors send multiple-choice answers as ``options`` plus ``correct_indices``;
:func:`from_choice_options` and :func:`to_choice_options` convert between that
shape and the stored parallel arrays.

Imported cards already use the owned layout, so nothing maps in that
direction. All functions here are pure and return new lists, never references to the
input card's lists.
"""

from __future__ import annotations

from typing import Any, Iterable, Mapping, Sequence

from ..models import CARD_TYPES
from .errors import ValidationError

MULTIPLE_CHOICE = "multiple-choice"
TYPE_ANSWER = "type-answer"
CLASSIC_FLIP = "classic-flip"

SHARED_FIELDS = ("card_type", "front", "back", "front_image_url", "back_image_url")
# owned / imported name -> community name
AUDIO_FIELDS = (("front_audio", "audio_url"), ("back_audio", "back_audio_url"))


def _read(card: Any, field: str) -> Any:
    if isinstance(card, Mapping):
        return card.get(field)
    return getattr(card, field, None)


def _copy_list(values: Iterable[str] | None) -> list[str] | None:
    if values is None:
        return None
    return [value for value in values]


def answer_arrays(
    card_type: str,
    correct: Sequence[str] | None,
    incorrect: Sequence[str] | None,
    accepted: Sequence[str] | None,
) -> tuple[list[str] | None, list[str] | None, list[str] | None]:
    """Keep only the answer arrays that ``card_type`` actually uses."""

    if card_type not in CARD_TYPES:
        raise ValidationError("unknown_card_type", {"card_type": card_type})
    if card_type == MULTIPLE_CHOICE:
        return _copy_list(correct) or [], _copy_list(incorrect) or [], None
    if card_type == TYPE_ANSWER:
        return None, None, _copy_list(accepted) or []
    return None, None, None


def validate_answers(
    card_type: str,
    correct: Sequence[str] | None,
    incorrect: Sequence[str] | None,
    accepted: Sequence[str] | None,
) -> None:
    correct, incorrect, accepted = answer_arrays(card_type, correct, incorrect, accepted)
    if card_type == MULTIPLE_CHOICE:
        if not correct:
            raise ValidationError(
                "invalid_card", {"message": "Multiple-choice cards need a correct answer."}
            )
        if not incorrect:
            raise ValidationError(
                "invalid_card", {"message": "Multiple-choice cards need an incorrect answer."}
            )
    if card_type == TYPE_ANSWER and not accepted:
        raise ValidationError(
            "invalid_card", {"message": "Type-answer cards need at least one accepted answer."}
        )


def from_choice_options(
    options: Sequence[str], correct_indices: Iterable[int]
) -> tuple[list[str], list[str]]:
    """Split editor options into ``(correct_answers, incorrect_answers)``."""

    indices = set(correct_indices)
    for index in indices:
        if index < 0 or index >= len(options):
            raise ValidationError(
                "invalid_card", {"message": f"Correct option index {index} is out of range."}
            )
    correct = [option for idx, option in enumerate(options) if idx in indices]
    incorrect = [option for idx, option in enumerate(options) if idx not in indices]
    return correct, incorrect


def to_choice_options(
    correct: Sequence[str] | None, incorrect: Sequence[str] | None
) -> tuple[list[str], list[int]]:
    """Editor shape for stored arrays: correct options first."""

    correct = list(correct or [])
    options = correct + list(incorrect or [])
    return options, list(range(len(correct)))


def source_to_published(card: Any, position: int | None = None) -> dict:
    """Map an owned card onto ``CommunityCard`` column values."""

    card_type = _read(card, "card_type") or CLASSIC_FLIP
    correct, incorrect, accepted = answer_arrays(
        card_type,
        _read(card, "correct_answers"),
        _read(card, "incorrect_answers"),
        _read(card, "accepted_answers"),
    )
    mapped = {field: _read(card, field) for field in SHARED_FIELDS}
    mapped["card_type"] = card_type
    for source_name, community_name in AUDIO_FIELDS:
        mapped[community_name] = _read(card, source_name)
    mapped.update(
        correct_answers=correct,
        incorrect_answers=incorrect,
        accepted_answers=accepted,
        position=_read(card, "position") if position is None else position,
    )
    return mapped


def published_to_imported(card: Any, position: int | None = None) -> dict:
    """Map a ``CommunityCard`` onto ``Card`` column values for an importer."""

    card_type = _read(card, "card_type") or CLASSIC_FLIP
    correct, incorrect, accepted = answer_arrays(
        card_type,
        _read(card, "correct_answers"),
        _read(card, "incorrect_answers"),
        _read(card, "accepted_answers"),
    )
    mapped = {field: _read(card, field) for field in SHARED_FIELDS}
    mapped["card_type"] = card_type
    for source_name, community_name in AUDIO_FIELDS:
        mapped[source_name] = _read(card, community_name)
    mapped.update(
        correct_answers=correct,
        incorrect_answers=incorrect,
        accepted_answers=accepted,
        position=_read(card, "position") if position is None else position,
    )
    return mapped


def snapshot_cards(cards: Iterable[Any]) -> list[dict]:
    """Community rows for an owned deck's cards, renumbered 0..n-1."""

    ordered = sorted(cards, key=lambda card: _read(card, "position") or 0)
    return [source_to_published(card, position=idx) for idx, card in enumerate(ordered)]


def import_cards(cards: Iterable[Any]) -> list[dict]:
    """Owned-shape rows for a community deck's cards, renumbered 0..n-1."""

    ordered = sorted(cards, key=lambda card: _read(card, "position") or 0)
    return [published_to_imported(card, position=idx) for idx, card in enumerate(ordered)]


def semantic_fields(card: Any) -> dict:
    """Shape-independent view of a card, ignoring identity and position."""

    card_type = _read(card, "card_type") or CLASSIC_FLIP
    correct, incorrect, accepted = answer_arrays(
        card_type,
        _read(card, "correct_answers"),
        _read(card, "incorrect_answers"),
        _read(card, "accepted_answers"),
    )
    fields = {field: _read(card, field) for field in SHARED_FIELDS}
    fields["card_type"] = card_type
    for source_name, community_name in AUDIO_FIELDS:
        value = _read(card, source_name)
        if value is None:
            value = _read(card, community_name)
        fields[source_name] = value
    fields.update(
        correct_answers=correct,
        incorrect_answers=incorrect,
        accepted_answers=accepted,
    )
    return fields
