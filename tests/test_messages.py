"""Toast and alert classification."""
import pytest

from daee_e2e.support.messages import MessageKind, classify_message, is_error_message, is_success_message


@pytest.mark.parametrize(
    "text, kind",
    [
        ("Indent created successfully", MessageKind.SUCCESS),
        ("Changes saved", MessageKind.SUCCESS),
        ("Invalid verification code", MessageKind.ERROR),
        ("Incorrect email or password", MessageKind.ERROR),
        ("Access denied", MessageKind.ERROR),
        ("Warning: period already filed", MessageKind.WARNING),
        ("Welcome!", MessageKind.INFO),
    ],
)
def test_classify_message(text, kind):
    assert classify_message(text) is kind


def test_error_wins_over_success():
    """A failed save mentions both words and must read as an error."""
    assert classify_message("Failed to save indent") is MessageKind.ERROR
    assert classify_message("Update failed") is MessageKind.ERROR


def test_predicates():
    assert is_error_message("Unable to load dealers")
    assert not is_error_message("Dealer updated")
    assert is_success_message("Dealer updated")
    assert not is_success_message("Loading...")


@pytest.mark.parametrize("text", ["Redirecting to notes", "Notebook synced", "3 notes attached"])
def test_note_inside_other_words_is_not_a_warning(text):
    assert classify_message(text) is not MessageKind.WARNING


def test_note_as_a_word_is_a_warning():
    assert classify_message("Note: GSTR-1 due on the 11th") is MessageKind.WARNING
