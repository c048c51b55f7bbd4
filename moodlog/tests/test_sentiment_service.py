import threading

import pytest

from moodlog.domains.journal.errors import ClassificationFailure
from moodlog.domains.journal.models import Sentiment
from moodlog.domains.journal.services.sentiment_service import (
    analyze_sentiment,
    classify_with_timeout,
)

pytestmark = pytest.mark.unit


@pytest.mark.parametrize(
    "text,expected",
    [
        ("Today was wonderful", Sentiment.POSITIVE),
        ("I feel sad and tired", Sentiment.NEGATIVE),
        ("Went to the store", Sentiment.NEUTRAL),
        ("Good start, bad ending", Sentiment.NEUTRAL),
        ("GREAT day, really great, bit tired", Sentiment.POSITIVE),
    ],
)
def test_keyword_heuristic(text, expected):
    assert analyze_sentiment(text) is expected


def test_classify_with_timeout_returns_label():
    assert classify_with_timeout(analyze_sentiment, "happy", timeout=1) is Sentiment.POSITIVE


def test_classify_with_timeout_accepts_string_labels():
    assert classify_with_timeout(lambda _t: "NEGATIVE", "x", timeout=1) is Sentiment.NEGATIVE


def test_timeout_is_a_classification_failure():
    release = threading.Event()

    def _hang(_text):
        release.wait(5)
        return Sentiment.POSITIVE

    try:
        with pytest.raises(ClassificationFailure, match="timed out"):
            classify_with_timeout(_hang, "x", timeout=0.05)
    finally:
        release.set()


def test_classifier_errors_are_wrapped():
    def _boom(_text):
        raise RuntimeError("model unavailable")

    with pytest.raises(ClassificationFailure, match="model unavailable"):
        classify_with_timeout(_boom, "x", timeout=1)


@pytest.mark.parametrize("label", ["positive", "PENDING", "FAILED"])
def test_non_terminal_or_unknown_labels_fail(label):
    with pytest.raises(ClassificationFailure):
        classify_with_timeout(lambda _t: label, "x", timeout=1)
