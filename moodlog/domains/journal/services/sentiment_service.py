"""Sentiment classification capability.

``classify(text)`` returns one of POSITIVE/NEGATIVE/NEUTRAL or raises
:class:`ClassificationFailure`. The worker receives it as a plain callable so
any model can be injected in its place.
"""

from __future__ import annotations

import re
import threading
from typing import Any, Callable, Dict

from moodlog.domains.journal.errors import ClassificationFailure
from moodlog.domains.journal.models import CLASSIFIED_LABELS, Sentiment

Classifier = Callable[[str], Sentiment]

POSITIVE_WORDS = frozenset(
    {"great", "good", "happy", "excited", "wonderful", "love", "grateful", "calm", "proud", "fun"}
)
NEGATIVE_WORDS = frozenset(
    {"bad", "sad", "angry", "tired", "awful", "terrible", "anxious", "lonely", "stressed", "hate"}
)
_WORD_RE = re.compile(r"[a-z']+")


def analyze_sentiment(content: str) -> Sentiment:
    """Keyword heuristic; ties and no matches are NEUTRAL."""
    if content is None:
        raise ClassificationFailure("no content to classify")
    words = _WORD_RE.findall(content.lower())
    positive = sum(1 for word in words if word in POSITIVE_WORDS)
    negative = sum(1 for word in words if word in NEGATIVE_WORDS)
    if positive > negative:
        return Sentiment.POSITIVE
    if negative > positive:
        return Sentiment.NEGATIVE
    return Sentiment.NEUTRAL


def classify_with_timeout(classify: Classifier, text: str, timeout: float) -> Sentiment:
    """Run ``classify`` bounded by ``timeout`` seconds.

    Each call runs on its own daemon thread, so an earlier hung call never
    holds up this one. Timeouts, raised errors and out-of-range labels all
    surface as ClassificationFailure. A timed-out call keeps running in its
    thread; its result is ignored.
    """
    outcome: Dict[str, Any] = {}
    done = threading.Event()

    def _run() -> None:
        try:
            outcome["label"] = classify(text)
        except Exception as exc:
            outcome["error"] = exc
        finally:
            done.set()

    threading.Thread(target=_run, name="classify", daemon=True).start()
    if not done.wait(timeout):
        raise ClassificationFailure(f"classification timed out after {timeout}s")
    error = outcome.get("error")
    if isinstance(error, ClassificationFailure):
        raise error
    if error is not None:
        raise ClassificationFailure(f"classifier error: {error}") from error
    label = outcome["label"]
    try:
        label = Sentiment(label)
    except ValueError as exc:
        raise ClassificationFailure(f"classifier returned unknown label {label!r}") from exc
    if label not in CLASSIFIED_LABELS:
        raise ClassificationFailure(f"classifier returned non-terminal label {label.value}")
    return label
