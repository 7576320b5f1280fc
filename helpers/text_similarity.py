# helpers/text_similarity.py
import logging
import re
from collections import Counter
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Any, Iterable, List, Optional

logger = logging.getLogger(__name__)

TITLE_WEIGHT = 0.3
DESCRIPTION_WEIGHT = 0.7
DEFAULT_THRESHOLD = 0.75
DEFAULT_WINDOW_DAYS = 7

_WHITESPACE = re.compile(r"\s+")


@dataclass(frozen=True)
class TextDuplicateCandidate:
    issue: Any
    score: float


def compare_two_strings(first: str, second: str) -> float:
    """
    Dice coefficient over character bigrams, ignoring whitespace.
    1.0 for identical strings, 0.0 when either has fewer than two characters.
    """
    first = _WHITESPACE.sub("", first or "")
    second = _WHITESPACE.sub("", second or "")

    if first == second:
        return 1.0 if first else 0.0
    if len(first) < 2 or len(second) < 2:
        return 0.0

    first_bigrams = Counter(first[i:i + 2] for i in range(len(first) - 1))
    intersection = 0
    for i in range(len(second) - 1):
        bigram = second[i:i + 2]
        if first_bigrams[bigram] > 0:
            first_bigrams[bigram] -= 1
            intersection += 1

    return (2.0 * intersection) / (len(first) + len(second) - 2)


def composite_score(title: str, description: str, other_title: str, other_description: str) -> float:
    return (
        TITLE_WEIGHT * compare_two_strings(title, other_title)
        + DESCRIPTION_WEIGHT * compare_two_strings(description, other_description)
    )


def score_text_duplicates(
    title: str,
    description: str,
    recent: Iterable[Any],
    threshold: float = DEFAULT_THRESHOLD,
) -> List[TextDuplicateCandidate]:
    """Keep recent issues whose composite score is strictly above threshold, in input order."""
    candidates = []
    for issue in recent:
        score = composite_score(title, description, issue.title, issue.description)
        if score > threshold:
            candidates.append(TextDuplicateCandidate(issue=issue, score=score))
    return candidates


class TextDuplicateScorer:
    """
    Looks up same-category issues inside the trailing window and scores them
    against a new submission. The store returns most recent first, so the
    first candidate is the preferred duplicate reference.
    """

    def __init__(self, store, window_days: int = DEFAULT_WINDOW_DAYS, threshold: float = DEFAULT_THRESHOLD):
        self.store = store
        self.window_days = window_days
        self.threshold = threshold

    def score(
        self,
        title: str,
        description: str,
        category: str,
        now: Optional[datetime] = None,
    ) -> List[TextDuplicateCandidate]:
        now = now or datetime.utcnow()
        since = now - timedelta(days=self.window_days)
        recent = self.store.recent_issues(category, since)
        candidates = score_text_duplicates(title, description, recent, self.threshold)
        if candidates:
            logger.info(
                f"Text duplicate check: {len(candidates)} of {len(recent)} recent "
                f"{category} issue(s) above {self.threshold}"
            )
        return candidates
