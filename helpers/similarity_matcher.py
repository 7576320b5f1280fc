# helpers/similarity_matcher.py
import math
from dataclasses import dataclass
from typing import Any, Iterable, List, Optional, Union

EXACT = "exact"
NEAR = "near"

HASH_BITS = 64
DEFAULT_THRESHOLD = 10


@dataclass(frozen=True)
class DuplicateCandidate:
    """A stored fingerprint that matched the one being ingested."""
    fingerprint: Any
    classification: str
    average_distance: Union[int, float]
    difference_distance: Union[int, float]

    @property
    def score(self) -> Union[int, float]:
        """Ranking key within a class: summed hash distance, lower is closer."""
        return self.average_distance + self.difference_distance

    @property
    def similarity(self) -> int:
        if self.classification == EXACT:
            return 100
        closest = min(self.average_distance, self.difference_distance)
        if math.isinf(closest):
            return 0
        # half rounds up
        return math.floor(100 - (closest / HASH_BITS * 100) + 0.5)


def hamming_distance(a: Optional[str], b: Optional[str]) -> Union[int, float]:
    """
    Count differing positions between two equal-length bit strings.
    Returns math.inf when either side is missing or lengths differ.
    """
    if not a or not b or len(a) != len(b):
        return math.inf
    return sum(1 for x, y in zip(a, b) if x != y)


def find_similar(candidate, index: Iterable[Any], threshold: int = DEFAULT_THRESHOLD) -> List[DuplicateCandidate]:
    """
    Compare a fingerprint against an index snapshot.

    Both `candidate` and index entries only need `average_hash`,
    `difference_hash` and `exact_digest` attributes, so ORM rows and
    Fingerprint values can be mixed freely. Entries carrying neither hash
    are ignored.
    """
    matches: List[DuplicateCandidate] = []
    for stored in index or ():
        if not stored.average_hash and not stored.difference_hash:
            continue

        a_dist = hamming_distance(candidate.average_hash, stored.average_hash)
        d_dist = hamming_distance(candidate.difference_hash, stored.difference_hash)
        is_exact = bool(
            candidate.exact_digest
            and stored.exact_digest
            and candidate.exact_digest == stored.exact_digest
        )

        if is_exact:
            matches.append(DuplicateCandidate(stored, EXACT, a_dist, d_dist))
        elif a_dist <= threshold or d_dist <= threshold:
            matches.append(DuplicateCandidate(stored, NEAR, a_dist, d_dist))

    # exact first, then closest
    matches.sort(key=lambda m: (m.classification != EXACT, m.score))
    return matches
