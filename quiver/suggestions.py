"""
Quiver "did you mean" engine.

Similarity
- similarity(a, b) = 1 - distance(a, b) / max(len(a), len(b)), compared lowercase.
- distance() is the classic Levenshtein edit distance (insert, delete, substitute),
  computed with two rolling rows of the dynamic-programming table.
- Inputs are truncated to MAX_LENGTH characters so that hostile input cannot make
  a single comparison quadratic in an unbounded length.
- Two empty strings are identical (1.0); an empty and a non-empty string share nothing (0.0).

Ranking
- suggest() scores every candidate, keeps those at or above the threshold, sorts them
  by descending similarity and then alphabetically, and keeps at most `limit` matches.
- Candidate sets are small (switch keys, choice names, enum members), so a full scan
  is cheaper than any index.

Caching
- suggest() takes an optional, caller-owned mutable mapping used to memoize results.
  Nothing is cached at module level.

Quick example
    >>> suggest("survial", ["survival", "creative"]).best
    'survival'
"""
from typing import NamedTuple

MAX_LENGTH = 256
DEFAULT_LIMIT = 3
DEFAULT_THRESHOLD = 0.6


class Suggestion(NamedTuple):
    """
    Ranked matches for one input; empty when nothing cleared the threshold.
    """
    input: str
    matches: tuple[str, ...] = ()
    scores: tuple[float, ...] = ()

    @property
    def found(self):
        return bool(self.matches)

    @property
    def best(self):
        return self.matches[0] if self.matches else None

    def formatted(self):
        """
        Render the matches as a lowercase hint ("did you mean 'a', 'b' or 'c'?").
        """
        match self.matches:
            case ():
                return ""
            case (single,):
                return "did you mean %r?" % single
            case (*head, last):
                return "did you mean %s or %r?" % (", ".join(map(repr, head)), last)

    def __bool__(self):
        return self.found


def distance(source, target, /, *, ceiling=None):
    """
    Levenshtein distance between source and target (case-sensitive).

    When ceiling is given the computation stops as soon as every cell of a row exceeds
    it and ceiling + 1 is returned; callers use this to skip hopeless candidates early.
    """
    source, target = source[:MAX_LENGTH], target[:MAX_LENGTH]
    if len(source) < len(target):
        source, target = target, source
    if not target:
        return len(source)

    previous = list(range(len(target) + 1))
    for row, left in enumerate(source, 1):
        current = [row]
        for column, right in enumerate(target, 1):
            current.append(min(
                previous[column] + 1,
                current[column - 1] + 1,
                previous[column - 1] + (left != right),
            ))
        if ceiling is not None and min(current) > ceiling:
            return ceiling + 1
        previous = current
    return previous[-1]


def similarity(source, target, /):
    """
    Case-insensitive normalized similarity in [0.0, 1.0].
    """
    source, target = source[:MAX_LENGTH].lower(), target[:MAX_LENGTH].lower()
    if not (longest := max(len(source), len(target))):
        return 1.0
    return 1.0 - distance(source, target) / longest


def _rank(input, candidates, limit, threshold):
    lowered = input[:MAX_LENGTH].lower()
    scored = {}
    for candidate in candidates:
        if candidate in scored:
            continue
        folded = candidate[:MAX_LENGTH].lower()
        if not (longest := max(len(lowered), len(folded))):
            continue
        # Anything farther than this many edits cannot reach the threshold (one spare edit absorbs rounding).
        ceiling = int(longest * (1.0 - threshold)) + 1
        if (edits := distance(lowered, folded, ceiling=ceiling)) > ceiling:
            continue
        if (score := 1.0 - edits / longest) >= threshold:
            scored[candidate] = score

    ranked = sorted(scored.items(), key=lambda item: (-item[1], item[0]))[:limit]
    return Suggestion(input, tuple(name for name, _ in ranked), tuple(score for _, score in ranked))


def suggest(input, candidates, /, limit=DEFAULT_LIMIT, threshold=DEFAULT_THRESHOLD, *, cache=None):
    """
    Rank the candidates closest to input.

    Parameters
    - input: the offending token.
    - candidates: iterable of strings (duplicates are ignored).
    - limit: maximum number of matches kept (positive integer).
    - threshold: minimum similarity in [0.0, 1.0].
    - cache: optional mutable mapping owned by the caller, used to memoize results.

    Returns
    - Suggestion; empty for an empty input or an empty candidate set.

    Raises
    - TypeError / ValueError: on malformed limit or threshold.
    """
    if not isinstance(input, str):
        raise TypeError("suggest() input must be a string")
    if not isinstance(limit, int) or isinstance(limit, bool):
        raise TypeError("suggest() 'limit' must be an integer")
    if limit < 1:
        raise ValueError("suggest() 'limit' must be a positive integer")
    if not isinstance(threshold, int | float) or isinstance(threshold, bool):
        raise TypeError("suggest() 'threshold' must be a number")
    if not 0.0 <= threshold <= 1.0:
        raise ValueError("suggest() 'threshold' must be between 0.0 and 1.0")

    candidates = tuple(candidates)
    if not input or not candidates:
        return Suggestion(input)

    if cache is None:
        return _rank(input, candidates, limit, threshold)

    key = (input, candidates, limit, threshold)
    try:
        return cache[key]
    except KeyError:
        result = cache[key] = _rank(input, candidates, limit, threshold)
        return result


__all__ = (
    "MAX_LENGTH",
    "Suggestion",
    "distance",
    "similarity",
    "suggest",
)
