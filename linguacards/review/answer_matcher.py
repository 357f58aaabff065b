"""
LinguaCards - Answer Matcher
Fuzzy comparison of a typed answer against a card's canonical answer
"""
from enum import Enum

from linguacards.core.config import settings


class MatchResult(str, Enum):
    """Verdict on a typed answer."""
    EXACT = "exact"      # Correct, possibly with a minor typo
    PARTIAL = "partial"  # Close enough that the learner decides
    WRONG = "wrong"


def normalize(text: str) -> str:
    """Lowercase, trim and fold "ё" into "е" (answers use both spellings)."""
    return text.lower().strip().replace("ё", "е")


def levenshtein_distance(s1: str, s2: str) -> int:
    """Classic edit distance (insert, delete, substitute all cost 1)."""
    if len(s1) < len(s2):
        s1, s2 = s2, s1

    previous = list(range(len(s2) + 1))
    for i, c1 in enumerate(s1, start=1):
        current = [i]
        for j, c2 in enumerate(s2, start=1):
            cost = 0 if c1 == c2 else 1
            current.append(min(
                previous[j] + 1,         # deletion
                current[j - 1] + 1,      # insertion
                previous[j - 1] + cost,  # substitution
            ))
        previous = current

    return previous[-1]


def similarity(s1: str, s2: str) -> float:
    """1.0 for identical strings, 0.0 for nothing in common."""
    longest = max(len(s1), len(s2))
    if longest == 0:
        return 1.0
    return 1.0 - levenshtein_distance(s1, s2) / longest


class AnswerMatcher:
    """
    Classify a typed answer as Exact, Partial or Wrong.

    The canonical answer may list alternatives separated by commas
    ("cat, kitty"); the typed answer is compared with each of them. A typed
    answer listing several synonyms is exact when any one of them is.
    """

    def __init__(
        self,
        exact_threshold: float | None = None,
        partial_threshold: float | None = None,
    ):
        self.exact_threshold = (
            exact_threshold if exact_threshold is not None else settings.MATCH_EXACT_THRESHOLD
        )
        self.partial_threshold = (
            partial_threshold if partial_threshold is not None else settings.MATCH_PARTIAL_THRESHOLD
        )

    @staticmethod
    def alternatives(canonical: str) -> list[str]:
        """Normalized, non-empty alternatives of a canonical answer."""
        return [alt for alt in (normalize(part) for part in canonical.split(",")) if alt]

    def compare(self, typed: str, canonical: str) -> MatchResult:
        """
        Compare a typed answer with the canonical answer.

        Args:
            typed: What the learner typed
            canonical: The card's answer, optionally with comma-separated alternatives

        Returns:
            EXACT, PARTIAL or WRONG
        """
        answer = normalize(typed or "")
        if not answer:
            return MatchResult.WRONG

        alternatives = self.alternatives(canonical or "")
        if not alternatives:
            return MatchResult.WRONG

        if answer in alternatives:
            return MatchResult.EXACT

        # The learner may type several synonyms; one exact hit is enough
        if any(part in alternatives for part in self.alternatives(answer)):
            return MatchResult.EXACT

        if any(answer in alt or alt in answer for alt in alternatives):
            return MatchResult.PARTIAL

        best = max(similarity(answer, alt) for alt in alternatives)
        if best >= self.exact_threshold:
            return MatchResult.EXACT
        if best >= self.partial_threshold:
            return MatchResult.PARTIAL
        return MatchResult.WRONG


# Singleton instance
answer_matcher = AnswerMatcher()


def compare(typed: str, canonical: str) -> MatchResult:
    """Compare using the default thresholds."""
    return answer_matcher.compare(typed, canonical)
