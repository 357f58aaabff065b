"""LinguaCards - spaced-repetition review core."""
