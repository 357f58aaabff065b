"""LinguaCards - Core configuration, database and time zone helpers."""
