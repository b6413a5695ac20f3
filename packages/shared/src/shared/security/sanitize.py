from __future__ import annotations


def validate_search_input(value: str, max_length: int = 100) -> bool:
    """Accept free text up to ``max_length``; stores bind it as a parameter."""
    if len(value) > max_length:
        return False
    return all(char.isprintable() for char in value)
