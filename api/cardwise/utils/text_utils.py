"""
Utility functions for card text normalization.
"""
from typing import List, Optional, Union


def normalize_field(text: Optional[str]) -> str:
    """
    Trim surrounding whitespace from a card text field.

    Args:
        text: Raw field value (can be None)

    Returns:
        Trimmed text, empty string for None
    """
    if text is None:
        return ""
    return text.strip()


def normalize_context(context: Union[str, List[str], None]) -> str:
    """
    Normalize sample sentences into newline-delimited text.

    Accepts either a newline-delimited string or a list of sentences. Blank
    sentences are dropped and the remaining order is preserved.

    Args:
        context: Sentences as a string or list of strings

    Returns:
        Newline-delimited sentences

    Raises:
        ValueError: If context is neither a string nor a list of strings
    """
    if context is None:
        return ""
    if isinstance(context, str):
        lines = context.split("\n")
    elif isinstance(context, (list, tuple)):
        if not all(isinstance(line, str) for line in context):
            raise ValueError("context sentences must be strings")
        lines = list(context)
    else:
        raise ValueError("context must be a string or a list of strings")

    return "\n".join(line.strip() for line in lines if line.strip())


def comparison_key(text: Optional[str]) -> str:
    """Case-insensitive comparison key used for duplicate detection and search."""
    return normalize_field(text).lower()
