"""Subject validation and pattern matching.

Subjects are dot-separated tokens such as ``books.delete``. Patterns may
use ``*`` to match exactly one token and ``>`` (last token only) to match
one or more trailing tokens.
"""

from typing import List

from ....core.exceptions import ValidationError


SINGLE_TOKEN_WILDCARD = "*"
TAIL_WILDCARD = ">"


def _tokens(subject: str) -> List[str]:
    return subject.split(".")


def validate_subject(subject: str, allow_wildcards: bool = False) -> str:
    """Validate a subject or subject pattern.
    
    Args:
        subject: Subject to check
        allow_wildcards: Accept ``*`` and ``>`` tokens (patterns)
    
    Returns:
        The subject, unchanged
    
    Raises:
        ValidationError: If the subject is malformed
    """
    if not subject or not isinstance(subject, str):
        raise ValidationError("Subject must be a non-empty string")
    if any(ch.isspace() for ch in subject):
        raise ValidationError(f"Subject '{subject}' contains whitespace")
    
    tokens = _tokens(subject)
    for index, token in enumerate(tokens):
        if not token:
            raise ValidationError(f"Subject '{subject}' contains an empty token")
        if token in (SINGLE_TOKEN_WILDCARD, TAIL_WILDCARD):
            if not allow_wildcards:
                raise ValidationError(f"Wildcards are not allowed in subject '{subject}'")
            if token == TAIL_WILDCARD and index != len(tokens) - 1:
                raise ValidationError(f"'>' must be the last token in '{subject}'")
        elif SINGLE_TOKEN_WILDCARD in token or TAIL_WILDCARD in token:
            raise ValidationError(f"Wildcard must be a whole token in '{subject}'")
    
    return subject


def subject_matches(pattern: str, subject: str) -> bool:
    """Check whether a concrete subject matches a pattern."""
    pattern_tokens = _tokens(pattern)
    subject_tokens = _tokens(subject)
    
    for index, token in enumerate(pattern_tokens):
        if token == TAIL_WILDCARD:
            return len(subject_tokens) > index
        if index >= len(subject_tokens):
            return False
        if token != SINGLE_TOKEN_WILDCARD and token != subject_tokens[index]:
            return False
    
    return len(pattern_tokens) == len(subject_tokens)
