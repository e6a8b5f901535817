from collections import Counter
from typing import List

from xcstrings_translator.placeholder_codec import TOKEN_PATTERN, find_placeholders


def check_placeholder_parity(source_string: str, translated_string: str) -> bool:
    """
    Checks if the placeholders in a translation are the same as in the source.
    Format specifiers, named placeholders, escapes and %% are all compared.
    Reordering is allowed; only the multiset has to match.

    Args:
        source_string: The source-language string.
        translated_string: The translated string.

    Returns:
        True if both strings carry the same placeholders, False otherwise.
    """
    return Counter(find_placeholders(source_string)) == Counter(find_placeholders(translated_string))


def find_leftover_tokens(text: str) -> List[str]:
    """Returns protection tokens (``<<<PHn>>>``) that were not restored."""
    return [match.group(0) for match in TOKEN_PATTERN.finditer(text)]


def find_placeholder_issues(source_string: str, translated_string: str) -> List[str]:
    """
    Describes every placeholder problem found in a translated string.

    Returns:
        A list of messages. An empty list means the translation is valid.
    """
    issues = []

    leftovers = find_leftover_tokens(translated_string)
    if leftovers:
        issues.append(f"Unrestored placeholder tokens: {', '.join(leftovers)}")

    source_placeholders = Counter(find_placeholders(source_string))
    translated_placeholders = Counter(find_placeholders(translated_string))
    missing = source_placeholders - translated_placeholders
    extra = translated_placeholders - source_placeholders
    if missing:
        issues.append(f"Missing placeholders: {', '.join(sorted(missing.elements()))}")
    if extra:
        issues.append(f"Unexpected placeholders: {', '.join(sorted(extra.elements()))}")

    return issues
