import re
from typing import List, NamedTuple

TOKEN_FORMAT = "<<<PH{index}>>>"
TOKEN_PATTERN = re.compile(r'<<<PH(\d+)>>>')

# Alternatives are tried in this order at each position; the leftmost match wins.
PLACEHOLDER_PATTERNS = [
    # Positional specifiers: %1$@, %2$lld
    r'%\d+\$[@dDuUxXoOfFeEgGcCsSaAp]',
    r'%\d+\$[lh]*[ldiuoxXfeEgGaA]+',
    # Plain specifiers: %@, %d, %ld, %lld
    r'%[@dDuUxXoOfFeEgGcCsSaAp]',
    r'%[lh]*[ldiuoxXfeEgGaA]+',
    # Named placeholders: {count}, {name}
    r'\{[^}]+\}',
    # Escape sequences written as a backslash and a letter: \n, \t, \r
    r'\\[ntr]',
    # Escaped percent sign
    r'%%',
]
PLACEHOLDER_PATTERN = re.compile('|'.join(PLACEHOLDER_PATTERNS))


class ProtectionResult(NamedTuple):
    """Text with placeholders swapped for tokens, and the originals in token order."""
    text: str
    placeholders: List[str]


def find_placeholders(text: str) -> List[str]:
    """Return every placeholder in ``text``, left to right."""
    return [match.group(0) for match in PLACEHOLDER_PATTERN.finditer(text)]


def protect(text: str) -> ProtectionResult:
    """
    Replace format specifiers, named placeholders and escapes with numbered tokens.

    Args:
        text (str): The source text.

    Returns:
        ProtectionResult: The tokenized text and the original placeholders,
        where ``placeholders[i]`` was replaced by ``<<<PH{i}>>>``.

    Example:
        >>> protect("%1$lld / %2$lld tabs")
        ProtectionResult(text='<<<PH0>>> / <<<PH1>>> tabs', placeholders=['%1$lld', '%2$lld'])
    """
    if not isinstance(text, str):
        raise ValueError("Input text must be a string.")

    placeholders: List[str] = []

    def replace_placeholder(match):
        placeholders.append(match.group(0))
        return TOKEN_FORMAT.format(index=len(placeholders) - 1)

    protected_text = PLACEHOLDER_PATTERN.sub(replace_placeholder, text)
    return ProtectionResult(protected_text, placeholders)


def restore(text: str, placeholders: List[str]) -> str:
    """
    Put the original placeholders back in place of their tokens.

    Tokens with no matching entry in ``placeholders`` are left as they are.
    """
    for index, placeholder in enumerate(placeholders):
        text = text.replace(TOKEN_FORMAT.format(index=index), placeholder)
    return text
