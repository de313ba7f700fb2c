"""Repair of Swedish characters mangled by a latin-1/UTF-8 mix-up in bank exports."""

MOJIBAKE_REPLACEMENTS = (
    ("Ã¥", "å"),
    ("Ã¤", "ä"),
    ("Ã¶", "ö"),
    ("Ã…", "Å"),
    ("Ã„", "Ä"),
    ("Ã–", "Ö"),
)

REPLACEMENT_CHARACTER = "�"


def repair_encoding(text: str) -> str:
    """
    Fix common mojibake and drop undecodable characters.

    Example:
        >>> repair_encoding("RÃ¤ntor")
        'Räntor'
    """
    if not text:
        return text
    for broken, fixed in MOJIBAKE_REPLACEMENTS:
        text = text.replace(broken, fixed)
    return text.replace(REPLACEMENT_CHARACTER, "")
