"""Small helpers shared across subpackages."""

CHOICE_SEPARATOR = "///"


def strip_choice_label(value: str) -> str:
    """Drop the ``///Label`` decoration the UI appends to choice values."""
    return value.split(CHOICE_SEPARATOR, 1)[0].strip()
