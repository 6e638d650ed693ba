"""Fixed-width string helpers."""


def trim_or_pad(text: str | None, length: int, pad_char: str = " ") -> str:
    """Fit text to exactly `length` characters.

    Shorter text is right-padded with `pad_char`, longer text is cut.
    None is treated as an empty string.
    """
    if text is None:
        return pad_char * length
    if len(text) < length:
        return text + pad_char * (length - len(text))
    return text[:length]
