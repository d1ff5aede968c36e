"""
Document context for concept linking.

Gives ranking features and rankers access to the text surrounding a mention.
"""


def extract_window_context(
    text: str,
    start: int,
    end: int,
    window_chars: int = 150,
) -> str:
    """
    Return up to ``window_chars`` characters on either side of the mention.

    The window never cuts a word in half: a partial word at either edge is
    dropped. Offsets outside the text are clamped.
    """
    if not text:
        return ""
    start = max(0, min(start, len(text)))
    end = max(start, min(end, len(text)))
    left = max(0, start - window_chars)
    right = min(len(text), end + window_chars)

    if left > 0:
        # Skip to the first word that starts inside the window
        boundary = text.find(" ", left, start)
        if boundary != -1:
            left = boundary + 1
    if right < len(text):
        boundary = text.rfind(" ", end, right)
        if boundary != -1:
            right = boundary

    return text[left:right].strip()


class TextDocumentContext:
    """Document context over plain document text."""

    def __init__(self, text: str):
        self.text = text

    def window(self, begin: int, end: int, size: int) -> str:
        return extract_window_context(self.text, begin, end, window_chars=size)
