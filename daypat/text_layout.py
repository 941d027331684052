"""
Text measurement against a loaded font.

Wrapping is per character rather than per word so that scripts written
without spaces (Korean, Japanese) break just as well as English. Anything
with a Pillow-style `getlength(text)` can be used as the font.
"""

ELLIPSIS = "…"


def text_width(font, text: str) -> float:
    return font.getlength(text)


def wrap(text: str | None, font, max_width: float) -> list[str]:
    """
    Greedy character wrap. A new line starts whenever the next character
    would push the current one past `max_width`; a line always receives at
    least one character, so a glyph wider than the box gets its own line.
    Explicit newlines always break.
    """
    if not text:
        return []

    lines: list[str] = []
    for paragraph in text.splitlines():
        current = ""
        for char in paragraph:
            candidate = current + char
            if current and text_width(font, candidate) > max_width:
                lines.append(current)
                current = char
            else:
                current = candidate
        lines.append(current)

    # trailing blank paragraphs carry nothing to draw
    while lines and not lines[-1]:
        lines.pop()
    return lines


def truncate(lines: list[str], font, max_lines: int, max_width: float) -> list[str]:
    """Keep at most `max_lines`; the last kept line ends with an ellipsis that fits."""
    if len(lines) <= max_lines:
        return list(lines)
    if max_lines <= 0:
        return []

    kept = lines[:max_lines]
    last = kept[-1]
    while last and text_width(font, last + ELLIPSIS) > max_width:
        last = last[:-1]
    kept[-1] = last.rstrip() + ELLIPSIS if last else ELLIPSIS
    return kept


def line_height(font_size: float, multiplier: float) -> int:
    # Whole pixels: a fractional step drifts away from the frame over many lines.
    return round(font_size * multiplier)


def text_height(line_count: int, font_size: float, multiplier: float) -> int:
    return line_count * line_height(font_size, multiplier)
