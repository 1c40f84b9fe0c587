"""Exceptions raised while converting documents to SVG."""


class SlideSvgError(ValueError):
    """Base class for slidesvg errors."""


class FillResolutionError(SlideSvgError):
    """Raised when an image fill cannot be fetched or encoded.

    The fill resolver recovers from it by painting that one use with "none".
    """

    def __init__(self, source: str, message: str) -> None:
        super().__init__(f"Could not resolve image fill {source!r}: {message}")
        self.source = source


class TextMeasurementError(SlideSvgError):
    """Raised by a text measurer that cannot lay out an element's text."""


class MalformedOutputError(SlideSvgError):
    """Generated markup failed to parse.

    A well-formed renderer never produces unparsable markup, so this always
    signals a bug in the renderer rather than bad input.
    """

    def __init__(self, error: str, markup: str) -> None:
        super().__init__(f"{error}\n{markup}")
        self.error = error
        self.markup = markup
