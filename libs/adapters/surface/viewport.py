from __future__ import annotations


class FixedViewport:
    """Display box of a known size (headless hosts, tests)."""

    def __init__(self, width: int, height: int) -> None:
        self.width = width
        self.height = height

    def display_size(self) -> tuple[int, int]:
        return self.width, self.height

    def resize(self, width: int, height: int) -> None:
        self.width = width
        self.height = height
