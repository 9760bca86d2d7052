from __future__ import annotations

from ports.decode import DecodeError


class ScannerError(RuntimeError):
    """Base for scanner failures."""


class AcquisitionError(ScannerError):
    """Camera could not be opened (missing device, permission denied, ...)."""

    def __init__(self, selector: str, detail: str) -> None:
        super().__init__(f"camera '{selector}' unavailable: {detail}")
        self.selector = selector
        self.detail = detail


__all__ = ["ScannerError", "AcquisitionError", "DecodeError"]
