"""Exceptions raised by the CAD-to-BOQ services."""


class CADBOQError(Exception):
    """Base class for CAD-to-BOQ errors."""


class UnsupportedFormatError(CADBOQError):
    """File extension is neither dwg nor dxf. Never degraded to synthetic data."""

    def __init__(self, extension: str):
        self.extension = extension
        super().__init__(f"Unsupported file format: {extension or '(none)'}")


class DrawingDecodeError(CADBOQError):
    """A decoder could not turn the payload into drawing data."""
