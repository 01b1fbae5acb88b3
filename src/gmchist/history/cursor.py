from __future__ import annotations


MARKER_FIRST = 0x55
MARKER_SECOND = 0xAA


class CursorOutOfRange(IndexError):
    """Raised when a read would run past the end of the image."""


class FrameCursor:
    """Read position over an immutable history image."""

    def __init__(self, image: bytes, position: int = 0):
        self.image = bytes(image)
        self.position = position

    def __len__(self) -> int:
        return len(self.image)

    def peek(self, offset: int = 0) -> int:
        index = self.position + offset
        if index >= len(self.image):
            raise CursorOutOfRange(f"offset {index} outside image of {len(self.image)} bytes")
        return self.image[index]

    def advance(self, count: int = 1) -> None:
        self.position += count

    def remaining(self) -> int:
        return max(len(self.image) - self.position, 0)

    def take(self, count: int) -> bytes:
        if count > self.remaining():
            raise CursorOutOfRange(
                f"need {count} bytes at offset {self.position}, only {self.remaining()} left"
            )
        data = self.image[self.position : self.position + count]
        self.position += count
        return data

    def at_marker(self) -> bool:
        if self.remaining() < 2:
            return False
        return self.peek(0) == MARKER_FIRST and self.peek(1) == MARKER_SECOND

    def exhausted(self) -> bool:
        return self.position >= len(self.image) - 1
