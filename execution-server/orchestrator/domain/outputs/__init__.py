"""Captured execution output."""

from .exceptions import BufferSealedError
from .models import STDERR, STDOUT, OutputChunk, OutputPage
from .service import OutputBuffer

__all__ = [
    "BufferSealedError",
    "OutputBuffer",
    "OutputChunk",
    "OutputPage",
    "STDERR",
    "STDOUT",
]
