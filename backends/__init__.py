"""Rendering backends: the boundary contract plus recording and deck.gl implementations."""

from .base import (
    BackendInitError,
    BoundaryFeature,
    PickCallback,
    RenderBackendAdapter,
)
from .deckgl_backend import DeckGLBackend
from .recording import RecordingBackend

__all__ = [
    "BackendInitError",
    "BoundaryFeature",
    "PickCallback",
    "RenderBackendAdapter",
    "DeckGLBackend",
    "RecordingBackend",
]
