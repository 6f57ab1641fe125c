"""Scribe: pausable audio recording with chunked speech-to-text transcription."""

__version__ = "0.1.0"
