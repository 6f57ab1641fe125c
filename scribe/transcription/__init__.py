"""Transcription module for Scribe."""

from .base import AbstractTranscriptionBackend
from ..models.transcription import TranscriptionResult, TranscriptionJob
from .chunking import MAX_CHUNK_SIZE, AudioUpload, plan_chunks
from .pipeline import ChunkedTranscriptionPipeline, SingleShotTranscriptionPipeline
from .openai_backend import OpenAIWhisperBackend
from .assemblyai_backend import AssemblyAIBackend
from .google_backend import GoogleSpeechBackend

__all__ = [
    "AbstractTranscriptionBackend",
    "TranscriptionResult",
    "TranscriptionJob",
    "MAX_CHUNK_SIZE",
    "AudioUpload",
    "plan_chunks",
    "ChunkedTranscriptionPipeline",
    "SingleShotTranscriptionPipeline",
    "OpenAIWhisperBackend",
    "AssemblyAIBackend",
    "GoogleSpeechBackend",
]
