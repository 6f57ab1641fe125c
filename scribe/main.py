"""Main application entry point for Scribe."""

import sys
import asyncio
import argparse
import logging
from datetime import datetime
from pathlib import Path
from typing import Optional

from rich.console import Console
from rich.live import Live
from rich.text import Text

from .audio.devices import CaptureDeviceGateway
from .config import ScribeConfig
from .exceptions import EmptyRecordingError
from .models.audio import Encoding, RecordedAudio
from .services import RecordingService, TranscriptionService

logger = logging.getLogger(__name__)


class Server:

    def __init__(self, config_path: Optional[str], log_level: Optional[str] = None):
        # Load configuration
        self.config = ScribeConfig(config_path)
        # Set up logging (override config with command line if specified)
        level = log_level or self.config.get('logging.level', 'INFO')
        setup_logging(self.config, level)
        self.console = Console()

        self.recording_service = RecordingService(self.config)
        self.transcription_service = TranscriptionService(self.config)

    async def record(self, duration: float) -> Optional[RecordedAudio]:
        """Record for ``duration`` seconds while showing a live status line."""
        await self.recording_service.start_recording()
        loop = asyncio.get_running_loop()
        deadline = loop.time() + duration
        try:
            with Live(Text(self.recording_service.format_recording_status()),
                      console=self.console, refresh_per_second=4) as live:
                while loop.time() < deadline:
                    await asyncio.sleep(min(1.0, max(0.0, deadline - loop.time())))
                    live.update(Text(self.recording_service.format_recording_status()))
        except (KeyboardInterrupt, asyncio.CancelledError):
            await self.recording_service.cancel_recording()
            raise

        try:
            return await self.recording_service.stop_recording()
        except EmptyRecordingError:
            self.console.print("⚠️ Nothing was recorded")
            return None

    def save_audio(self, audio: RecordedAudio, output_dir: Optional[str]) -> Path:
        directory = Path(output_dir or self.config.get_recording_directory())
        directory.mkdir(parents=True, exist_ok=True)
        path = directory / audio.filename(f"scribe-recording-{datetime.now():%Y-%m-%d-%H%M%S}")
        path.write_bytes(audio.data)
        logger.info(f"Audio saved to {path}")
        return path

    def _on_chunk_start(self, index: int, total: int) -> None:
        if total > 1:
            self.console.print(f"🎧 Transcribing part {index + 1}/{total}")

    async def run(self, duration: float, output_dir: Optional[str]) -> None:
        audio = await self.record(duration)
        if audio is None:
            return

        path = self.save_audio(audio, output_dir)
        self.console.print(f"💾 Saved {audio.size_bytes} bytes to {path}")

        transcript = await self.transcription_service.transcribe(audio, self._on_chunk_start)
        self.console.print(transcript)

    async def transcribe_file(self, file_path: str) -> None:
        path = Path(file_path)
        data = path.read_bytes()
        encoding = Encoding(container=path.suffix.lstrip(".").lower())
        transcript = await self.transcription_service.transcribe_bytes(data, encoding, self._on_chunk_start)
        self.console.print(transcript)

    def list_devices(self) -> None:
        for device in CaptureDeviceGateway().list_input_devices():
            self.console.print(f"[{device['index']}] {device['name']} "
                               f"({device['channels']} ch, {device['default_sample_rate']:.0f} Hz)")


def setup_logging(config, level: str = "INFO") -> None:
    """Set up logging configuration from YAML config."""
    log_file_path = config.get('logging.file_path', 'logs/scribe.log')
    console_output = config.get('logging.console_output', True)

    log_dir = Path(log_file_path).parent
    log_dir.mkdir(parents=True, exist_ok=True)

    handlers = []

    # File handler - always write to file
    file_handler = logging.FileHandler(log_file_path)
    file_handler.setLevel(logging.DEBUG)
    file_formatter = logging.Formatter(
        '%(asctime)s - %(name)s - %(levelname)s - %(funcName)s:%(lineno)d - %(message)s'
    )
    file_handler.setFormatter(file_formatter)
    handlers.append(file_handler)

    # Console handler - only if enabled in config
    if console_output:
        console_handler = logging.StreamHandler(sys.stderr)
        console_handler.setLevel(logging.WARNING)  # Only show warnings and above on console
        console_formatter = logging.Formatter('%(asctime)s - %(name)s - %(levelname)s - %(message)s')
        console_handler.setFormatter(console_formatter)
        handlers.append(console_handler)

    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.setLevel(getattr(logging, level.upper()))
    for handler in handlers:
        root_logger.addHandler(handler)

    logger = logging.getLogger(__name__)
    logger.info("="*50)
    logger.info("Scribe starting up")
    logger.info(f"Log file: {log_file_path}")
    logger.info(f"Log level set to: {level}")
    logger.info("="*50)


def main() -> None:
    """Main entry point for Scribe."""
    parser = argparse.ArgumentParser(
        description="Scribe - record audio and transcribe it",
    )

    parser.add_argument(
        "--config",
        type=str,
        help="Path to configuration YAML file (default: built-in defaults)"
    )

    parser.add_argument(
        "--log-level",
        type=str,
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Set logging level (default: from config, else INFO)"
    )

    parser.add_argument(
        "--duration",
        type=float,
        default=10,
        help="Recording duration in seconds (default: 10)"
    )

    parser.add_argument(
        "--output-dir",
        type=str,
        help="Directory for the recorded audio file (overrides config)"
    )

    parser.add_argument(
        "--transcribe-file",
        type=str,
        help="Transcribe an existing audio file instead of recording"
    )

    parser.add_argument(
        "--list-devices",
        action="store_true",
        help="List audio input devices and exit"
    )

    parser.add_argument(
        "--version",
        action="version",
        version="Scribe v0.1.0"
    )

    args = parser.parse_args()

    try:
        server = Server(args.config, args.log_level)
        if args.list_devices:
            server.list_devices()
        elif args.transcribe_file:
            asyncio.run(server.transcribe_file(args.transcribe_file))
        else:
            asyncio.run(server.run(args.duration, args.output_dir))
    except KeyboardInterrupt:
        print("\n👋 Goodbye!")
    except Exception as e:
        print(f"❌ Error: {e}")
        logging.error(f"Application error: {e}")
        sys.exit(1)


if __name__ == "__main__":
    main()
