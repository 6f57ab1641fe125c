"""Capture device gateway: opens live microphone streams through PortAudio."""

import logging
from typing import Any, Callable, Dict, List, Optional, Union

import pyaudio

from ..exceptions import DeviceUnavailableError

logger = logging.getLogger(__name__)

DeviceId = Union[int, str]

DEFAULT_CONSTRAINTS: Dict[str, int] = {
    "sample_rate": 16000,
    "channels": 1,
    "frames_per_buffer": 1024,
}


class AudioInputStream:
    """Live input stream handle.

    The stream is opened in callback mode and stays stopped until
    ``start()`` is called. Captured frames are handed to the frame
    callback on PortAudio's thread.
    """

    def __init__(self, pyaudio_instance: pyaudio.PyAudio, sample_rate: int, channels: int,
                 frames_per_buffer: int, device_index: Optional[int] = None):
        self.pyaudio_instance = pyaudio_instance
        self.sample_rate = sample_rate
        self.channels = channels
        self.frames_per_buffer = frames_per_buffer
        self.device_index = device_index
        self.sample_width = 2  # paInt16

        self._stream: Optional[pyaudio.Stream] = None
        self._frame_callback: Optional[Callable[[bytes], None]] = None
        self.released = False

    def set_frame_callback(self, callback: Optional[Callable[[bytes], None]]) -> None:
        self._frame_callback = callback

    def _on_frames(self, in_data, frame_count, time_info, status):
        if status:
            logger.debug(f"PortAudio status flags: {status}")
        callback = self._frame_callback
        if callback is not None and in_data:
            callback(in_data)
        return (None, pyaudio.paContinue)

    def open(self) -> None:
        self._stream = self.pyaudio_instance.open(
            format=pyaudio.paInt16,
            channels=self.channels,
            rate=self.sample_rate,
            input=True,
            input_device_index=self.device_index,
            frames_per_buffer=self.frames_per_buffer,
            start=False,
            stream_callback=self._on_frames,
        )
        logger.info(f"Audio stream opened: {self.sample_rate}Hz, "
                    f"{self.channels} channel(s), {self.frames_per_buffer} frames/buffer")

    @property
    def is_active(self) -> bool:
        return self._stream is not None and self._stream.is_active()

    def start(self) -> None:
        if self._stream is None:
            raise RuntimeError("Audio stream is not open")
        self._stream.start_stream()

    def stop(self) -> None:
        if self._stream is not None and not self._stream.is_stopped():
            self._stream.stop_stream()

    def release(self) -> None:
        """Stop and close the stream and free the PortAudio instance."""
        if self.released:
            return
        self.released = True
        self._frame_callback = None
        try:
            if self._stream is not None:
                self.stop()
                self._stream.close()
        finally:
            self._stream = None
            self.pyaudio_instance.terminate()
        logger.info("Audio stream released")


class CaptureDeviceGateway:
    """Resolves input devices and opens streams on them."""

    def list_input_devices(self) -> List[Dict[str, Any]]:
        """List devices that can record, as PortAudio reports them."""
        pa = pyaudio.PyAudio()
        try:
            devices = []
            for index in range(pa.get_device_count()):
                info = pa.get_device_info_by_index(index)
                if info.get("maxInputChannels", 0) > 0:
                    devices.append({
                        "index": index,
                        "name": info.get("name", f"device {index}"),
                        "channels": info.get("maxInputChannels"),
                        "default_sample_rate": info.get("defaultSampleRate"),
                    })
            return devices
        finally:
            pa.terminate()

    def _resolve_device_index(self, pa: pyaudio.PyAudio, device_id: Optional[DeviceId]) -> Optional[int]:
        if device_id is None or device_id == "":
            return None
        if isinstance(device_id, int) or str(device_id).isdigit():
            return int(device_id)

        wanted = str(device_id).lower()
        for index in range(pa.get_device_count()):
            info = pa.get_device_info_by_index(index)
            if info.get("maxInputChannels", 0) > 0 and wanted in str(info.get("name", "")).lower():
                return index
        raise DeviceUnavailableError(device_id, "no input device with a matching name")

    def open_stream(self, device_id: Optional[DeviceId] = None,
                    constraints: Optional[Dict[str, int]] = None) -> AudioInputStream:
        """Open an input stream on the selected (or default) device.

        Args:
            device_id: PortAudio device index, or a substring of the device name
            constraints: Overrides for sample_rate, channels and frames_per_buffer

        Returns:
            An opened, not yet started AudioInputStream

        Raises:
            DeviceUnavailableError: If the device is missing or cannot be opened
        """
        settings = dict(DEFAULT_CONSTRAINTS)
        settings.update(constraints or {})

        pa = pyaudio.PyAudio()
        try:
            device_index = self._resolve_device_index(pa, device_id)
            stream = AudioInputStream(
                pa,
                sample_rate=settings["sample_rate"],
                channels=settings["channels"],
                frames_per_buffer=settings["frames_per_buffer"],
                device_index=device_index,
            )
            stream.open()
            return stream
        except DeviceUnavailableError:
            pa.terminate()
            raise
        except (OSError, ValueError) as e:
            pa.terminate()
            logger.error(f"Failed to open audio input device {device_id!r}: {e}")
            raise DeviceUnavailableError(device_id, str(e)) from e
