from .recorder import AudioCaptureController, AudioClip, CaptureConstraints, sounddevice_stream

__all__ = ["AudioCaptureController", "AudioClip", "CaptureConstraints", "sounddevice_stream"]
