"""Terminal musical note detector: audio capture, FFT pitch detection and a terminal view."""

__version__ = "0.1.0"
__all__ = ["__version__"]