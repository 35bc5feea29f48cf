"""Core components of a handheld game console emulator: CPU, scheduler, ROM, save state and audio DSP."""

__version__ = "0.1.0"