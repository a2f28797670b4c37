"""Release publishing for installer scripts and Homebrew-style taps."""

__version__ = "0.3.0"
