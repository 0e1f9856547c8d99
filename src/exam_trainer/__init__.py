"""Practice and exam trainer over a local multiple-choice question bank."""

__all__ = ["__version__"]

__version__ = "0.1.0"
