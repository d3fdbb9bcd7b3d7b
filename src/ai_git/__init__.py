"""ai-git: draft conventional commit messages with an AI model."""

__version__ = "0.4.0"

__all__ = ["__version__"]
