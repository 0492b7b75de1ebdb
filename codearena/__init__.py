"""Code Arena: polyglot code execution and automated grading sandbox."""

__version__ = "1.0.0"
