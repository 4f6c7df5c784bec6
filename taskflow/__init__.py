"""TaskFlow Pro backend: boards, cards and the automation engine."""

__version__ = "0.1.0"
