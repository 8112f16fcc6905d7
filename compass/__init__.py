"""
Compass — a life-coaching wrapper around an OpenAI-compatible chat API.
"""

__version__ = "0.1.0"
