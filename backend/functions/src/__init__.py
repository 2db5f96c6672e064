"""
ElevenLabs TTS Proxy

This package provides:
- A rate limited, streaming proxy to ElevenLabs Text-to-Speech
- Static hosting for the browser client
"""

__version__ = "1.0.0"
