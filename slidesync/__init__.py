"""
SlideSync - align a lecture video with its slide deck.

This package contains the complete application:
- core: Framework-agnostic sampling, assembly and correction pipeline
- infrastructure: External service integrations (Claude, FFmpeg)
- api: FastAPI routes and dependencies
- config: Application configuration
"""

__version__ = "0.1.0"
