"""
Utility helpers shared by the services and the pipeline.

Modules:
    ffmpeg_utils.py: Encoder command construction, encoder lookup and GIF probing.
    format_utils.py: Human-readable sizes and durations, extension matching.
"""
