"""
Configuration Package for Quick GIF.

This package centralizes the static configuration settings for the application.
Keeping configuration apart from the pipeline code makes it easy to adjust
behavior (default frame rate, staging layout, progress pacing) without touching
the services themselves.

This package includes settings for:
- Common application settings like the logging format, the work directory and job states.
- User-overridable paths for the external encoder (FFmpeg) loaded from `config.user.yaml`.
- Image file types, format synonym groups and the limits of the staged frame sequence.
"""
