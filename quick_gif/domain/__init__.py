"""
This package contains the core domain models of the Quick GIF application.

The domain layer describes the values that flow through the conversion
pipeline, independent of the filesystem, the external encoder and any user
interface. Services in `quick_gif.services` produce and consume these values.

Modules:
    exceptions.py: The error taxonomy. Every expected failure of a pipeline stage
                   is one of these exceptions, and each carries a stable `kind`.
    models.py: Immutable value objects for one conversion: the user's selection,
               the filtered candidates, the resolved format family, the staged
               sequence, the encode parameters, the job and its terminal result.
"""
