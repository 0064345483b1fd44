"""
The conversion pipeline: orchestrates the services into one job at a time.
"""

from .conversion_pipeline import ConversionCoordinator
