"""Query feature extraction."""

from .extractor import (
    Complexity,
    ComplexityPolicy,
    FeatureBundle,
    FeatureExtractor,
    TemporalMarkers,
)

__all__ = [
    "Complexity",
    "ComplexityPolicy",
    "FeatureBundle",
    "FeatureExtractor",
    "TemporalMarkers",
]
