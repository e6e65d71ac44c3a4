"""
Core module containing data models, windowing, the analysis pipeline
and its cache and loader.

Uses lazy imports for modules with heavy dependencies (librosa).
"""

# Models are lightweight - import directly
from pianocoach.core.models import (
    SampleBuffer,
    PitchSample,
    BeatEvent,
    TimbreFrame,
    LoudnessSample,
    DegradedResult,
    AnalysisResult,
)
from pianocoach.core.windowing import Frame, FeatureWindower

__all__ = [
    # Models (always available)
    "SampleBuffer",
    "PitchSample",
    "BeatEvent",
    "TimbreFrame",
    "LoudnessSample",
    "DegradedResult",
    "AnalysisResult",
    "Frame",
    "FeatureWindower",
    # Heavy modules (lazy loaded)
    "Extractor",
    "BaseExtractor",
    "AnalysisPipeline",
    "PipelineState",
    "create_analysis_pipeline",
    "CacheManager",
    "create_cache_manager",
    "AudioLoader",
    "create_audio_loader",
]


def __getattr__(name: str):
    """Lazy load modules with heavy dependencies."""
    if name in ("Extractor", "BaseExtractor"):
        from pianocoach.core.extractor_base import Extractor, BaseExtractor
        return Extractor if name == "Extractor" else BaseExtractor
    elif name in ("AnalysisPipeline", "PipelineState", "create_analysis_pipeline"):
        from pianocoach.core import pipeline
        return getattr(pipeline, name)
    elif name in ("CacheManager", "create_cache_manager"):
        from pianocoach.core.cache import CacheManager, create_cache_manager
        return CacheManager if name == "CacheManager" else create_cache_manager
    elif name in ("AudioLoader", "create_audio_loader"):
        from pianocoach.core.loader import AudioLoader, create_audio_loader
        return AudioLoader if name == "AudioLoader" else create_audio_loader
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
