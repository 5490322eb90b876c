"""
Build execution for the development loop.
"""

from .build_process import SOURCE_SUFFIX, BuildPipeline, discover_source_files

__all__ = [
    "SOURCE_SUFFIX",
    "BuildPipeline",
    "discover_source_files",
]
