"""
Image fetcher implementations.

Available implementations:
- DirectoryImageFetcher: Finds image files in a directory tree
"""

from .directory_fetcher import DirectoryImageFetcher

__all__ = ["DirectoryImageFetcher"]
