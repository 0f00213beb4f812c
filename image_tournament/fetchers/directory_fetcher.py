"""
Directory image fetcher implementation.

Finds image files under a directory tree.
"""

from collections.abc import Iterable
from pathlib import Path

from typing_extensions import override

from ..interfaces import ImageFetcher
from ..logging_config import get_logger
from ..models import ImageSource

IMAGE_EXTENSIONS = frozenset({".png", ".jpg", ".jpeg", ".gif", ".webp", ".bmp"})


class DirectoryImageFetcher(ImageFetcher):
    """
    Image fetcher that reads from a directory tree.

    Treats images as opaque - only stores file paths, never decodes them.
    """

    def __init__(self, images_dir: Path, pattern: str = "*"):
        """
        Initialize directory image fetcher.

        Args:
            images_dir: Directory containing image files
            pattern: Glob pattern applied before the extension filter (default: "*")
        """
        self.images_dir: Path = Path(images_dir)
        self.pattern: str = pattern

        self.logger = get_logger("directory_fetcher")

        if not self.images_dir.exists():
            raise FileNotFoundError(f"Images directory does not exist: {self.images_dir}")

        if not self.images_dir.is_dir():
            raise NotADirectoryError(f"Path is not a directory: {self.images_dir}")

        self._cache = dict[str, ImageSource]()
        self._cache_loaded: bool = False

    def _load_images(self) -> None:
        """Load all image paths from the directory into the cache."""
        if self._cache_loaded:
            return

        root = self.images_dir.resolve()
        image_files = sorted(
            path
            for path in self.images_dir.rglob(self.pattern)
            if path.is_file() and path.suffix.lower() in IMAGE_EXTENSIONS
        )

        if not image_files:
            self.logger.warning(f"No image files matching '{self.pattern}' found in {self.images_dir}")

        for image_file in image_files:
            # Path traversal protection (symlinks pointing outside the root)
            try:
                relative = image_file.resolve().relative_to(root)
            except ValueError:
                self.logger.warning(f"Skipping file outside images directory: {image_file}")
                continue

            # Relative path without suffix keeps ids unique across subdirectories
            item_id = relative.with_suffix("").as_posix()
            self._cache[item_id] = ImageSource(
                item_id=item_id,
                name=image_file.name,
                image_ref=str(image_file.resolve()),
            )

        self._cache_loaded = True
        self.logger.info(f"Loaded {len(self._cache)} images from {self.images_dir}")

    @override
    def list_images(self) -> Iterable[ImageSource]:
        """Return all available images."""
        self._load_images()
        return self._cache.values()

    @override
    def get_image(self, item_id: str) -> ImageSource:
        """Get a specific image by ID."""
        self._load_images()

        if item_id not in self._cache:
            raise KeyError(f"Image not found: {item_id}")

        return self._cache[item_id]

    def get_image_count(self) -> int:
        self._load_images()
        return len(self._cache)

    def reload_images(self) -> None:
        """Force reload images from directory."""
        self._cache.clear()
        self._cache_loaded = False
        self._load_images()
