"""Download generated images and persist them to the output directory."""

import logging
import os
import re
import time
import uuid
from concurrent.futures import ThreadPoolExecutor
from datetime import datetime
from pathlib import Path, PurePosixPath
from typing import List, Optional, Union
from urllib.parse import urlparse

import requests

from src.core.errors import UpstreamError
from src.core.models import GeneratedImage

logger = logging.getLogger(__name__)

PROMPT_SNIPPET_LENGTH = 50
CHUNK_SIZE = 8192


def sanitize_prompt(prompt: Optional[str]) -> str:
    """Turn a prompt into a filesystem-safe filename snippet.

    Only the first 50 characters are used. The result is lowercased, runs of
    whitespace become a single underscore and anything other than
    ``[a-z0-9_-]`` is removed.

    Example:
        >>> sanitize_prompt("A Cat! By the Lake_2024")
        'a_cat_by_the_lake_2024'
    """
    if not prompt:
        return ""
    snippet = prompt[:PROMPT_SNIPPET_LENGTH].lower()
    snippet = re.sub(r"\s+", "_", snippet)
    snippet = re.sub(r"[^a-z0-9_-]", "", snippet)
    return snippet.strip("_")


def derive_image_id(url: str) -> str:
    """Derive an image id from the last path segment of its URL.

    The query string and the file extension are dropped. Returns an empty
    string when the URL has no usable path segment.
    """
    path = urlparse(url).path
    return PurePosixPath(path).stem if path else ""


def synthesize_image_id() -> str:
    """Build a fallback id from the current time and a random suffix."""
    return f"img_{int(time.time() * 1000)}_{uuid.uuid4().hex[:8]}"


def resolve_image_id(image: GeneratedImage) -> str:
    """Return the upstream id, else one derived from the URL, else a new one."""
    return image.id or derive_image_id(image.url) or synthesize_image_id()


def filesystem_timestamp(moment: Optional[datetime] = None) -> str:
    """Format a timestamp without colons or periods, to millisecond precision."""
    moment = moment or datetime.now()
    return moment.strftime("%Y-%m-%dT%H-%M-%S-") + f"{moment.microsecond // 1000:03d}"


def build_filename(image_id: str, prompt: Optional[str], timestamp: str) -> str:
    """Compose ``<timestamp>[_<prompt-snippet>]_<id>.png``."""
    safe_id = re.sub(r"[^A-Za-z0-9_-]", "_", image_id)
    snippet = sanitize_prompt(prompt)
    if snippet:
        return f"{timestamp}_{snippet}_{safe_id}.png"
    return f"{timestamp}_{safe_id}.png"


class ImageMaterializer:
    """Downloads generated images into a fixed output directory.

    All images of one call are fetched concurrently, one thread per image.
    The call fails as a whole if any single download fails.

    Attributes:
        output_dir: Directory where images are written (created on first use)
        timeout: Optional per-request timeout in seconds (None = no timeout)
    """

    def __init__(self, output_dir: Union[str, Path], timeout: Optional[float] = None):
        """Initialize the materializer.

        Args:
            output_dir: Directory for downloaded images
            timeout: Optional download timeout in seconds
        """
        self.output_dir = Path(output_dir)
        self.timeout = timeout
        logger.info(f"Images will be saved to: {self.output_dir}")

    def materialize(
        self,
        images: List[GeneratedImage],
        fallback_prompt: Optional[str] = None
    ) -> List[GeneratedImage]:
        """Download every image and attach its local path.

        Args:
            images: Images as returned by the API
            fallback_prompt: Prompt used for filenames when an image does not
                echo its own prompt

        Returns:
            Copies of the input images, in the same order, with ``id`` and
            ``local_path`` filled in

        Raises:
            UpstreamError: If any download fails
        """
        if not images:
            return []

        self.output_dir.mkdir(parents=True, exist_ok=True)

        logger.info(f"Downloading {len(images)} image(s) to {self.output_dir}")
        with ThreadPoolExecutor(max_workers=len(images)) as executor:
            futures = [
                executor.submit(self._materialize_one, image, fallback_prompt)
                for image in images
            ]
        # The executor context has waited for every download to settle.
        errors = [f.exception() for f in futures if f.exception() is not None]
        if errors:
            logger.error(f"{len(errors)} of {len(images)} download(s) failed")
            first = errors[0]
            if isinstance(first, UpstreamError):
                raise first
            raise UpstreamError(f"Failed to save generated image: {first}") from first

        return [f.result() for f in futures]

    def _materialize_one(
        self,
        image: GeneratedImage,
        fallback_prompt: Optional[str]
    ) -> GeneratedImage:
        image_id = resolve_image_id(image)
        filename = build_filename(
            image_id,
            image.prompt or fallback_prompt,
            filesystem_timestamp()
        )
        path = self.output_dir / filename
        self.download(image.url, path)
        return image.model_copy(update={"id": image_id, "local_path": str(path)})

    def download(self, url: str, path: Path) -> Path:
        """Stream a remote image into ``path``.

        A partially written file is removed before the error propagates.

        Raises:
            UpstreamError: On a non-200 response, transport error or write error
        """
        logger.debug(f"Downloading {url} -> {path}")
        try:
            response = requests.get(url, stream=True, timeout=self.timeout)
        except requests.exceptions.RequestException as e:
            logger.error(f"Failed to download image {url}: {e}")
            raise UpstreamError(f"Failed to download image {url}: {e}") from e

        try:
            if response.status_code != 200:
                logger.error(f"Failed to download image {url}: HTTP {response.status_code}")
                raise UpstreamError(
                    f"Failed to download image {url}: HTTP {response.status_code}"
                )

            try:
                with open(path, "wb") as f:
                    for chunk in response.iter_content(chunk_size=CHUNK_SIZE):
                        if chunk:
                            f.write(chunk)
            except (OSError, requests.exceptions.RequestException) as e:
                self._remove_partial(path)
                logger.error(f"Failed to save image {url} to {path}: {e}")
                raise UpstreamError(f"Failed to save image {url}: {e}") from e
        finally:
            response.close()

        logger.debug(f"Saved {path}")
        return path

    @staticmethod
    def _remove_partial(path: Path) -> None:
        try:
            os.remove(path)
        except FileNotFoundError:
            pass
