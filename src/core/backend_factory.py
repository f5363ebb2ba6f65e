"""Factory for creating backend instances."""

import logging
from pathlib import Path
from typing import Dict, Optional, Type, Union

from src.backends.ideogram import DEFAULT_BASE_URL, IdeogramBackend
from src.core.base_backend import BaseBackend
from src.core.errors import ConfigurationError
from src.utils.image_store import ImageMaterializer

logger = logging.getLogger(__name__)


class BackendFactory:
    """Factory class for creating backend instances.

    Every backend gets its own ImageMaterializer pointed at the configured
    output directory.
    """

    _backends: Dict[str, Type[BaseBackend]] = {
        "ideogram": IdeogramBackend,
    }

    @classmethod
    def create_backend(
        cls,
        backend_type: str,
        api_key: Optional[str],
        output_dir: Union[str, Path],
        base_url: str = DEFAULT_BASE_URL,
        timeout: Optional[float] = None
    ) -> BaseBackend:
        """Create a backend instance.

        Args:
            backend_type: The type of backend (currently only "ideogram")
            api_key: API key for the upstream service
            output_dir: Directory for downloaded images
            base_url: API root URL
            timeout: Optional timeout in seconds for API calls and downloads

        Returns:
            An instance of the requested backend

        Raises:
            ValueError: If backend_type is not supported
            ConfigurationError: If the API key is missing
        """
        backend_class = cls._backends.get(backend_type.lower())
        if backend_class is None:
            supported = ", ".join(cls.get_supported_backends())
            raise ValueError(
                f"Unsupported backend type: '{backend_type}'. "
                f"Supported backends: {supported}"
            )

        if not api_key:
            raise ConfigurationError(f"API key is required for {backend_type} backend")

        logger.info(f"Creating {backend_type} backend")
        materializer = ImageMaterializer(output_dir, timeout=timeout)
        return backend_class(
            api_key=api_key,
            materializer=materializer,
            base_url=base_url,
            timeout=timeout
        )

    @classmethod
    def get_supported_backends(cls) -> list[str]:
        """Get list of supported backend types."""
        return list(cls._backends)

    @classmethod
    def is_supported(cls, backend_type: str) -> bool:
        """Check if a backend type is supported."""
        return backend_type.lower() in cls._backends
