"""Abstract base class for image generation backends."""

from abc import ABC, abstractmethod
from typing import Optional
from .models import GenerationRequest, GenerationResponse


class BaseBackend(ABC):
    """Abstract interface that image generation backends implement.

    The tool layer only talks to this interface, so it does not need to know
    which upstream API generation is being targeted.

    Attributes:
        api_key: API key for the upstream service
    """

    def __init__(self, api_key: Optional[str] = None):
        """Initialize the backend.

        Args:
            api_key: API key for authentication with the upstream service
        """
        self.api_key = api_key

    @abstractmethod
    def generate_image(self, request: GenerationRequest) -> GenerationResponse:
        """Generate images from a text prompt and save them locally.

        Args:
            request: The generation request containing prompt and parameters

        Returns:
            GenerationResponse with every generated image downloaded

        Raises:
            UpstreamError: If the API call or any download fails
        """
        pass

    @property
    @abstractmethod
    def name(self) -> str:
        """Get the human-readable name of this backend."""
        pass

    @property
    @abstractmethod
    def supported_models(self) -> list[str]:
        """Get a list of models supported by this backend."""
        pass

    def __repr__(self) -> str:
        """String representation of the backend."""
        return f"{self.__class__.__name__}(name='{self.name}')"
