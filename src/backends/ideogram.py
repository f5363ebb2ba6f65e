"""Ideogram API backend implementation.

Ideogram serves two generations of its generate API:

* legacy models (V_1 .. V_2A_TURBO) on ``/generate``, JSON body wrapped in
  ``image_request``, bearer authorization;
* V_3 on ``/v1/ideogram-v3/generate``, multipart form, ``Api-Key`` header.

``build_upstream_request`` turns a GenerationRequest into one of the two
request shapes; ``IdeogramBackend`` sends it and hands the results to the
ImageMaterializer.
"""

import json
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, FrozenSet, Optional, Tuple, Union

import requests
from pydantic import ValidationError

from src.core.base_backend import BaseBackend
from src.core.errors import ConfigurationError, UpstreamError
from src.core.models import (
    GenerationRequest,
    GenerationResponse,
    IdeogramModel,
)
from src.utils.image_store import ImageMaterializer

logger = logging.getLogger(__name__)

DEFAULT_BASE_URL = "https://api.ideogram.ai"
LEGACY_PATH = "/generate"
V3_PATH = "/v1/ideogram-v3/generate"

_NO_PALETTE = frozenset({"rendering_speed", "color_palette"})

# Parameters the upstream rejects or ignores, per model. The legacy endpoint
# never understands rendering_speed.
UNSUPPORTED_PARAMS: Dict[Optional[IdeogramModel], FrozenSet[str]] = {
    None: frozenset({"rendering_speed"}),
    IdeogramModel.V_1: _NO_PALETTE,
    IdeogramModel.V_1_TURBO: _NO_PALETTE,
    IdeogramModel.V_2: frozenset({"rendering_speed"}),
    IdeogramModel.V_2_TURBO: frozenset({"rendering_speed"}),
    IdeogramModel.V_2A: _NO_PALETTE,
    IdeogramModel.V_2A_TURBO: _NO_PALETTE,
    IdeogramModel.V_3: frozenset(),
}


@dataclass(frozen=True)
class LegacyRequest:
    """JSON request for the legacy ``/generate`` endpoint."""
    url: str
    body: Dict[str, Any]

    def headers(self, api_key: str) -> Dict[str, str]:
        return {
            "Authorization": f"Bearer {api_key}",
            "Content-Type": "application/json",
        }

    def send_kwargs(self, api_key: str) -> Dict[str, Any]:
        return {"headers": self.headers(api_key), "json": self.body}


@dataclass(frozen=True)
class V3Request:
    """Multipart request for the V3 endpoint.

    ``fields`` holds text values only; requests encodes each ``(None, value)``
    pair in ``files`` as a plain multipart form field.
    """
    url: str
    fields: Dict[str, str] = field(default_factory=dict)

    def headers(self, api_key: str) -> Dict[str, str]:
        # Content-Type (with boundary) is set by requests for multipart bodies
        return {"Api-Key": api_key}

    def multipart(self) -> Dict[str, Tuple[None, str]]:
        return {name: (None, value) for name, value in self.fields.items()}

    def send_kwargs(self, api_key: str) -> Dict[str, Any]:
        return {"headers": self.headers(api_key), "files": self.multipart()}


UpstreamRequest = Union[LegacyRequest, V3Request]


def supported_params(request: GenerationRequest) -> Dict[str, Any]:
    """Return the request parameters the selected model understands.

    Unset parameters are left out, enums become their string values and the
    color palette becomes a plain dict.
    """
    params = request.model_dump(mode="json", exclude_none=True)
    for name in UNSUPPORTED_PARAMS.get(request.model, frozenset()):
        if params.pop(name, None) is not None:
            logger.debug(f"Dropping {name}: not supported by model {request.model}")
    return params


def _form_value(value: Any) -> str:
    if isinstance(value, (dict, list)):
        return json.dumps(value)
    return str(value)


# V3 form field names that differ from the legacy body
V3_FIELD_NAMES = {"magic_prompt_option": "magic_prompt"}

# V3 spells dimensions as "16x9" / "1024x1024" instead of enum-style names
V3_DIMENSION_PREFIXES = {"aspect_ratio": "ASPECT_", "resolution": "RESOLUTION_"}


def to_v3_fields(params: Dict[str, Any]) -> Dict[str, str]:
    """Rename and reformat legacy-style parameters as V3 form fields.

    ``ASPECT_16_9`` becomes ``16x9`` and ``RESOLUTION_1024_1024`` becomes
    ``1024x1024``; values already in ``WxH`` form pass through.
    """
    fields = {}
    for name, value in params.items():
        prefix = V3_DIMENSION_PREFIXES.get(name)
        if prefix and isinstance(value, str) and value.startswith(prefix):
            value = value[len(prefix):].replace("_", "x")
        fields[V3_FIELD_NAMES.get(name, name)] = _form_value(value)
    return fields


def build_upstream_request(
    request: GenerationRequest,
    base_url: str = DEFAULT_BASE_URL
) -> UpstreamRequest:
    """Select endpoint and encoding for a request.

    Args:
        request: The generation request
        base_url: Ideogram API root

    Returns:
        V3Request for V_3, LegacyRequest for every other model
    """
    base_url = base_url.rstrip("/")
    params = supported_params(request)

    if request.model is not None and request.model.is_v3:
        # The V3 endpoint selects the model by URL, not by form field
        params.pop("model", None)
        return V3Request(
            url=f"{base_url}{V3_PATH}",
            fields=to_v3_fields(params),
        )

    return LegacyRequest(
        url=f"{base_url}{LEGACY_PATH}",
        body={"image_request": params},
    )


def extract_error_message(error: requests.exceptions.RequestException) -> str:
    """Pick the most specific message for a failed API call.

    Checks the response body's ``message`` field, then its ``description``
    field, and falls back to the transport error text.
    """
    response = getattr(error, "response", None)
    if response is not None:
        try:
            body = response.json()
        except ValueError:
            body = None
        if isinstance(body, dict):
            for key in ("message", "description"):
                if body.get(key):
                    return str(body[key])
    return str(error)


class IdeogramBackend(BaseBackend):
    """Backend implementation using the Ideogram API.

    Attributes:
        api_key: Ideogram API key
        base_url: Ideogram API root
        materializer: Downloads results to local storage
        timeout: Optional request timeout in seconds
    """

    def __init__(
        self,
        api_key: str,
        materializer: ImageMaterializer,
        base_url: str = DEFAULT_BASE_URL,
        timeout: Optional[float] = None
    ):
        """Initialize the Ideogram backend.

        Args:
            api_key: Ideogram API key
            materializer: Where generated images get downloaded
            base_url: Ideogram API root
            timeout: Optional request timeout in seconds

        Raises:
            ConfigurationError: If API key is empty
        """
        super().__init__(api_key)

        if not api_key:
            raise ConfigurationError("IDEOGRAM_API_KEY is required")

        self.base_url = base_url
        self.materializer = materializer
        self.timeout = timeout
        logger.info(f"Initialized Ideogram backend at {self.base_url}")

    def generate_image(self, request: GenerationRequest) -> GenerationResponse:
        """Generate images with Ideogram and download them.

        Args:
            request: The generation request with prompt and parameters

        Returns:
            GenerationResponse with images in upstream order, each saved locally

        Raises:
            UpstreamError: If the API call fails, returns a malformed body, or
                any image download fails
        """
        upstream = build_upstream_request(request, self.base_url)
        family = "v3" if isinstance(upstream, V3Request) else "legacy"
        logger.info(
            f"Generating with {family} endpoint (model={request.model}) "
            f"for prompt: {request.prompt[:50]}..."
        )

        response = self._parse_response(self._send(upstream))

        materialized = self.materializer.materialize(
            response.data,
            fallback_prompt=request.prompt
        )
        logger.info(f"Successfully generated {len(materialized)} image(s)")
        return response.model_copy(update={"data": materialized})

    def _send(self, upstream: UpstreamRequest) -> Any:
        try:
            response = requests.post(
                upstream.url,
                timeout=self.timeout,
                **upstream.send_kwargs(self.api_key),
            )
            response.raise_for_status()
        except requests.exceptions.RequestException as e:
            message = extract_error_message(e)
            logger.error(f"Ideogram API error: {message}")
            raise UpstreamError(f"Ideogram API error: {message}") from e

        try:
            return response.json()
        except ValueError as e:
            logger.error(f"Ideogram returned a non-JSON body: {e}")
            raise UpstreamError("invalid response structure") from e

    @staticmethod
    def _parse_response(body: Any) -> GenerationResponse:
        if not isinstance(body, dict) or not isinstance(body.get("data"), list):
            logger.error("Ideogram response has no 'data' array")
            raise UpstreamError("invalid response structure")

        try:
            return GenerationResponse.model_validate(body)
        except ValidationError as e:
            logger.error(f"Ideogram response failed validation: {e}")
            raise UpstreamError("invalid response structure") from e

    @property
    def name(self) -> str:
        """Get the backend name.

        Returns:
            The string "Ideogram"
        """
        return "Ideogram"

    @property
    def supported_models(self) -> list[str]:
        """Get the model identifiers Ideogram accepts."""
        return [model.value for model in IdeogramModel]
