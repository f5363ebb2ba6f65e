"""Tool-calling boundary for the ``generate_image`` tool.

``ImageToolServer`` lists the single tool, coerces call arguments into a
GenerationRequest and dispatches to a backend. Every failure leaves this
module as an ``McpError`` carrying a JSON-RPC error code.
"""

import logging
from typing import Any, Dict, List, Optional

from mcp import types
from mcp.shared.exceptions import McpError
from pydantic import ValidationError

from src.core.base_backend import BaseBackend
from src.core.errors import InputValidationError
from src.core.models import (
    AspectRatio,
    ColorPalette,
    GenerationRequest,
    GenerationResponse,
    IdeogramModel,
    MagicPromptOption,
    RenderingSpeed,
)

logger = logging.getLogger(__name__)

TOOL_NAME = "generate_image"


def tool_error(code: int, message: str) -> McpError:
    """Build the error reported back to the tool caller."""
    return McpError(types.ErrorData(code=code, message=message))


def _enum_values(enum_cls) -> List[str]:
    return [member.value for member in enum_cls]


GENERATE_IMAGE_TOOL = types.Tool(
    name=TOOL_NAME,
    description="Generate an image using Ideogram AI",
    inputSchema={
        "type": "object",
        "properties": {
            "prompt": {
                "type": "string",
                "description": "The prompt to use for generating the image"
            },
            "aspect_ratio": {
                "type": "string",
                "description": "The aspect ratio for the generated image",
                "enum": _enum_values(AspectRatio)
            },
            "model": {
                "type": "string",
                "description": "The model to use for generation",
                "enum": _enum_values(IdeogramModel)
            },
            "magic_prompt_option": {
                "type": "string",
                "description": "Whether to use magic prompt",
                "enum": _enum_values(MagicPromptOption)
            },
            "rendering_speed": {
                "type": "string",
                "description": "Rendering speed (V_3 only)",
                "enum": _enum_values(RenderingSpeed)
            },
            "style_type": {
                "type": "string",
                "description": "The style type for generation"
            },
            "negative_prompt": {
                "type": "string",
                "description": "Description of what to exclude from the image"
            },
            "num_images": {
                "type": "number",
                "description": "Number of images to generate (1-8)",
                "minimum": 1,
                "maximum": 8
            },
            "seed": {
                "type": "integer",
                "description": "Random seed for reproducible results",
                "minimum": 0,
                "maximum": 2147483647
            },
            "resolution": {
                "type": "string",
                "description": "Explicit resolution, e.g. RESOLUTION_1024_1024"
            },
            "color_palette": {
                "type": "object",
                "description": "Named palette ({\"name\": ...}) or explicit members "
                               "({\"members\": [{\"color\": \"#RRGGBB\", \"weight\": 0.5}]})"
            }
        },
        "required": ["prompt"]
    }
)

_STRING_FIELDS = ("style_type", "negative_prompt", "resolution")
_ENUM_FIELDS = {
    "aspect_ratio": AspectRatio,
    "model": IdeogramModel,
    "magic_prompt_option": MagicPromptOption,
    "rendering_speed": RenderingSpeed,
}


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _whole_number(value: Any, minimum: int, maximum: int) -> Optional[int]:
    if not _is_number(value) or not float(value).is_integer():
        return None
    value = int(value)
    return value if minimum <= value <= maximum else None


def coerce_arguments(arguments: Optional[Dict[str, Any]]) -> GenerationRequest:
    """Build a GenerationRequest from loosely typed tool arguments.

    ``prompt`` must be a non-empty string. Any optional field with the wrong
    type, an unknown enum value or an out-of-range number is treated as absent.

    Raises:
        InputValidationError: If the prompt is missing or not a string
    """
    if not isinstance(arguments, dict):
        raise InputValidationError("Prompt is required and must be a string")

    prompt = arguments.get("prompt")
    if not isinstance(prompt, str) or not prompt.strip():
        raise InputValidationError("Prompt is required and must be a string")

    params: Dict[str, Any] = {"prompt": prompt}

    for name in _STRING_FIELDS:
        if isinstance(arguments.get(name), str):
            params[name] = arguments[name]

    for name, enum_cls in _ENUM_FIELDS.items():
        value = arguments.get(name)
        if isinstance(value, str) and value in enum_cls._value2member_map_:
            params[name] = enum_cls(value)

    num_images = _whole_number(arguments.get("num_images"), 1, 8)
    if num_images is not None:
        params["num_images"] = num_images

    seed = _whole_number(arguments.get("seed"), 0, 2147483647)
    if seed is not None:
        params["seed"] = seed

    palette = arguments.get("color_palette")
    if isinstance(palette, dict):
        try:
            params["color_palette"] = ColorPalette.model_validate(palette)
        except ValidationError:
            logger.debug("Ignoring malformed color_palette argument")

    dropped = sorted(set(arguments) - set(params))
    if dropped:
        logger.debug(f"Ignoring unrecognized or invalid arguments: {dropped}")

    return GenerationRequest(**params)


def format_summary(response: GenerationResponse) -> str:
    """Describe the generated images, one remote URL per line."""
    lines = [f"Generated {len(response.data)} image(s):"]
    for image in response.data:
        lines.append(image.url)
        if image.local_path:
            lines.append(f"  saved to {image.local_path}")
    return "\n".join(lines)


class ImageToolServer:
    """Serves the ``generate_image`` tool on top of a backend.

    Attributes:
        backend: Backend that generates and saves images
    """

    def __init__(self, backend: BaseBackend):
        self.backend = backend

    def list_tools(self) -> List[types.Tool]:
        return [GENERATE_IMAGE_TOOL]

    def generate(self, arguments: Optional[Dict[str, Any]]) -> GenerationResponse:
        """Coerce arguments and generate, returning the structured response.

        Raises:
            McpError: INVALID_PARAMS for a bad prompt, INTERNAL_ERROR for any
                generation failure
        """
        try:
            request = coerce_arguments(arguments)
        except InputValidationError as e:
            logger.warning(f"Rejected {TOOL_NAME} call: {e}")
            raise tool_error(types.INVALID_PARAMS, str(e)) from e

        try:
            return self.backend.generate_image(request)
        except Exception as e:
            logger.error(f"{TOOL_NAME} failed: {e}")
            raise tool_error(types.INTERNAL_ERROR, str(e) or "Unknown error occurred") from e

    def call_tool(
        self,
        name: str,
        arguments: Optional[Dict[str, Any]] = None
    ) -> List[types.TextContent]:
        """Run a tool call.

        Args:
            name: Tool name
            arguments: Tool arguments as sent by the caller

        Returns:
            A single text content block summarizing the generated images

        Raises:
            McpError: METHOD_NOT_FOUND for unknown tools, otherwise as ``generate``
        """
        if name != TOOL_NAME:
            raise tool_error(types.METHOD_NOT_FOUND, f"Unknown tool: {name}")

        response = self.generate(arguments)
        return [types.TextContent(type="text", text=format_summary(response))]
