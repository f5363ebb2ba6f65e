"""Core data models for Ideogram image generation."""

from datetime import datetime
from enum import Enum
from typing import Optional, List
from pydantic import BaseModel, Field, model_validator


class IdeogramModel(str, Enum):
    """Upstream model identifiers, legacy families first."""
    V_1 = "V_1"
    V_1_TURBO = "V_1_TURBO"
    V_2 = "V_2"
    V_2_TURBO = "V_2_TURBO"
    V_2A = "V_2A"
    V_2A_TURBO = "V_2A_TURBO"
    V_3 = "V_3"

    @property
    def is_v3(self) -> bool:
        """Whether this model is served by the dedicated V3 endpoint."""
        return self is IdeogramModel.V_3


class AspectRatio(str, Enum):
    """Aspect ratios accepted by the generate endpoints."""
    ASPECT_1_1 = "ASPECT_1_1"
    ASPECT_4_3 = "ASPECT_4_3"
    ASPECT_3_4 = "ASPECT_3_4"
    ASPECT_16_9 = "ASPECT_16_9"
    ASPECT_9_16 = "ASPECT_9_16"
    ASPECT_3_2 = "ASPECT_3_2"
    ASPECT_2_3 = "ASPECT_2_3"
    ASPECT_16_10 = "ASPECT_16_10"
    ASPECT_10_16 = "ASPECT_10_16"
    ASPECT_1_3 = "ASPECT_1_3"
    ASPECT_3_1 = "ASPECT_3_1"


class MagicPromptOption(str, Enum):
    AUTO = "AUTO"
    ON = "ON"
    OFF = "OFF"


class RenderingSpeed(str, Enum):
    """Speed/quality trade-off, only understood by V_3."""
    TURBO = "TURBO"
    DEFAULT = "DEFAULT"
    QUALITY = "QUALITY"


class ColorPaletteMember(BaseModel):
    """A single weighted color of an explicit palette."""

    color: str = Field(
        ...,
        pattern=r"^#[0-9A-Fa-f]{6}$",
        description="Hex color, e.g. #FF8800"
    )
    weight: Optional[float] = Field(
        default=None,
        gt=0.0,
        le=1.0,
        description="Relative weight of the color"
    )


class ColorPalette(BaseModel):
    """Either a named preset palette or an explicit list of members."""

    name: Optional[str] = Field(
        default=None,
        description="Preset palette name (e.g. EMBER, FRESH, JUNGLE)"
    )
    members: Optional[List[ColorPaletteMember]] = Field(
        default=None,
        min_length=1,
        description="Explicit palette members"
    )

    @model_validator(mode="after")
    def check_name_or_members(self) -> "ColorPalette":
        if self.name is None and self.members is None:
            raise ValueError("color_palette needs either a name or members")
        return self


class GenerationRequest(BaseModel):
    """Request model for image generation.

    Attributes:
        prompt: The text prompt describing the desired image
        aspect_ratio: Output aspect ratio
        model: Upstream model identifier (None = upstream default)
        rendering_speed: Speed hint, only sent to V_3
        magic_prompt_option: Whether the upstream should rewrite the prompt
        seed: Random seed for reproducibility
        style_type: Style tag (e.g. GENERAL, REALISTIC, DESIGN)
        negative_prompt: Text describing what to avoid in the image
        num_images: Number of images to generate (1-8)
        resolution: Explicit resolution string (e.g. RESOLUTION_1024_1024)
        color_palette: Named or explicit color palette
    """

    prompt: str = Field(
        ...,
        min_length=1,
        description="Text prompt describing the desired image"
    )
    aspect_ratio: Optional[AspectRatio] = None
    model: Optional[IdeogramModel] = None
    rendering_speed: Optional[RenderingSpeed] = None
    magic_prompt_option: Optional[MagicPromptOption] = None
    seed: Optional[int] = Field(
        default=None,
        ge=0,
        le=2147483647,
        description="Random seed for reproducibility"
    )
    style_type: Optional[str] = None
    negative_prompt: Optional[str] = Field(
        default=None,
        description="Text describing what to avoid in the image"
    )
    num_images: Optional[int] = Field(
        default=None,
        ge=1,
        le=8,
        description="Number of images to generate"
    )
    resolution: Optional[str] = None
    color_palette: Optional[ColorPalette] = None

    class Config:
        json_schema_extra = {
            "example": {
                "prompt": "A lighthouse on a cliff at dawn, watercolor",
                "aspect_ratio": "ASPECT_16_9",
                "model": "V_2",
                "magic_prompt_option": "AUTO",
                "num_images": 2,
                "color_palette": {"name": "EMBER"}
            }
        }


class GeneratedImage(BaseModel):
    """A single generated image as returned by the API.

    ``local_path`` is filled in once the image has been downloaded.
    """

    url: str = Field(..., description="Remote URL of the generated image")
    id: Optional[str] = Field(default=None, description="Upstream image id")
    prompt: Optional[str] = None
    resolution: Optional[str] = None
    is_image_safe: Optional[bool] = None
    seed: Optional[int] = None
    style_type: Optional[str] = None
    local_path: Optional[str] = Field(
        default=None,
        description="Where the image was saved on disk"
    )


class GenerationResponse(BaseModel):
    """Response model for one generation call.

    Attributes:
        created: Creation timestamp reported by the API
        data: Generated images, in the order the API returned them
    """

    created: datetime = Field(default_factory=datetime.now)
    data: List[GeneratedImage] = Field(default_factory=list)
