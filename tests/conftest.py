"""Shared test fixtures and configuration."""

import io
import os
import pytest
from unittest.mock import Mock
from PIL import Image

from src.core.models import GeneratedImage, GenerationResponse
from src.utils.image_store import ImageMaterializer


@pytest.fixture
def sample_image_bytes():
    """Return a small PNG image as bytes."""
    img_byte_arr = io.BytesIO()
    Image.new('RGB', (64, 64), color='red').save(img_byte_arr, format='PNG')
    return img_byte_arr.getvalue()


@pytest.fixture
def sample_api_body():
    """Return a successful Ideogram API response body."""
    return {
        "created": "2024-05-01T12:30:45.123Z",
        "data": [
            {
                "url": "https://ideogram.ai/api/images/ephemeral/first.png?exp=1",
                "id": "first",
                "prompt": "A beautiful sunset over mountains",
                "resolution": "1024x1024",
                "is_image_safe": True,
                "seed": 42,
                "style_type": "GENERAL"
            },
            {
                "url": "https://ideogram.ai/api/images/ephemeral/second.png?exp=1",
                "prompt": "A beautiful sunset over mountains"
            }
        ]
    }


@pytest.fixture
def sample_generation_response():
    """Return a sample GenerationResponse with two saved images."""
    return GenerationResponse(
        created="2024-05-01T12:30:45Z",
        data=[
            GeneratedImage(url="https://x/img/one.png", id="one", local_path="/out/one.png"),
            GeneratedImage(url="https://x/img/two.png", id="two", local_path="/out/two.png"),
        ]
    )


@pytest.fixture
def make_download_response(sample_image_bytes):
    """Return a factory for mocked streaming download responses."""
    def _make(status_code=200, content=None):
        response = Mock()
        response.status_code = status_code
        response.iter_content.return_value = [content if content is not None else sample_image_bytes]
        return response
    return _make


@pytest.fixture
def output_dir(tmp_path):
    """Return a not-yet-created output directory."""
    return tmp_path / "images"


@pytest.fixture
def materializer(output_dir):
    """Return an ImageMaterializer writing to a temp directory."""
    return ImageMaterializer(output_dir)


@pytest.fixture
def test_api_key():
    """Return a test API key."""
    return "ideogram_test_key_12345"


# Skip integration tests unless explicitly requested
def pytest_collection_modifyitems(config, items):
    """Automatically skip integration tests unless RUN_INTEGRATION_TESTS is set."""
    skip_integration = pytest.mark.skip(reason="Integration tests disabled (set RUN_INTEGRATION_TESTS=true to enable)")

    for item in items:
        if "integration" in item.keywords:
            if not os.getenv("RUN_INTEGRATION_TESTS", "").lower() == "true":
                item.add_marker(skip_integration)
