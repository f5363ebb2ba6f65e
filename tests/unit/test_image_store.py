"""Unit tests for the image materializer."""

import re
import time
import pytest
import requests
from datetime import datetime
from unittest.mock import Mock, patch

from src.core.errors import UpstreamError
from src.core.models import GeneratedImage
from src.utils.image_store import (
    ImageMaterializer,
    build_filename,
    derive_image_id,
    filesystem_timestamp,
    resolve_image_id,
    sanitize_prompt,
    synthesize_image_id,
)


class TestSanitizePrompt:
    """Tests for filename prompt snippets."""

    def test_example_prompt(self):
        assert sanitize_prompt("A Cat! By the Lake_2024") == "a_cat_by_the_lake_2024"

    def test_idempotent(self):
        once = sanitize_prompt("A Cat! By the Lake_2024")
        assert sanitize_prompt(once) == once

    def test_collapses_whitespace(self):
        assert sanitize_prompt("a \t  b\n\nc") == "a_b_c"

    def test_trims_underscores(self):
        assert sanitize_prompt("  !hello world!  ") == "hello_world"

    def test_keeps_hyphens(self):
        assert sanitize_prompt("sci-fi city") == "sci-fi_city"

    def test_uses_first_50_characters(self):
        prompt = "a" * 50 + "bbbb"
        assert sanitize_prompt(prompt) == "a" * 50

    @pytest.mark.parametrize("prompt", [None, "", "!!!", "   "])
    def test_empty_results(self, prompt):
        assert sanitize_prompt(prompt) == ""


class TestImageIds:
    """Tests for image id resolution."""

    def test_derive_strips_query_and_extension(self):
        assert derive_image_id("https://x/img/abc123.png?sig=xyz") == "abc123"

    def test_derive_without_path(self):
        assert derive_image_id("https://x") == ""
        assert derive_image_id("https://x/") == ""

    def test_synthesized_id_format(self):
        assert re.fullmatch(r"img_\d+_[0-9a-f]{8}", synthesize_image_id())

    def test_upstream_id_wins(self):
        image = GeneratedImage(url="https://x/img/abc123.png", id="upstream")
        assert resolve_image_id(image) == "upstream"

    def test_falls_back_to_url(self):
        image = GeneratedImage(url="https://x/img/abc123.png?sig=xyz")
        assert resolve_image_id(image) == "abc123"

    def test_falls_back_to_synthesized(self):
        image = GeneratedImage(url="https://x/")
        assert resolve_image_id(image).startswith("img_")


class TestFilenames:
    """Tests for filename construction."""

    def test_timestamp_has_no_colons_or_periods(self):
        stamp = filesystem_timestamp(datetime(2024, 1, 2, 3, 4, 5, 678000))
        assert stamp == "2024-01-02T03-04-05-678"

    def test_filename_with_prompt(self):
        name = build_filename("abc123", "A Cat! By the Lake_2024", "2024-01-02T03-04-05-678")
        assert name == "2024-01-02T03-04-05-678_a_cat_by_the_lake_2024_abc123.png"

    def test_filename_without_prompt(self):
        assert build_filename("abc123", None, "ts") == "ts_abc123.png"

    def test_unsafe_id_characters_replaced(self):
        assert build_filename("a/b:c", None, "ts") == "ts_a_b_c.png"


class TestImageMaterializer:
    """Tests for ImageMaterializer downloads."""

    @patch('src.utils.image_store.requests.get')
    def test_materialize_saves_files(
        self, mock_get, materializer, output_dir, make_download_response, sample_image_bytes
    ):
        """Test that images are downloaded and paths attached."""
        mock_get.return_value = make_download_response()
        images = [GeneratedImage(url="https://x/img/abc123.png?sig=xyz")]

        result = materializer.materialize(images, fallback_prompt="A Cat! By the Lake_2024")

        assert len(result) == 1
        assert result[0].id == "abc123"
        assert result[0].local_path.endswith("_a_cat_by_the_lake_2024_abc123.png")
        saved = output_dir / result[0].local_path.split("/")[-1]
        assert saved.read_bytes() == sample_image_bytes
        mock_get.assert_called_once_with(
            "https://x/img/abc123.png?sig=xyz", stream=True, timeout=None
        )

    @patch('src.utils.image_store.requests.get')
    def test_creates_output_directory(self, mock_get, tmp_path, make_download_response):
        """Test that nested output directories are created on first use."""
        mock_get.return_value = make_download_response()
        nested = tmp_path / "a" / "b"
        assert not nested.exists()

        ImageMaterializer(nested).materialize([GeneratedImage(url="https://x/i.png", id="i")])

        assert nested.is_dir()
        assert len(list(nested.iterdir())) == 1

    @patch('src.utils.image_store.requests.get')
    def test_echoed_prompt_preferred_over_fallback(self, mock_get, materializer, make_download_response):
        mock_get.return_value = make_download_response()
        images = [GeneratedImage(url="https://x/i.png", id="i", prompt="Rewritten Prompt")]

        result = materializer.materialize(images, fallback_prompt="original")

        assert "_rewritten_prompt_i.png" in result[0].local_path

    def test_empty_list(self, materializer, output_dir):
        assert materializer.materialize([]) == []

    @patch('src.utils.image_store.requests.get')
    def test_http_404_fails_without_leaving_file(
        self, mock_get, materializer, output_dir, make_download_response
    ):
        """Test that a 404 fails the call and writes nothing."""
        mock_get.return_value = make_download_response(status_code=404)

        with pytest.raises(UpstreamError, match="HTTP 404"):
            materializer.materialize([GeneratedImage(url="https://x/img/gone.png")])

        assert list(output_dir.iterdir()) == []

    @patch('src.utils.image_store.requests.get')
    def test_interrupted_stream_removes_partial_file(self, mock_get, materializer, output_dir):
        """Test that a failure mid-download removes the partial file."""
        def chunks(chunk_size):
            yield b"\x89PNG partial"
            raise requests.exceptions.ChunkedEncodingError("connection reset")

        response = Mock()
        response.status_code = 200
        response.iter_content.side_effect = chunks
        mock_get.return_value = response

        with pytest.raises(UpstreamError, match="connection reset"):
            materializer.materialize([GeneratedImage(url="https://x/img/p.png", id="p")])

        assert list(output_dir.iterdir()) == []
        response.close.assert_called_once()

    @patch('src.utils.image_store.requests.get')
    def test_transport_error(self, mock_get, materializer):
        mock_get.side_effect = requests.exceptions.ConnectionError("unreachable")

        with pytest.raises(UpstreamError, match="unreachable"):
            materializer.materialize([GeneratedImage(url="https://x/img/p.png", id="p")])

    @patch('src.utils.image_store.requests.get')
    def test_one_failure_fails_whole_call(self, mock_get, materializer, make_download_response):
        """Test that any failed download fails the whole call."""
        def fake_get(url, **kwargs):
            if "bad" in url:
                return make_download_response(status_code=500)
            return make_download_response()

        mock_get.side_effect = fake_get
        images = [
            GeneratedImage(url="https://x/img/good1.png"),
            GeneratedImage(url="https://x/img/bad.png"),
            GeneratedImage(url="https://x/img/good2.png"),
        ]

        with pytest.raises(UpstreamError, match="HTTP 500"):
            materializer.materialize(images)

        assert mock_get.call_count == 3

    @patch('src.utils.image_store.requests.get')
    def test_order_preserved_regardless_of_completion(self, mock_get, materializer, make_download_response):
        """Test that the slowest first download still comes back first."""
        delays = {"zero": 0.3, "one": 0.1, "two": 0.0}
        finished = []

        def fake_get(url, **kwargs):
            name = url.rsplit("/", 1)[-1].split(".")[0]
            time.sleep(delays[name])
            finished.append(name)
            return make_download_response()

        mock_get.side_effect = fake_get
        images = [GeneratedImage(url=f"https://x/img/{name}.png") for name in ("zero", "one", "two")]

        result = materializer.materialize(images, fallback_prompt="order")

        assert [img.id for img in result] == ["zero", "one", "two"]
        assert [img.url for img in result] == [img.url for img in images]
        assert finished[0] == "two"

    @patch('src.utils.image_store.requests.get')
    def test_downloads_run_concurrently(self, mock_get, materializer, make_download_response):
        """Test that all downloads are in flight at the same time."""
        def fake_get(url, **kwargs):
            time.sleep(0.2)
            return make_download_response()

        mock_get.side_effect = fake_get
        images = [GeneratedImage(url=f"https://x/img/{i}.png") for i in range(6)]

        start = time.monotonic()
        materializer.materialize(images)
        elapsed = time.monotonic() - start

        assert elapsed < 1.0

    @patch('src.utils.image_store.requests.get')
    def test_timeout_passed_to_requests(self, mock_get, output_dir, make_download_response):
        mock_get.return_value = make_download_response()

        ImageMaterializer(output_dir, timeout=12.5).materialize(
            [GeneratedImage(url="https://x/i.png", id="i")]
        )

        assert mock_get.call_args.kwargs["timeout"] == 12.5
