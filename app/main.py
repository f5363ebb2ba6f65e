"""Gradio application for generating images with Ideogram."""

import logging
from typing import List, Optional, Tuple

import gradio as gr
from mcp.shared.exceptions import McpError

from app.config import settings
from app.mcp_server import create_tool_server
from src.core.errors import ConfigurationError
from src.core.models import AspectRatio, IdeogramModel, MagicPromptOption, RenderingSpeed
from src.tools.generate_image_tool import ImageToolServer, format_summary

# Configure logging
logging.basicConfig(
    level=settings.log_level,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)

DEFAULT_OPTION = "Default"

# Global tool server instance
tool_server: Optional[ImageToolServer] = None


def _choice(value: Optional[str]) -> Optional[str]:
    """Map the dropdown's "Default" entry to an absent argument."""
    return None if not value or value == DEFAULT_OPTION else value


def build_arguments(
    prompt: str,
    negative_prompt: str = "",
    model: str = DEFAULT_OPTION,
    aspect_ratio: str = DEFAULT_OPTION,
    magic_prompt_option: str = DEFAULT_OPTION,
    rendering_speed: str = DEFAULT_OPTION,
    style_type: str = "",
    num_images: int = 1,
    seed: Optional[float] = None
) -> dict:
    """Turn UI inputs into ``generate_image`` tool arguments.

    Empty text boxes and "Default" dropdown entries are left out.
    """
    arguments = {"prompt": prompt.strip(), "num_images": int(num_images)}

    optional = {
        "negative_prompt": negative_prompt.strip() if negative_prompt else None,
        "model": _choice(model),
        "aspect_ratio": _choice(aspect_ratio),
        "magic_prompt_option": _choice(magic_prompt_option),
        "rendering_speed": _choice(rendering_speed),
        "style_type": style_type.strip() if style_type else None,
    }
    arguments.update({k: v for k, v in optional.items() if v})
    if seed is not None:
        arguments["seed"] = int(seed)
    return arguments


def generate_images(
    prompt: str,
    negative_prompt: str = "",
    model: str = DEFAULT_OPTION,
    aspect_ratio: str = DEFAULT_OPTION,
    magic_prompt_option: str = DEFAULT_OPTION,
    rendering_speed: str = DEFAULT_OPTION,
    style_type: str = "",
    num_images: int = 1,
    seed: Optional[float] = None
) -> Tuple[List[str], str]:
    """Generate images from a text prompt.

    Returns:
        Tuple of (list of saved image paths, status message)
    """
    if not prompt or prompt.strip() == "":
        return [], "Error: Please enter a prompt"

    if tool_server is None:
        return [], "❌ Error: Tool server not initialized. Check IDEOGRAM_API_KEY."

    arguments = build_arguments(
        prompt, negative_prompt, model, aspect_ratio, magic_prompt_option,
        rendering_speed, style_type, num_images, seed
    )

    try:
        logger.info(f"Generating image with prompt: {prompt[:50]}...")
        response = tool_server.generate(arguments)
    except McpError as e:
        error_msg = f"❌ Generation failed: {e.error.message}"
        logger.error(error_msg)
        return [], error_msg

    paths = [image.local_path for image in response.data if image.local_path]
    return paths, f"✅ {format_summary(response)}"


def create_ui() -> gr.Blocks:
    """Create the Gradio interface."""
    with gr.Blocks(title="Ideogram Image Generator") as demo:
        gr.Markdown("# 🎨 Ideogram Image Generator")

        with gr.Row():
            with gr.Column():
                prompt_input = gr.Textbox(
                    label="Prompt",
                    placeholder="Describe the image you want to generate...",
                    lines=3
                )
                negative_prompt_input = gr.Textbox(
                    label="Negative Prompt",
                    placeholder="What to avoid in the image (optional)",
                    lines=2
                )
                with gr.Row():
                    model_input = gr.Dropdown(
                        choices=[DEFAULT_OPTION] + [m.value for m in IdeogramModel],
                        value=DEFAULT_OPTION,
                        label="Model"
                    )
                    aspect_ratio_input = gr.Dropdown(
                        choices=[DEFAULT_OPTION] + [a.value for a in AspectRatio],
                        value=DEFAULT_OPTION,
                        label="Aspect Ratio"
                    )
                with gr.Row():
                    magic_prompt_input = gr.Dropdown(
                        choices=[DEFAULT_OPTION] + [o.value for o in MagicPromptOption],
                        value=DEFAULT_OPTION,
                        label="Magic Prompt"
                    )
                    rendering_speed_input = gr.Dropdown(
                        choices=[DEFAULT_OPTION] + [s.value for s in RenderingSpeed],
                        value=DEFAULT_OPTION,
                        label="Rendering Speed (V_3 only)"
                    )
                style_type_input = gr.Textbox(
                    label="Style Type",
                    placeholder="e.g. GENERAL, REALISTIC, DESIGN (optional)"
                )
                with gr.Row():
                    num_images_input = gr.Slider(
                        minimum=1, maximum=8, step=1, value=1,
                        label="Number of Images"
                    )
                    seed_input = gr.Number(label="Seed (optional)", precision=0)
                generate_button = gr.Button("Generate", variant="primary")

            with gr.Column():
                gallery = gr.Gallery(label="Generated Images", columns=2)
                status = gr.Textbox(label="Status", lines=6, interactive=False)

        generate_button.click(
            fn=generate_images,
            inputs=[
                prompt_input, negative_prompt_input, model_input, aspect_ratio_input,
                magic_prompt_input, rendering_speed_input, style_type_input,
                num_images_input, seed_input
            ],
            outputs=[gallery, status]
        )

    return demo


if __name__ == "__main__":
    try:
        tool_server = create_tool_server(settings)
    except ConfigurationError as e:
        logger.error(f"Configuration error: {e}")
        raise

    demo = create_ui()

    logger.info("Launching Gradio application...")
    demo.launch(
        server_name="0.0.0.0",
        server_port=settings.server_port,
        share=False
    )
