"""
Instruction prompts for the built-in refine presets.
"""

from typing import Optional

from canvas_refine.models.enums import RefinePreset


UPSCALE_PROMPT = (
    "Upscale this image and restore fine detail. Keep the content exactly as it is. "
    "Preserve colors, tones and the original aspect ratio. Remove compression "
    "artifacts and noise. Do not add or remove objects. Sharpen naturally, "
    "without halos or an over-processed look."
)

RESTORE_PROMPT = (
    "Make this photo look as if it was taken with a high-end modern camera. "
    "If it is an old black and white photo, colorize it with realistic colors. "
    "Give it clean depth of field and a professional finish while keeping every "
    "detail and recognizable feature of the original."
)

PRESET_PROMPTS: dict[RefinePreset, str] = {
    RefinePreset.UPSCALE: UPSCALE_PROMPT,
    RefinePreset.RESTORE: RESTORE_PROMPT,
}


def resolve_prompt(preset: RefinePreset, custom_prompt: Optional[str] = None) -> str:
    """
    Return the instruction to send for a refine run.

    A non-blank custom prompt replaces the preset text.
    """
    if custom_prompt and custom_prompt.strip():
        return custom_prompt.strip()
    return PRESET_PROMPTS[preset]
