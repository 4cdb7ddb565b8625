"""Protect embedded image tags while quick-parse notation is analysed.

Rich-text fields embed images as ``[IMAGE:<url>|<alt>]``. URLs may contain
characters the line grammar reacts to, so tags are swapped for short
``[Image n]`` placeholders before classification and restored afterwards.
"""

import re
from typing import Dict, Optional, Tuple

IMAGE_TAG_PATTERN = re.compile(r"\[IMAGE:([^\]|]+)\|([^\]]*)\]")


def extract_image_placeholders(text: str) -> Tuple[str, Dict[str, str]]:
    """Replace every image tag with a numbered placeholder.

    Returns:
        Tuple of (text with placeholders, placeholder -> original tag)
    """
    image_map: Dict[str, str] = {}

    def _replace(match: "re.Match[str]") -> str:
        placeholder = f"[Image {len(image_map) + 1}]"
        image_map[placeholder] = match.group(0)
        return placeholder

    return IMAGE_TAG_PATTERN.sub(_replace, text), image_map


def restore_image_placeholders(text: Optional[str], image_map: Dict[str, str]) -> Optional[str]:
    """Put original image tags back in place of their placeholders."""
    if not text or not image_map:
        return text
    for placeholder, tag in image_map.items():
        text = text.replace(placeholder, tag)
    return text
