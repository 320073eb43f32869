"""Prompt for editing a product photo without altering the product.

The edit model receives the user's uploaded product image plus this
instruction. The rules pin the product itself and leave the scene
(background, lighting, styling) open to the user's request.

Example usage:
    from src.core.prompts.product_edit import build_product_edit_prompt

    prompt = build_product_edit_prompt("On a marble kitchen counter", "9:16")
"""

PRODUCT_EDIT_TEMPLATE = """You are performing a PRODUCT-LOCKED EDIT.

ABSOLUTE RULES:
- Use the EXACT product in the provided image.
- Do NOT replace the product.
- Do NOT change shape, color, logo, or proportions.
- Only modify environment, background, lighting, styling.
- Maintain realism and correct perspective.
- This is an image edit, not new product generation.

Output framing:
- Respect the requested aspect ratio ({aspect}).
- Compose the scene accordingly.

User request:
{user_prompt}"""


def build_product_edit_prompt(user_prompt: str, aspect: str) -> str:
    """Build the edit instruction for a product photo.

    Args:
        user_prompt: What the user wants the scene to look like.
        aspect: Target aspect ratio ("16:9" or "9:16").

    Returns:
        The full instruction sent to the image edit model.
    """
    return PRODUCT_EDIT_TEMPLATE.format(
        aspect=aspect,
        user_prompt=user_prompt.strip(),
    )
