"""
Workflow Selector
Decides how many model calls an outfit render needs.
"""

from enum import Enum


class Workflow(str, Enum):
    DIRECT = "direct"  # one call with every item image
    STAGED = "staged"  # mannequin composite first, then the final render


def select_workflow(item_image_count: int, model_input_ceiling: int) -> Workflow:
    """
    Pick DIRECT when every item image fits in one call, STAGED otherwise.

    Raises:
        ValueError: if either argument is not a positive integer
    """
    if item_image_count <= 0:
        raise ValueError(f"item_image_count must be positive, got {item_image_count}")
    if model_input_ceiling <= 0:
        raise ValueError(f"model_input_ceiling must be positive, got {model_input_ceiling}")

    if item_image_count > model_input_ceiling:
        return Workflow.STAGED
    return Workflow.DIRECT
