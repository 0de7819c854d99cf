"""
Bounding box utilities for OCR text blocks.

Geometry helpers the line classifier uses to spot large-type titles.
"""
import statistics
from typing import Optional, Sequence

from core.models import TextBlock


def median_block_height(blocks: Sequence[TextBlock]) -> Optional[float]:
    """
    Estimate the median block height on the page.

    Args:
        blocks: OCR text blocks

    Returns:
        Median height, or None if no block has a positive height
    """
    heights = [b.bounding_box.height for b in blocks if b.bounding_box.height > 0]
    if not heights:
        return None
    return statistics.median(heights)


def relative_block_height(block: TextBlock, median_height: Optional[float]) -> float:
    """
    Height of a block relative to the page median (1.0 = typical line).

    Args:
        block: OCR text block
        median_height: Median block height on the page

    Returns:
        Ratio of block height to median, 1.0 when no median is known
    """
    if not median_height:
        return 1.0
    return block.bounding_box.height / median_height


def is_large_block(
    block: TextBlock,
    median_height: Optional[float],
    ratio: float = 1.5
) -> bool:
    """
    Check whether a block is set in noticeably larger type than the page.

    Args:
        block: OCR text block
        median_height: Median block height on the page
        ratio: Height must exceed median * ratio

    Returns:
        True for large-type blocks
    """
    if not median_height:
        return False
    return block.bounding_box.height > median_height * ratio

