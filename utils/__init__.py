"""Utilities package - Helper functions for text cleaning and block geometry."""

from .text_utils import (
    normalize_text,
    collapse_whitespace,
    join_hyphenated_words,
    fix_quantity_misreads,
    split_lines,
    strip_list_marker,
)

from .bbox_utils import (
    median_block_height,
    relative_block_height,
    is_large_block,
)

__all__ = [
    # Text utils
    'normalize_text',
    'collapse_whitespace',
    'join_hyphenated_words',
    'fix_quantity_misreads',
    'split_lines',
    'strip_list_marker',

    # BBox utils
    'median_block_height',
    'relative_block_height',
    'is_large_block',
]
