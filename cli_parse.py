#!/usr/bin/env python3
"""
CLI runner for the recipe parsing pipeline.

Parses OCR text from a file (plain text, or JSON shaped like an OCR result
with optional blocks) and prints the recipe, its validation and the
backend that produced it.
"""
import argparse
import asyncio
import json
import logging
import sys
from pathlib import Path
from typing import List, Optional

# Add parent directory to path
sys.path.insert(0, str(Path(__file__).parent))

from config.logging_setup import set_log_level
from config.settings import settings
from core.models import BoundingBox, OCRResult, TextBlock
from services.recipe_parsing_service import RecipeParseResult, RecipeParsingService


def ocr_result_from_dict(data: dict, default_confidence: float = 1.0) -> OCRResult:
    """
    Build an OCRResult from a JSON object.

    Args:
        data: {"text", "confidence"?, "language"?, "blocks"?: [{"text",
            "confidence", "bounding_box": {"x", "y", "width", "height"}}]}
        default_confidence: Used when the object has no confidence

    Returns:
        OCRResult
    """
    blocks = []
    for block in data.get('blocks') or []:
        box = block.get('bounding_box') or block.get('boundingBox') or {}
        blocks.append(TextBlock(
            text=block.get('text', ''),
            confidence=float(block.get('confidence', default_confidence)),
            bounding_box=BoundingBox(
                x=float(box.get('x', 0)),
                y=float(box.get('y', 0)),
                width=float(box.get('width', 0)),
                height=float(box.get('height', 0)),
            ),
        ))

    return OCRResult(
        text=data.get('text', ''),
        confidence=float(data.get('confidence', default_confidence)),
        language=data.get('language', 'en'),
        blocks=tuple(blocks),
    )


def load_ocr_result(path: str, confidence: float = 1.0) -> OCRResult:
    """Read plain text or an OCR-result JSON file."""
    content = Path(path).read_text(encoding='utf-8')
    if path.lower().endswith('.json'):
        return ocr_result_from_dict(json.loads(content), default_confidence=confidence)
    return OCRResult(text=content, confidence=confidence)


def print_result(result: RecipeParseResult):
    """Human-readable report."""
    outcome = result.outcome

    print("=" * 60)
    if outcome.recipe is None:
        print(f"❌ Parse failed: {outcome.error.value}")
        print("=" * 60)
        return

    recipe = outcome.recipe
    print(f"Title: {recipe.title}")
    print("=" * 60)
    if recipe.description:
        print(recipe.description)
        print()

    print(f"Backend: {outcome.backend_used.value}")
    flag = " (low confidence)" if outcome.low_confidence else ""
    print(f"Confidence: {recipe.confidence:.2f}{flag}")
    if recipe.prep_time is not None:
        print(f"Prep time: {recipe.prep_time} min")
    if recipe.cook_time is not None:
        print(f"Cook time: {recipe.cook_time} min")
    if recipe.servings is not None:
        print(f"Servings: {recipe.servings}")
    print()

    print(f"Ingredients ({len(recipe.ingredients)}):")
    for ingredient in recipe.ingredients:
        print(f"  - {ingredient}")
    print()

    print(f"Instructions ({len(recipe.instructions)}):")
    for i, step in enumerate(recipe.instructions, 1):
        print(f"  {i}. {step}")

    if recipe.notes:
        print()
        print("Notes:")
        for note in recipe.notes:
            print(f"  - {note}")

    validation = result.validation
    print()
    print("-" * 60)
    print(f"Valid: {'✓' if validation.is_valid else '✗'}")
    for error in validation.errors:
        print(f"  error: {error}")
    for warning in validation.warnings:
        print(f"  warning: {warning}")
    for suggestion in validation.suggestions:
        print(f"  suggestion: {suggestion}")
    if not result.looks_like_recipe:
        print("  note: the text does not look much like a recipe")


async def parse_file_cli(
    path: str,
    confidence: float = 1.0,
    threshold: Optional[float] = None,
    heuristic_only: bool = False,
    as_json: bool = False
) -> int:
    """Parse one file; returns the process exit code."""
    ocr_result = load_ocr_result(path, confidence)
    service = RecipeParsingService.from_settings(settings, heuristic_only=heuristic_only)

    try:
        result = await service.parse(ocr_result, confidence_threshold=threshold)
    finally:
        await service.aclose()

    if as_json:
        print(json.dumps(result.to_dict(), indent=2, ensure_ascii=False))
    else:
        print_result(result)

    return 0 if result.outcome.error is None else 1


def main(argv: Optional[List[str]] = None) -> int:
    parser = argparse.ArgumentParser(
        description='Parse OCR text of a recipe into a structured recipe'
    )
    parser.add_argument('path', type=str, help='Text file, or JSON file shaped like an OCR result')
    parser.add_argument('--confidence', type=float, default=1.0, help='OCR confidence for plain text input')
    parser.add_argument('--threshold', type=float, default=None, help='Confidence threshold before escalating')
    parser.add_argument('--heuristic-only', action='store_true', help='Do not call LLM backends')
    parser.add_argument('--json', action='store_true', help='Print the result as JSON')
    parser.add_argument('--verbose', action='store_true', help='Debug logging')

    args = parser.parse_args(argv)

    if args.verbose:
        set_log_level(logging.DEBUG)

    if not Path(args.path).exists():
        print(f"❌ Error: File not found: {args.path}")
        return 1

    return asyncio.run(parse_file_cli(
        path=args.path,
        confidence=args.confidence,
        threshold=args.threshold,
        heuristic_only=args.heuristic_only,
        as_json=args.json
    ))


if __name__ == '__main__':
    sys.exit(main())
