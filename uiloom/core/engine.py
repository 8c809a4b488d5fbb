"""Conversion engine.

One conversion is parse -> validate -> generate, all against the same
mapping-registry snapshot, so a registry reload in the middle of a batch
never mixes two tables inside one file. Conversions share nothing else
and run side by side on a thread pool.
"""

import logging
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional, Sequence

from .config import get_settings
from .generators import get_generator
from .constants import SUPPORTED_FRAMEWORKS
from .ir.errors import GenerationError, ParseError, Result
from .ir.validator import validate
from .mapping import MappingRegistry, get_registry
from .parsers import detect_framework, get_parser

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ConversionRequest:
    """One unit of work for ``convert_many``."""

    text: str
    source_framework: str
    target_framework: str
    source_file: str = "<memory>"


def convert(
    text: str,
    source_framework: str,
    target_framework: str,
    source_file: str = "<memory>",
    registry: Optional[MappingRegistry] = None,
) -> Result[str]:
    """Convert source text between frameworks.

    Warnings from every stage are merged into the returned result. The
    first failing stage ends the conversion; its errors are returned with
    the warnings gathered so far.
    """
    if source_framework not in SUPPORTED_FRAMEWORKS:
        return Result.failure(ParseError(f"unsupported framework: {source_framework}", 1, 1, source_file))
    if target_framework not in SUPPORTED_FRAMEWORKS:
        return Result.failure(GenerationError(f"unsupported framework: {target_framework}", "root", source_file))
    registry = registry or get_registry()

    parsed = get_parser(source_framework, registry).parse_source(text, source_file)
    if not parsed.ok:
        return Result.failure(*parsed.errors, warnings=parsed.warnings)
    warnings = list(parsed.warnings)

    checked = validate(parsed.value, registry)
    warnings.extend(checked.warnings)
    if not checked.ok:
        logger.warning(f"{source_file}: IR validation failed with {len(checked.errors)} error(s)")
        return Result.failure(*checked.errors, warnings=warnings)

    generated = get_generator(target_framework, registry).generate(checked.value)
    warnings.extend(generated.warnings)
    if not generated.ok:
        logger.warning(f"{source_file}: generation failed: {generated.errors[0]}")
        return Result.failure(*generated.errors, warnings=warnings)

    logger.debug(
        "Converted %s (%s -> %s) with %d warning(s)",
        source_file, source_framework, target_framework, len(warnings),
    )
    return Result.success(generated.value, warnings)


def convert_file(
    file_path: str,
    target_framework: str,
    registry: Optional[MappingRegistry] = None,
) -> Result[str]:
    """Convert a source file; the source framework comes from its extension."""
    source_framework = detect_framework(file_path)
    if source_framework is None:
        return Result.failure(ParseError(f"unsupported file type: {Path(file_path).suffix}", 1, 1, file_path))
    try:
        text = Path(file_path).read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as e:
        return Result.failure(ParseError(f"cannot read file: {e}", 1, 1, file_path))
    return convert(text, source_framework, target_framework, file_path, registry)


def convert_many(
    requests: Sequence[ConversionRequest],
    max_workers: Optional[int] = None,
    registry: Optional[MappingRegistry] = None,
) -> List[Result[str]]:
    """Run independent conversions concurrently.

    Every request uses the registry snapshot current when the batch
    started. Results are returned in request order.
    """
    if not requests:
        return []
    registry = registry or get_registry()
    workers = max_workers or get_settings().engine.max_workers
    results: List[Optional[Result[str]]] = [None] * len(requests)

    logger.info(f"Converting {len(requests)} file(s) with {workers} worker(s)")
    with ThreadPoolExecutor(max_workers=workers) as executor:
        futures = {
            executor.submit(
                convert, r.text, r.source_framework, r.target_framework, r.source_file, registry
            ): i
            for i, r in enumerate(requests)
        }
        for future in as_completed(futures):
            results[futures[future]] = future.result()

    failed = sum(1 for r in results if not r.ok)
    if failed:
        logger.warning(f"{failed} of {len(requests)} conversion(s) failed")
    return results
