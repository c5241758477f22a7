"""
File and directory translation.

Each file is one document: only the body goes through the pipeline. Its
frontmatter is kept verbatim unless analyses add fields to it. Directory
mode walks a tree, skips files that already look translated, and writes
``<prefix><stem><suffix><ext>`` next to each source file.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Callable, List, Optional, Sequence, Tuple

from llmtrans.core.exceptions import CancellationRequestedError, LLMTranslateError
from llmtrans.core.models import TranslationRequest, TranslationResult
from llmtrans.core.pipeline import TranslationPipeline
from llmtrans.translation.executor import CancellationToken
from llmtrans.utils.frontmatter import extract_frontmatter, merge_frontmatter, update_frontmatter

logger = logging.getLogger(__name__)

DEFAULT_EXTENSIONS = ".md,.txt"


@dataclass
class BatchReport:
    """Outcome of a directory run."""
    translated: List[Tuple[Path, Path]] = field(default_factory=list)
    failed: List[Tuple[Path, str]] = field(default_factory=list)
    skipped: int = 0
    tokens_used: int = 0

    @property
    def ok(self) -> bool:
        return not self.failed


def parse_extensions(extensions: str) -> List[str]:
    """``"md, .TXT"`` -> ``[".md", ".txt"]``"""
    result = []
    for ext in extensions.split(","):
        ext = ext.strip()
        if not ext:
            continue
        if not ext.startswith("."):
            ext = "." + ext
        result.append(ext.lower())
    return result


def find_files(directory: Path, extensions: Sequence[str]) -> List[Path]:
    """All files under ``directory`` (recursively) with a matching extension, sorted."""
    wanted = set(extensions)
    return sorted(p for p in Path(directory).rglob("*") if p.is_file() and p.suffix.lower() in wanted)


def _naming(suffix: str, prefix: str, lang: str) -> Tuple[str, str]:
    if not suffix and not prefix:
        return f"_{lang}", ""
    return suffix, prefix


def filter_translated_files(files: Sequence[Path], suffix: str, prefix: str, lang: str) -> List[Path]:
    """Drop files whose names already carry the output prefix or suffix."""
    suffix, prefix = _naming(suffix, prefix, lang)
    result = []
    for path in files:
        stem = path.stem
        if suffix and stem.endswith(suffix):
            continue
        if prefix and stem.startswith(prefix):
            continue
        result.append(path)
    return result


def output_path_for(input_path: Path, suffix: str, prefix: str, lang: str) -> Path:
    """Output file beside the input; ``_<lang>`` suffix when neither is given."""
    suffix, prefix = _naming(suffix, prefix, lang)
    return input_path.with_name(f"{prefix}{input_path.stem}{suffix}{input_path.suffix}")


def translate_document(
    pipeline: TranslationPipeline,
    text: str,
    request: TranslationRequest,
    cancel_token: Optional[CancellationToken] = None
) -> Tuple[str, TranslationResult]:
    """
    Translate ``text`` keeping its frontmatter; returns (full output, result).

    Enabled analyses run over the translated body and their fields are
    written into the frontmatter (a block is created when there is none).
    """
    frontmatter, body = extract_frontmatter(text)
    if frontmatter:
        logger.debug("Frontmatter detected and will be preserved")

    result = pipeline.translate(replace(request, text=body), cancel_token)

    result.analysis = pipeline.analyze(result.text, cancel_token)
    if result.analysis:
        frontmatter = update_frontmatter(frontmatter, result.analysis)

    return merge_frontmatter(frontmatter, result.text), result


def translate_file(
    pipeline: TranslationPipeline,
    input_path: Path,
    output_path: Path,
    request: TranslationRequest,
    cancel_token: Optional[CancellationToken] = None
) -> TranslationResult:
    """Translate one file to ``output_path``."""
    text = Path(input_path).read_text(encoding="utf-8")
    if not text:
        raise ValueError("file is empty")

    output, result = translate_document(pipeline, text, request, cancel_token)
    Path(output_path).write_text(output, encoding="utf-8")
    return result


def translate_directory(
    pipeline: TranslationPipeline,
    directory: Path,
    request: TranslationRequest,
    extensions: str = DEFAULT_EXTENSIONS,
    suffix: str = "",
    prefix: str = "",
    cancel_token: Optional[CancellationToken] = None,
    on_file: Optional[Callable[[int, int, Path, Path], None]] = None
) -> BatchReport:
    """
    Translate every matching file under ``directory``.

    A failing file is recorded in the report and the run moves on to the
    next one; cancellation stops the run.

    Raises:
        ValueError: no usable extensions or no matching files
    """
    ext_list = parse_extensions(extensions)
    if not ext_list:
        raise ValueError("no valid extensions specified")

    files = find_files(directory, ext_list)
    if not files:
        raise ValueError(f"no files found with extensions: {extensions}")

    pending = filter_translated_files(files, suffix, prefix, request.target_lang)
    report = BatchReport(skipped=len(files) - len(pending))
    if not pending:
        logger.info("All files already translated")
        return report

    logger.info(f"Found {len(pending)} files to translate")
    token = cancel_token or CancellationToken()

    for i, input_path in enumerate(pending, start=1):
        token.raise_if_cancelled()
        output_path = output_path_for(input_path, suffix, prefix, request.target_lang)
        logger.info(f"[{i}/{len(pending)}] {input_path.name} -> {output_path.name}")
        if on_file:
            on_file(i, len(pending), input_path, output_path)

        try:
            result = translate_file(pipeline, input_path, output_path, request, token)
        except CancellationRequestedError:
            raise
        except (LLMTranslateError, OSError, ValueError) as e:
            logger.error(f"Failed to translate {input_path}: {e}")
            report.failed.append((input_path, str(e)))
            continue

        report.translated.append((input_path, output_path))
        report.tokens_used += result.tokens_used

    logger.info("Translation complete")
    return report
