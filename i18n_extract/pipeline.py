"""
Extraction pipeline for i18n-extract.

This module orchestrates a complete run over a source tree:
1. Discover source files (or take an explicit list)
2. Rewrite every file, collecting the key map
3. Optionally name all literals at once with a slower naming backend,
   then rewrite every file again with the final keys
4. Merge with the previously saved locale (incremental runs)
5. Save the locale file

Pass state machine:
    IDLE -> EXTRACTING_PASS1 -> DONE                          (no naming backend,
                                                               or a synchronous one)
    IDLE -> EXTRACTING_PASS1 -> NAMING_PASS -> REWRITING_PASS2 -> DONE

With a two-pass backend, pass 1 writes nothing: its keys are
provisional. No file ever reaches disk with a provisional key.

Per-file parse and write failures are recorded in the result and the
run continues. A naming backend that fails as a whole raises
NamingBatchFailure out of run().
"""

from __future__ import annotations

import copy
import logging
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Callable, Iterable, Optional

from i18n_extract.collector import Collector
from i18n_extract.config import ExtractConfig, fetch_reserved_keys
from i18n_extract.errors import I18nExtractError, IOWriteError, NamingBatchFailure, NamingError, ParseError
from i18n_extract.locale import load_locale, locale_save_path, save_locale
from i18n_extract.models import KeyCollision
from i18n_extract.naming.base import (
    KeyAssigner,
    KeyNamer,
    MappingKeyNamer,
    create_namer,
    ensure_unique,
    fallback_key,
)
from i18n_extract.rewriter import Rewriter
from i18n_extract.utils import atomic_write, discover_files, output_path_for

logger = logging.getLogger(__name__)

# Type alias for progress callbacks
ProgressCallback = Callable[[str, float], None]


class PassState(Enum):
    IDLE = "idle"
    EXTRACTING_PASS1 = "extracting-pass1"
    NAMING_PASS = "naming-pass"
    REWRITING_PASS2 = "rewriting-pass2"
    DONE = "done"


@dataclass
class PipelineResult:
    """Result of an extraction run.

    Contains the final key map plus everything that went wrong along
    the way, so the caller can print one summary at the end.
    """
    config: ExtractConfig
    key_map: dict[str, str] = field(default_factory=dict)
    written_files: list[str] = field(default_factory=list)
    skipped_files: list[tuple[str, str]] = field(default_factory=list)
    write_errors: list[tuple[str, str]] = field(default_factory=list)
    naming_failures: list[str] = field(default_factory=list)
    collisions: list[KeyCollision] = field(default_factory=list)
    locale_file: Optional[Path] = None
    stats: dict = field(default_factory=dict)

    @property
    def errors(self) -> list[str]:
        return (
            [f"{path}: {reason}" for path, reason in self.skipped_files]
            + [f"{path}: {reason}" for path, reason in self.write_errors]
        )

    @property
    def success(self) -> bool:
        return not self.skipped_files and not self.write_errors


@dataclass
class _PassReport:
    files_seen: int = 0
    files_changed: int = 0
    occurrences: int = 0


class ExtractionPipeline:
    """Runs extraction over a set of files.

    Usage:
        config = load_config("i18n.config.json")
        pipeline = ExtractionPipeline(config)
        result = pipeline.run()

        print(len(result.key_map), "keys")
    """

    def __init__(
        self,
        config: Optional[ExtractConfig] = None,
        namer: Optional[KeyNamer] = None,
        progress_callback: Optional[ProgressCallback] = None,
        dry_run: bool = False,
    ):
        self.config = config or ExtractConfig()
        self.namer = namer if namer is not None else create_namer(self.config.naming)
        self.progress_callback = progress_callback or (lambda msg, pct: None)
        self.dry_run = dry_run
        self.state = PassState.IDLE
        self.collector = Collector()

    @property
    def two_pass(self) -> bool:
        return self.namer is not None and self.namer.requires_second_pass

    def discover(self) -> list[Path]:
        """Source files under config.input that have a rule."""
        return [
            path for path in discover_files(self.config.input, self.config.exclude)
            if path.suffix.lstrip(".").lower() in self.config.rules
        ]

    def run(self, paths: Optional[Iterable[Path]] = None) -> PipelineResult:
        """Run the extraction.

        Args:
            paths: Files to process, in order (discovered when omitted)

        Returns:
            PipelineResult with the merged key map and per-file problems

        Raises:
            NamingBatchFailure: If the naming backend fails as a whole
        """
        files = [Path(p) for p in paths] if paths is not None else self.discover()
        result = PipelineResult(config=self.config)
        self.collector.reset()

        save_path = locale_save_path(self.config.locale_path, self.config.locale_file_type)
        previous = load_locale(save_path) if self.config.incremental else {}
        logger.debug("Loaded %d existing keys from %s", len(previous), save_path)

        try:
            if self.two_pass:
                self.state = PassState.EXTRACTING_PASS1
                self._run_pass(files, KeyAssigner(self.namer), commit=False, result=result)

                self.state = PassState.NAMING_PASS
                mapping = self._name_literals(previous, result)

                self.state = PassState.REWRITING_PASS2
                self.collector.reset()
                self.collector.set_key_map(previous)
                result.skipped_files.clear()
                report = self._run_pass(files, KeyAssigner(MappingKeyNamer(mapping)), commit=True, result=result)
            else:
                self.state = PassState.EXTRACTING_PASS1
                # Persisted keys are taken; new texts are suffixed around them
                self.collector.set_key_map(previous)
                report = self._run_pass(files, KeyAssigner(self.namer), commit=True, result=result)
        finally:
            if self.namer is not None:
                self.namer.close()

        key_map = dict(previous)
        key_map.update(self.collector.get_key_map())
        result.key_map = key_map
        result.collisions = list(self.collector.collisions)

        if not self.dry_run:
            try:
                result.locale_file = save_locale(key_map, save_path, self.config.locale_file_type)
            except IOWriteError as e:
                logger.warning("%s", e)
                result.write_errors.append((e.file_path, e.reason))

        result.stats = {
            "total_files": len(files),
            "processed_files": report.files_seen,
            "changed_files": report.files_changed,
            "literals": report.occurrences,
            "keys": len(key_map),
            "new_keys": len(set(key_map) - set(previous)),
            "two_pass": self.two_pass,
        }
        self.state = PassState.DONE
        self.progress_callback("Complete!", 1.0)
        return result

    # ------------------------------------------------------------------
    # Passes
    # ------------------------------------------------------------------

    def _run_pass(
        self,
        files: list[Path],
        assigner: KeyAssigner,
        commit: bool,
        result: PipelineResult,
    ) -> _PassReport:
        """Rewrite files in order; only a committing pass writes and runs the hook."""
        rewriter = Rewriter(
            self.collector,
            assigner,
            ignore_methods=self.config.ignore_methods,
            target_pattern=self.config.target_pattern,
        )
        report = _PassReport()
        label = "Extracting" if self.state is PassState.EXTRACTING_PASS1 else "Rewriting"
        total = max(len(files), 1)

        for i, path in enumerate(files):
            self.progress_callback(f"{label} {path}", i / total)
            file_path = str(path)
            self.collector.reset_count_of_additions()
            self.collector.reset_current_file_scope(file_path)

            ext = path.suffix.lstrip(".").lower()
            try:
                rule = self.config.rule_for(ext)
                source = path.read_text(encoding="utf-8")
            except (ValueError, OSError) as e:
                logger.warning("Skipping %s: %s", path, e)
                result.skipped_files.append((file_path, str(e)))
                continue

            if not source.strip():
                continue

            try:
                rewritten = rewriter.rewrite(source, ext, rule, file_path)
            except (ParseError, NamingError) as e:
                logger.warning("Skipping %s: %s", path, e)
                result.skipped_files.append((file_path, str(e)))
                continue

            report.files_seen += 1
            report.occurrences += rewritten.occurrence_count
            logger.debug("%s: %d literal(s)", path, rewritten.occurrence_count)
            if not commit:
                continue

            if rewritten.changed:
                report.files_changed += 1
                self._write(path, rewritten.code, result)

            if self.config.adjust_key_map is not None:
                adjusted = self.config.adjust_key_map(
                    copy.deepcopy(self.collector.get_key_map()),
                    dict(self.collector.get_current_file_key_map()),
                    file_path,
                )
                self.collector.set_key_map(adjusted)
                self.collector.reset_current_file_scope(file_path)

        return report

    def _write(self, path: Path, code: str, result: PipelineResult) -> None:
        target = output_path_for(self.config.input, self.config.output, path)
        if self.dry_run:
            logger.info("Would write %s", target)
            return
        try:
            atomic_write(target, code)
        except IOWriteError as e:
            logger.warning("%s", e)
            result.write_errors.append((e.file_path, e.reason))
            return
        result.written_files.append(str(target))

    def _name_literals(self, previous: dict[str, str], result: PipelineResult) -> dict[str, str]:
        """Produce the final literal -> key mapping in one naming call.

        Literals already present in the saved locale keep their key. The
        rest go to the backend in first-encounter order; any it could
        not name get a deterministic fallback key and are reported.
        """
        literals = list(dict.fromkeys(self.collector.get_key_map().values()))
        known = {}
        for key, text in previous.items():
            known.setdefault(text, key)
        kept = {literal: known[literal] for literal in literals if literal in known}
        to_name = [literal for literal in literals if literal not in kept]

        reserved = fetch_reserved_keys(self.config) | set(previous)
        drain = getattr(self.namer, "drain", None)
        if drain is not None:
            drain()

        self.progress_callback(f"Naming {len(to_name)} literal(s)", 0.5)
        try:
            named = self.namer.name_keys(to_name, reserved) if to_name else {}
        except NamingBatchFailure:
            raise
        except I18nExtractError as e:
            raise NamingBatchFailure(str(e)) from e
        except Exception as e:
            raise NamingBatchFailure(f"{self.namer.name} failed: {e}") from e

        mapping: dict[str, str] = {}
        for index, literal in enumerate(literals, 1):
            if literal in kept:
                mapping[literal] = kept[literal]
            elif literal in named:
                mapping[literal] = named[literal]
            else:
                logger.warning("No key for %r, using fallback", literal)
                result.naming_failures.append(literal)
                mapping[literal] = fallback_key(literal, index)

        return ensure_unique(mapping, reserved - set(kept.values()))


def extract(
    config: Optional[ExtractConfig] = None,
    dry_run: bool = False,
    progress: Optional[ProgressCallback] = None,
) -> PipelineResult:
    """Quick extraction over config.input.

    For more control, use ExtractionPipeline directly.
    """
    return ExtractionPipeline(config, progress_callback=progress, dry_run=dry_run).run()
