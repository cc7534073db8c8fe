"""
i18n-extract: hard-coded literal extraction for JavaScript, TypeScript, JSX and Vue

Finds natural-language literals (Chinese by default) in source files,
rewrites them into translation calls such as t('key'), and collects a
key -> text locale file across the whole project.

Core pieces:
1. Rewriter: per-file tree-sitter transformation
2. Collector: project-wide key map with collision handling
3. ExtractionPipeline: discovery, optional semantic key naming, locale output

License: MIT
"""

__version__ = "0.1.0"

from i18n_extract.collector import Collector
from i18n_extract.config import ExtractConfig, ScriptRule, VueRule, load_config
from i18n_extract.pipeline import ExtractionPipeline, PipelineResult
from i18n_extract.rewriter import Rewriter

__all__ = [
    "Collector",
    "ExtractConfig",
    "ScriptRule",
    "VueRule",
    "load_config",
    "ExtractionPipeline",
    "PipelineResult",
    "Rewriter",
]
