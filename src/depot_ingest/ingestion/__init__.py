"""Parsing, sanitizing and relational assembly of the source tables."""

from depot_ingest.ingestion.assembler import AssemblyResult, RelationalAssembler, SourceData
from depot_ingest.ingestion.markup_sanitizer import sanitize_markup
from depot_ingest.ingestion.pipeline import DataPipeline, PipelineStatistics
from depot_ingest.ingestion.slug_allocator import SlugAllocator, slugify
from depot_ingest.ingestion.table_parser import TableParser, to_camel_case

__all__ = [
    "AssemblyResult",
    "DataPipeline",
    "PipelineStatistics",
    "RelationalAssembler",
    "SlugAllocator",
    "SourceData",
    "TableParser",
    "sanitize_markup",
    "slugify",
    "to_camel_case",
]
