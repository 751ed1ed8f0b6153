"""TypeScript source parsing for erp-conformance."""

from parse.migrations import extract_migration_records, is_well_named
from parse.schema import SchemaParseError, extract_schema_entities
from parse.treesitter_ts import extract_source_facts, parse_source

__all__ = [
    "SchemaParseError",
    "extract_migration_records",
    "extract_schema_entities",
    "extract_source_facts",
    "is_well_named",
    "parse_source",
]
