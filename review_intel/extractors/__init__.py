"""
Extractors module for the App Review Intelligence client.

Turns loosely-typed backend payloads into canonical records.

Components:
    - Alias tables: Versioned, data-driven field mappings per record kind
    - Record normalizer: Total, never-raising normalization of raw payloads
"""

from review_intel.extractors.aliases import (
    ALIAS_TABLE_VERSION,
    MAPPING_REGISTRY,
    FieldRule,
    RecordMapping,
    get_mapping,
)
from review_intel.extractors.record_normalizer import (
    RECORD_MODELS,
    coerce_list,
    coerce_number,
    extract_text,
    normalize,
    normalize_fields,
    normalize_many,
    resolve_path,
)

__all__ = [
    # Alias tables
    "ALIAS_TABLE_VERSION",
    "MAPPING_REGISTRY",
    "FieldRule",
    "RecordMapping",
    "get_mapping",
    # Normalizer
    "RECORD_MODELS",
    "coerce_list",
    "coerce_number",
    "extract_text",
    "normalize",
    "normalize_fields",
    "normalize_many",
    "resolve_path",
]
