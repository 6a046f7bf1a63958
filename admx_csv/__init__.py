# (C) 2025 Noverse. All Rights Reserved.
# https://github.com/nohuto
# https://discord.gg/E2ybG4j9jU

"""Flatten ADMX/ADML policy definitions into one row per policy, element and list member."""

from .errors import (
    AdmxCsvError,
    ConfigError,
    DocumentError,
    PolicyScopedError,
    PolicyStructureError,
    ReferenceSyntaxError,
)
from .refs import parse_presentation_ref, parse_reference, parse_string_ref
from .rows import COLUMNS, Diagnostic, OutputRow, RunReport, convert, policy_rows

__version__ = "1.0.0"

__all__ = [
    "AdmxCsvError",
    "COLUMNS",
    "ConfigError",
    "Diagnostic",
    "DocumentError",
    "OutputRow",
    "PolicyScopedError",
    "PolicyStructureError",
    "ReferenceSyntaxError",
    "RunReport",
    "convert",
    "parse_presentation_ref",
    "parse_reference",
    "parse_string_ref",
    "policy_rows",
]
