"""Target records and the configuration sources that produce them."""

from .records import FieldRole, FieldSpec, TargetRecord, target_from_mapping, target_from_row
from .sources import (
    CsvTargetSource,
    FileTargetSource,
    RejectedTarget,
    SheetsTargetSource,
    TargetSource,
    load_targets,
    parse_targets,
)

__all__ = [
    "CsvTargetSource",
    "FieldRole",
    "FieldSpec",
    "FileTargetSource",
    "RejectedTarget",
    "SheetsTargetSource",
    "TargetRecord",
    "TargetSource",
    "load_targets",
    "parse_targets",
    "target_from_mapping",
    "target_from_row",
]
