"""
Header and file-shape validation for uploaded tables.

Architecture: upload_ingestion/domain. ZERO I/O.  Raises the client input
errors from upload_kernel.exceptions; nothing here touches the store, so a
rejected file never leaves a Job behind.

The verdict of validate_header does not depend on the order of the header
columns: the checks run in a fixed order (empty, all-mandatory, unknown
column, mandatory subset) and each check is a set membership test.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Sequence

from upload_kernel.exceptions import (
    EmptyFileError,
    EmptyHeaderError,
    FileTooLargeError,
    InvalidColumnError,
    MissingMandatoryFieldError,
    NoDataRowsError,
)

from upload_ingestion.domain.types import SupportedColumns

if TYPE_CHECKING:
    from upload_config.schema import ObjectTypeConfig


@dataclass(frozen=True)
class ColumnRules:
    """Resolved header rules for one upload."""

    allowed_columns: tuple[str, ...]
    known_columns: tuple[str, ...] = ()
    all_fields_mandatory: bool = False
    case_insensitive: bool = False
    mandatory_subset: tuple[str, ...] | None = None
    alias_map: dict[str, str] | None = None

    def fold(self, name: str) -> str:
        return name.lower() if self.case_insensitive else name


def build_column_rules(
    config: ObjectTypeConfig,
    supported: SupportedColumns | None,
) -> ColumnRules:
    """
    Combine static configuration with lookup-served column aliases.

    Without supported columns the static allowed list applies as configured.
    With them, headers may use either the external display names or the
    internal names, compared case-insensitively, and the mandatory subset is
    checked against the resolved internal names.
    """
    if supported is None:
        return ColumnRules(
            allowed_columns=tuple(config.allowed_columns),
            known_columns=tuple(config.known_columns),
            all_fields_mandatory=config.all_fields_mandatory,
            case_insensitive=config.case_insensitive,
        )

    alias_map: dict[str, str] = {
        external.lower(): internal for external, internal in supported.alias_map.items()
    }
    for internal in supported.alias_map.values():
        alias_map[internal.lower()] = internal

    allowed: list[str] = []
    for key, value in alias_map.items():
        for name in (key, value):
            if name not in allowed:
                allowed.append(name)

    return ColumnRules(
        allowed_columns=tuple(allowed),
        known_columns=tuple(config.known_columns),
        all_fields_mandatory=False,
        case_insensitive=True,
        mandatory_subset=tuple(supported.mandatory_columns),
        alias_map=alias_map,
    )


def validate_header(
    header_row: Sequence[str],
    allowed_columns: Sequence[str],
    all_fields_mandatory: bool,
    case_insensitive: bool,
    mandatory_subset: Sequence[str] | None = None,
    alias_map: dict[str, str] | None = None,
) -> None:
    """
    Validate a header row.

    Raises:
        EmptyHeaderError: header has no columns.
        MissingMandatoryFieldError: an allowed column is absent while
            ``all_fields_mandatory``, or a ``mandatory_subset`` name is not
            covered by the alias-resolved header.
        InvalidColumnError: a header column is not allowed.
    """
    if not header_row:
        raise EmptyHeaderError()

    def fold(name: str) -> str:
        return name.lower() if case_insensitive else name

    header = {fold(h) for h in header_row}
    allowed = {fold(a) for a in allowed_columns}

    if all_fields_mandatory:
        for column in allowed_columns:
            if fold(column) not in header:
                raise MissingMandatoryFieldError(column)

    for column in header_row:
        if fold(column) not in allowed:
            raise InvalidColumnError(column, list(allowed_columns))

    if mandatory_subset:
        if alias_map is None:
            resolved = header
        else:
            resolved = {fold(alias_map[fold(h)]) for h in header_row if fold(h) in alias_map}
        for column in mandatory_subset:
            if fold(column) not in resolved:
                raise MissingMandatoryFieldError(column)


def validate_with_rules(header_row: Sequence[str], rules: ColumnRules) -> None:
    """validate_header driven by a ColumnRules bundle."""
    validate_header(
        header_row,
        rules.allowed_columns,
        rules.all_fields_mandatory,
        rules.case_insensitive,
        mandatory_subset=rules.mandatory_subset,
        alias_map=rules.alias_map,
    )


def validate_file_shape(rows: Sequence[Sequence[str]], max_rows: int) -> int:
    """
    Check the row count of a parsed file and return the data-row count.

    Raises:
        EmptyFileError: no rows at all.
        NoDataRowsError: a header row and nothing else.
        FileTooLargeError: more than ``max_rows`` data rows.
    """
    if not rows:
        raise EmptyFileError()
    data_rows = len(rows) - 1
    if data_rows == 0:
        raise NoDataRowsError()
    if data_rows > max_rows:
        raise FileTooLargeError(max_rows)
    return data_rows
