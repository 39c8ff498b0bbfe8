"""
Tests for header and file-shape validation.

Covers the static allowed-column rules, the alias-driven supported-columns
rules, check ordering, and header-order independence of the verdict.
"""

import pytest
from hypothesis import given, settings as hyp_settings
from hypothesis import strategies as st

from upload_config.schema import ObjectTypeConfig
from upload_kernel.exceptions import (
    EmptyFileError,
    EmptyHeaderError,
    FileTooLargeError,
    InvalidColumnError,
    MissingMandatoryFieldError,
    NoDataRowsError,
)
from upload_ingestion.domain.header import (
    build_column_rules,
    validate_file_shape,
    validate_header,
    validate_with_rules,
)
from upload_ingestion.domain.types import SupportedColumns


def _verdict(header, *args, **kwargs):
    """Exception class raised by validate_header, or None when it passes."""
    try:
        validate_header(header, *args, **kwargs)
    except Exception as exc:
        return type(exc)
    return None


class TestValidateHeader:

    def test_subset_of_allowed_columns_passes(self):
        validate_header(["name", "code"], ["name", "code", "status"], False, False)

    def test_all_mandatory_reports_missing_column(self):
        with pytest.raises(MissingMandatoryFieldError) as exc_info:
            validate_header(["name"], ["name", "code"], True, False)
        assert exc_info.value.field == "code"
        assert str(exc_info.value) == "Mandatory parameter code is missing"

    def test_empty_header_rejected(self):
        with pytest.raises(EmptyHeaderError):
            validate_header([], ["name"], False, False)

    def test_unknown_column_rejected(self):
        with pytest.raises(InvalidColumnError) as exc_info:
            validate_header(["name", "colour"], ["name", "code"], False, False)
        assert exc_info.value.column == "colour"
        assert exc_info.value.valid_columns == ["name", "code"]

    def test_case_sensitive_by_default(self):
        with pytest.raises(InvalidColumnError):
            validate_header(["Name"], ["name"], False, False)

    def test_case_insensitive_folds_both_sides(self):
        validate_header(["NAME", "code"], ["Name", "Code"], True, True)

    def test_all_mandatory_checked_before_unknown_columns(self):
        with pytest.raises(MissingMandatoryFieldError):
            validate_header(["name", "colour"], ["name", "code"], True, False)

    def test_mandatory_subset_without_alias_map(self):
        with pytest.raises(MissingMandatoryFieldError) as exc_info:
            validate_header(["name"], ["name", "code"], False, False, mandatory_subset=["code"])
        assert exc_info.value.field == "code"

    def test_mandatory_subset_case_insensitive_without_alias_map(self):
        validate_header(["NAME", "Code"], ["name", "code"], False, True, mandatory_subset=["code", "Name"])

    def test_mandatory_subset_case_sensitive_without_alias_map(self):
        with pytest.raises(MissingMandatoryFieldError) as exc_info:
            validate_header(["name", "code"], ["name", "code"], False, False, mandatory_subset=["Code"])
        assert exc_info.value.field == "Code"

    def test_mandatory_subset_resolves_through_alias_map(self):
        alias_map = {"organisation name": "orgName", "orgname": "orgName"}
        validate_header(
            ["Organisation Name"],
            ["organisation name", "orgName"],
            False,
            True,
            mandatory_subset=["orgName"],
            alias_map=alias_map,
        )

    def test_mandatory_subset_missing_after_alias_resolution(self):
        alias_map = {"organisation name": "orgName", "location code": "locationCode"}
        with pytest.raises(MissingMandatoryFieldError) as exc_info:
            validate_header(
                ["Organisation Name"],
                ["organisation name", "location code"],
                False,
                True,
                mandatory_subset=["orgName", "locationCode"],
                alias_map=alias_map,
            )
        assert exc_info.value.field == "locationCode"


class TestHeaderOrderIndependence:

    ALLOWED = ["name", "code", "status", "email"]

    @given(
        header=st.lists(
            st.sampled_from(["name", "code", "status", "email", "colour", "NAME"]),
            min_size=1,
            max_size=6,
            unique=True,
        ),
        data=st.data(),
        all_mandatory=st.booleans(),
        case_insensitive=st.booleans(),
    )
    @hyp_settings(max_examples=200)
    def test_verdict_does_not_depend_on_column_order(
        self, header, data, all_mandatory, case_insensitive,
    ):
        shuffled = data.draw(st.permutations(header))
        assert _verdict(header, self.ALLOWED, all_mandatory, case_insensitive) == _verdict(
            shuffled, self.ALLOWED, all_mandatory, case_insensitive,
        )


class TestBuildColumnRules:

    CONFIG = ObjectTypeConfig(
        object_type="organisation",
        allowed_columns=("orgName", "locationCode", "status"),
        known_columns=("orgName", "locationCode"),
    )

    def test_static_rules_without_supported_columns(self):
        rules = build_column_rules(self.CONFIG, None)
        assert rules.allowed_columns == ("orgName", "locationCode", "status")
        assert rules.alias_map is None
        assert rules.case_insensitive is False

    def test_alias_rules_accept_external_and_internal_names(self):
        supported = SupportedColumns(
            alias_map={"Organisation Name": "orgName", "Location Code": "locationCode"},
            mandatory_columns=("orgName", "locationCode"),
        )
        rules = build_column_rules(self.CONFIG, supported)

        assert rules.case_insensitive is True
        assert rules.alias_map["organisation name"] == "orgName"
        assert rules.alias_map["orgname"] == "orgName"
        validate_with_rules(["ORGANISATION NAME", "locationCode"], rules)

    def test_alias_rules_reject_unmapped_column(self):
        supported = SupportedColumns(alias_map={"Organisation Name": "orgName"})
        rules = build_column_rules(self.CONFIG, supported)
        with pytest.raises(InvalidColumnError):
            validate_with_rules(["Organisation Name", "status"], rules)

    def test_alias_rules_enforce_mandatory_subset(self):
        supported = SupportedColumns(
            alias_map={"Organisation Name": "orgName", "Location Code": "locationCode"},
            mandatory_columns=("orgName", "locationCode"),
        )
        rules = build_column_rules(self.CONFIG, supported)
        with pytest.raises(MissingMandatoryFieldError, match="locationCode"):
            validate_with_rules(["Organisation Name"], rules)


class TestValidateFileShape:

    def test_returns_data_row_count(self):
        assert validate_file_shape([["name"], ["a"], ["b"]], max_rows=5) == 2

    def test_no_rows_is_empty_file(self):
        with pytest.raises(EmptyFileError):
            validate_file_shape([], max_rows=5)

    def test_header_only_has_no_data_rows(self):
        with pytest.raises(NoDataRowsError):
            validate_file_shape([["name"]], max_rows=5)

    def test_exactly_max_rows_is_accepted(self):
        assert validate_file_shape([["name"]] + [["x"]] * 3, max_rows=3) == 3

    def test_more_than_max_rows_rejected(self):
        with pytest.raises(FileTooLargeError) as exc_info:
            validate_file_shape([["name"]] + [["x"]] * 4, max_rows=3)
        assert exc_info.value.max_allowed == 3
