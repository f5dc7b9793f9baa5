# tests/unit/core/test_validation.py
import pytest

from licensing.core.exceptions import ValidationError
from licensing.core.validation import CapabilityDefinitionValidator, ValidationResult

validator = CapabilityDefinitionValidator


@pytest.mark.parametrize(
    "code",
    [
        "members:view",
        "members:delete",
        "event_calendar:publish",
        "donations:export",
        "volunteer_hours:approve",
        "abc:import",
        "_x_:manage",
    ],
)
def test_valid_right_codes_are_accepted(code):
    result = validator.validate_right_code(code)
    assert result.valid
    assert result.errors == []


@pytest.mark.parametrize(
    "code, error_code",
    [
        ("Members:view", "invalid_format"),
        ("members:View", "invalid_format"),
        ("members-list:view", "invalid_format"),
        ("members:view:all", "invalid_format"),
        ("members", "invalid_format"),
        (":view", "invalid_format"),
        ("members:", "invalid_format"),
        ("members2:view", "invalid_format"),
        ("members:view\n", "invalid_format"),
        ("", "invalid_format"),
        ("members:fly", "invalid_action"),
        ("members:read", "invalid_action"),
        ("ab:view", "category_too_short"),
    ],
)
def test_invalid_right_codes_are_rejected(code, error_code):
    result = validator.validate_right_code(code)
    assert not result.valid
    assert error_code in [error.code for error in result.errors]


@pytest.mark.parametrize("value", [None, 42, ["members:view"], {"right_code": "members:view"}])
def test_non_string_right_code_is_an_error_not_an_exception(value):
    result = validator.validate_right_code(value)
    assert not result.valid
    assert result.errors[0].code == "invalid_type"


def test_short_category_and_bad_action_are_both_reported():
    result = validator.validate_right_code("ab:fly")
    assert {error.code for error in result.errors} == {"invalid_action", "category_too_short"}


def test_right_code_error_carries_field_name():
    result = validator.validate_right_code("bad", field_name="rights[3].right_code")
    assert result.errors[0].field == "rights[3].right_code"
    assert result.errors[0].value == "bad"


@pytest.mark.parametrize("key", ["tenant_admin", "staff", "volunteer", "member", "board2", "a"])
def test_valid_role_keys(key):
    assert validator.validate_role_key(key).valid


@pytest.mark.parametrize("key", ["Admin", "1staff", "_staff", "staff-lead", "tenant_admin\n", "", None, 7])
def test_invalid_role_keys(key):
    result = validator.validate_role_key(key)
    assert not result.valid
    assert result.errors[0].code == "invalid_format"


def test_role_key_regex_does_not_enforce_allow_list():
    """Any well-formed key passes; the allow-list is checked when definitions are written"""
    assert validator.validate_role_key("board_member").valid


def test_role_key_batch_flags_duplicates():
    result = validator.validate_role_key_batch(["tenant_admin", "staff", "tenant_admin", "Bad"])
    codes = [error.code for error in result.errors]
    assert codes.count("duplicate") == 1
    assert codes.count("invalid_format") == 1


def test_empty_right_set_fails():
    result = validator.validate_capability_right_set([])
    assert not result.valid
    assert result.errors[0].code == "empty"

    assert not validator.validate_capability_right_set(None).valid


def test_right_set_rejects_duplicates():
    result = validator.validate_capability_right_set(["members:view", "members:delete", "members:view"])
    assert not result.valid
    duplicates = [error for error in result.errors if error.code == "duplicate"]
    assert len(duplicates) == 1
    assert duplicates[0].field == "rights[2].right_code"


def test_right_set_aggregates_per_code_errors():
    result = validator.validate_capability_right_set(["members:view", "Bad", "members:fly"])
    assert [error.field for error in result.errors] == ["rights[1].right_code", "rights[2].right_code"]


def test_right_set_without_view_is_valid_with_warning():
    result = validator.validate_capability_right_set(["members:manage", "members:export"])
    assert result.valid
    assert len(result.warnings) == 1
    assert ":view" in result.warnings[0]


def test_right_set_with_view_has_no_warning():
    result = validator.validate_capability_right_set(["members:view"])
    assert result.valid
    assert result.warnings == []


def test_right_set_accepts_mappings():
    result = validator.validate_capability_right_set(
        [{"right_code": "members:view", "display_name": "View"}, {"right_code": "members:x"}]
    )
    assert not result.valid
    assert result.errors[0].code == "invalid_action"


def test_parse_right_code():
    assert validator.parse_right_code("event_calendar:publish") == ("event_calendar", "publish")


@pytest.mark.parametrize(
    "surface_id, action, expected",
    [
        ("admin/community/members", "view", "members:view"),
        ("/admin/reports/", "export", "reports:export"),
        ("Event-Calendar", "manage", "event_calendar:manage"),
        ("admin.donations", "view", "donations:view"),
        ("admin/x", "view", "feature:view"),
        ("admin/42", "view", "feature:view"),
    ],
)
def test_suggest_right_code(surface_id, action, expected):
    code = validator.suggest_right_code(surface_id, action)
    assert code == expected
    assert validator.validate_right_code(code).valid


def test_validation_result_merge_and_raise():
    result = ValidationResult()
    result.merge(validator.validate_right_code("Bad"))
    result.merge(validator.validate_capability_right_set(["members:manage"]))

    data = result.to_dict()
    assert data["valid"] is False
    assert data["errors"][0]["field"] == "right_code"
    assert len(data["warnings"]) == 1

    with pytest.raises(ValidationError) as exc_info:
        result.raise_for_errors("Nope")
    assert exc_info.value.status_code == 400
    assert exc_info.value.to_dict()["errors"][0]["code"] == "invalid_format"


def test_valid_result_does_not_raise():
    validator.validate_right_code("members:view").raise_for_errors()
