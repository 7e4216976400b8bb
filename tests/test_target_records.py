from __future__ import annotations

import pytest

from form_monitoring.errors import TargetRecordError
from form_monitoring.targets.records import FieldRole, target_from_mapping, target_from_row


def _row(**overrides):
    cells = [
        "https://ex.test/register",
        "#e",
        "a@b.com",
        "#p",
        "x",
        "#c",
        "",
        "",
        "#go",
        "/welcome",
        "signup",
    ]
    names = ["url", "es", "ev", "ps", "pv", "cs", "cv", "cb", "sub", "redir", "label"]
    for key, value in overrides.items():
        cells[names.index(key)] = value
    return cells


def test_row_maps_positionally() -> None:
    target = target_from_row(_row())
    assert target.url == "https://ex.test/register"
    assert [f.role for f in target.fields] == [FieldRole.EMAIL, FieldRole.PASSWORD, FieldRole.CONFIRM]
    assert target.field_for(FieldRole.EMAIL).selector == "#e"
    assert target.field_for(FieldRole.EMAIL).value == "a@b.com"
    assert target.field_for(FieldRole.CONFIRM).value is None
    assert target.checkbox_selector is None
    assert target.submit_selector == "#go"
    assert target.expected_redirect == "/welcome"
    assert target.label == "signup"
    assert target.form_marker is None


def test_row_strips_selector_whitespace() -> None:
    target = target_from_row(_row(es="  #e \n", sub=" #go "))
    assert target.field_for(FieldRole.EMAIL).selector == "#e"
    assert target.submit_selector == "#go"


def test_whitespace_only_selector_disables_field() -> None:
    target = target_from_row(_row(ps="   "))
    password = target.field_for(FieldRole.PASSWORD)
    assert password.selector is None
    assert password.enabled is False


def test_short_row_does_not_shift_columns() -> None:
    target = target_from_row(["https://ex.test/register", "#e", "a@b.com"])
    assert target.field_for(FieldRole.EMAIL).selector == "#e"
    assert target.field_for(FieldRole.PASSWORD).selector is None
    assert target.submit_selector is None
    assert target.expected_redirect is None
    assert target.label == "unknown"


def test_twelfth_column_is_form_marker() -> None:
    target = target_from_row(_row() + ["/signup"])
    assert target.form_marker == "/signup"


def test_too_many_columns_rejected() -> None:
    with pytest.raises(TargetRecordError):
        target_from_row(_row() + ["/signup", "extra"])


@pytest.mark.parametrize("url", ["", "   ", "ftp://ex.test/register", "not a url"])
def test_invalid_url_rejected(url: str) -> None:
    with pytest.raises(TargetRecordError):
        target_from_row(_row(url=url))


def test_mapping_with_custom_fields_keeps_declaration_order() -> None:
    target = target_from_mapping(
        {
            "url": "https://ex.test/register",
            "label": "custom",
            "fields": [
                {"role": "email", "selector": "#e", "value": "a@b.com"},
                {"role": "custom", "selector": " #name ", "value": "Ada"},
                {"role": "password", "selector": "#p", "value": "x"},
                {"selector": "#company", "value": "ACME"},
            ],
            "submit_selector": "#go",
        }
    )
    assert [f.role for f in target.fields] == [
        FieldRole.EMAIL,
        FieldRole.CUSTOM,
        FieldRole.PASSWORD,
        FieldRole.CUSTOM,
    ]
    assert target.fields[1].selector == "#name"


def test_mapping_rejects_unknown_role() -> None:
    with pytest.raises(TargetRecordError):
        target_from_mapping({"url": "https://ex.test/register", "fields": [{"role": "phone", "selector": "#x"}]})


def test_mapping_label_defaults_to_unknown() -> None:
    assert target_from_mapping({"url": "https://ex.test/register"}).label == "unknown"


def test_mapping_rejects_misspelled_keys() -> None:
    with pytest.raises(TargetRecordError) as info:
        target_from_mapping(
            {
                "url": "https://ex.test/register",
                "submit": "#go",
                "expected_redirect_substring": "/welcome",
            }
        )
    assert "unknown_keys" in str(info.value)
    assert "expected_redirect_substring" in str(info.value)
    assert "submit" in str(info.value)
