from __future__ import annotations

import enum
from dataclasses import dataclass
from typing import Any, Sequence
from urllib.parse import urlsplit

from form_monitoring.errors import TargetRecordError


DEFAULT_LABEL = "unknown"

# Positional layout of a configuration row (sheet columns A..L).
ROW_COLUMNS = (
    "url",
    "email_selector",
    "email_value",
    "password_selector",
    "password_value",
    "confirm_selector",
    "confirm_value",
    "checkbox_selector",
    "submit_selector",
    "expected_redirect",
    "label",
    "form_marker",
)


class FieldRole(str, enum.Enum):
    EMAIL = "email"
    PASSWORD = "password"
    CONFIRM = "confirm"
    CUSTOM = "custom"


# Roles whose values must never end up in logs.
SECRET_ROLES = frozenset({FieldRole.PASSWORD, FieldRole.CONFIRM})


@dataclass(frozen=True)
class FieldSpec:
    role: FieldRole
    selector: str | None
    value: str | None = None

    @property
    def enabled(self) -> bool:
        return bool(self.selector)


@dataclass(frozen=True)
class TargetRecord:
    url: str
    fields: tuple[FieldSpec, ...] = ()
    checkbox_selector: str | None = None
    submit_selector: str | None = None
    expected_redirect: str | None = None
    label: str = DEFAULT_LABEL
    form_marker: str | None = None

    def field_for(self, role: FieldRole) -> FieldSpec | None:
        for spec in self.fields:
            if spec.role is role:
                return spec
        return None


def clean_selector(raw: Any) -> str | None:
    """Strip a selector; blank selectors mean 'not configured'."""
    if raw is None:
        return None
    s = str(raw).strip()
    return s or None


def _clean_optional(raw: Any) -> str | None:
    if raw is None:
        return None
    s = str(raw)
    return s if s.strip() else None


def _ensure_http_url(url: Any) -> str:
    s = str(url or "").strip()
    if not s:
        raise TargetRecordError("missing_url")
    parts = urlsplit(s)
    if (parts.scheme or "").lower() not in {"http", "https"}:
        raise TargetRecordError(f"invalid_url_scheme: {s!r}")
    if not parts.netloc:
        raise TargetRecordError(f"invalid_url_host: {s!r}")
    return s


def target_from_row(row: Sequence[Any]) -> TargetRecord:
    """
    Map one positional configuration row onto a TargetRecord.

    Missing trailing cells and empty cells both map to None, so a short row
    never shifts the meaning of the columns that are present.
    """
    if row is None or isinstance(row, (str, bytes)):
        raise TargetRecordError("row_must_be_a_sequence")
    if len(row) > len(ROW_COLUMNS):
        raise TargetRecordError(f"too_many_columns: {len(row)} > {len(ROW_COLUMNS)}")

    cells = {name: (row[idx] if idx < len(row) else None) for idx, name in enumerate(ROW_COLUMNS)}

    fields = (
        FieldSpec(FieldRole.EMAIL, clean_selector(cells["email_selector"]), _clean_optional(cells["email_value"])),
        FieldSpec(
            FieldRole.PASSWORD, clean_selector(cells["password_selector"]), _clean_optional(cells["password_value"])
        ),
        FieldSpec(
            FieldRole.CONFIRM, clean_selector(cells["confirm_selector"]), _clean_optional(cells["confirm_value"])
        ),
    )
    return TargetRecord(
        url=_ensure_http_url(cells["url"]),
        fields=fields,
        checkbox_selector=clean_selector(cells["checkbox_selector"]),
        submit_selector=clean_selector(cells["submit_selector"]),
        expected_redirect=_clean_optional(cells["expected_redirect"]),
        label=str(cells["label"] or "").strip() or DEFAULT_LABEL,
        form_marker=_clean_optional(cells["form_marker"]),
    )


def target_from_mapping(entry: dict[str, Any]) -> TargetRecord:
    """
    Build a TargetRecord from a named-field mapping (YAML/JSON target files):

        url: https://example.com/register
        label: example
        fields:
          - {role: email, selector: "#email", value: "qa@example.com"}
          - {role: password, selector: "#password", value: "${FORM_PASSWORD}"}
          - {role: confirm, selector: "#password2"}
        checkbox_selector: "#terms"
        submit_selector: "button[type=submit]"
        expected_redirect: /welcome
    """
    if not isinstance(entry, dict):
        raise TargetRecordError("target_must_be_object")

    raw_fields = entry.get("fields") or []
    if not isinstance(raw_fields, list):
        raise TargetRecordError("fields_must_be_a_list")

    fields: list[FieldSpec] = []
    for idx, raw in enumerate(raw_fields):
        if not isinstance(raw, dict):
            raise TargetRecordError(f"invalid_field[{idx}]")
        role_raw = str(raw.get("role") or "custom").strip().lower()
        try:
            role = FieldRole(role_raw)
        except ValueError as exc:
            raise TargetRecordError(f"unknown_field_role[{idx}]: {role_raw}") from exc
        value = raw.get("value")
        fields.append(FieldSpec(role, clean_selector(raw.get("selector")), None if value is None else str(value)))

    known = {
        "url",
        "fields",
        "checkbox_selector",
        "submit_selector",
        "expected_redirect",
        "label",
        "form_marker",
    }
    unknown = sorted(str(k) for k in entry if k not in known)
    if unknown:
        raise TargetRecordError(f"unknown_keys: {unknown}")
    return TargetRecord(
        url=_ensure_http_url(entry.get("url")),
        fields=tuple(fields),
        checkbox_selector=clean_selector(entry.get("checkbox_selector")),
        submit_selector=clean_selector(entry.get("submit_selector")),
        expected_redirect=_clean_optional(entry.get("expected_redirect")),
        label=str(entry.get("label") or "").strip() or DEFAULT_LABEL,
        form_marker=_clean_optional(entry.get("form_marker")),
    )
