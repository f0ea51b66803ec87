import pytest

from eventhorizon.events_service.forms import (
    INVALID_FORMAT,
    INVALID_OPTION,
    MISSING_REQUIRED,
    FormField,
    FormSchemaError,
    parse_form_fields,
    validate_submission,
)


def fields_of(*defs):
    return parse_form_fields(list(defs))


@pytest.mark.parametrize("field_type", ["text", "email", "tel", "textarea"])
def test_required_string_field_empty_is_missing(field_type):
    fields = fields_of({"name": "f", "label": "F", "type": field_type, "required": True})
    values, errors = validate_submission(fields, {"f": ""})
    assert values == {}
    assert errors["f"].code == MISSING_REQUIRED


def test_required_string_field_absent_is_missing():
    fields = fields_of({"name": "full_name", "label": "Full name", "type": "text", "required": True})
    _, errors = validate_submission(fields, {})
    assert errors["full_name"].code == MISSING_REQUIRED


def test_optional_string_field_may_be_empty():
    fields = fields_of({"name": "company", "label": "Company", "type": "text"})
    values, errors = validate_submission(fields, {})
    assert errors == {}
    assert values == {"company": ""}


def test_email_format():
    fields = fields_of({"name": "email", "label": "Email", "type": "email", "required": True})

    _, errors = validate_submission(fields, {"email": "not-an-email"})
    assert errors["email"].code == INVALID_FORMAT

    values, errors = validate_submission(fields, {"email": "a@b.com"})
    assert errors == {}
    assert values == {"email": "a@b.com"}


def test_email_and_tel_values_are_trimmed():
    fields = fields_of(
        {"name": "email", "label": "Email", "type": "email", "required": True},
        {"name": "phone", "label": "Phone", "type": "tel"},
        {"name": "note", "label": "Note", "type": "text"},
    )
    values, errors = validate_submission(
        fields, {"email": " a@b.com ", "phone": " +48 123 456 789\n", "note": " hi "}
    )
    assert errors == {}
    assert values == {"email": "a@b.com", "phone": "+48 123 456 789", "note": " hi "}


@pytest.mark.parametrize("value, ok", [
    ("+48 123 456 789", True),
    ("(555) 123-4567", True),
    ("12345", False),
    ("555-CALL-NOW", False),
])
def test_tel_format(value, ok):
    fields = fields_of({"name": "phone", "label": "Phone", "type": "tel", "required": True})
    _, errors = validate_submission(fields, {"phone": value})
    if ok:
        assert errors == {}
    else:
        assert errors["phone"].code == INVALID_FORMAT


def test_radio_rejects_unknown_option():
    fields = fields_of({"name": "size", "label": "Size", "type": "radio", "options": ["S", "M"]})

    _, errors = validate_submission(fields, {"size": "XL"})
    assert errors["size"].code == INVALID_OPTION

    values, errors = validate_submission(fields, {"size": "M"})
    assert errors == {}
    assert values == {"size": "M"}


def test_multiple_choice():
    fields = fields_of({
        "name": "tracks", "label": "Tracks", "type": "multiple-choice",
        "required": True, "options": ["AI", "Web", "Cloud"],
    })

    _, errors = validate_submission(fields, {"tracks": []})
    assert errors["tracks"].code == MISSING_REQUIRED

    _, errors = validate_submission(fields, {"tracks": ["AI", "Quantum"]})
    assert errors["tracks"].code == INVALID_OPTION

    values, errors = validate_submission(fields, {"tracks": ["Web", "AI"]})
    assert errors == {}
    assert values == {"tracks": ["Web", "AI"]}


def test_required_checkbox_must_be_checked():
    fields = fields_of({"name": "agree", "label": "Agree", "type": "checkbox", "required": True})

    _, errors = validate_submission(fields, {"agree": False})
    assert errors["agree"].code == MISSING_REQUIRED

    values, errors = validate_submission(fields, {"agree": "on"})
    assert errors == {}
    assert values == {"agree": True}


def test_values_keep_field_order_and_ignore_unknown_keys():
    fields = fields_of(
        {"name": "b", "label": "B", "type": "text"},
        {"name": "a", "label": "A", "type": "text"},
    )
    values, errors = validate_submission(fields, {"a": "1", "b": "2", "extra": "x"})
    assert errors == {}
    assert list(values) == ["b", "a"]
    assert "extra" not in values


def test_no_fields_accepts_any_submission():
    values, errors = validate_submission([], {"anything": "goes"})
    assert values == {}
    assert errors == {}


def test_parse_rejects_duplicate_names():
    with pytest.raises(FormSchemaError):
        fields_of(
            {"name": "email", "label": "Email", "type": "email"},
            {"name": "email", "label": "Email again", "type": "email"},
        )


def test_parse_rejects_choice_field_without_options():
    with pytest.raises(FormSchemaError):
        fields_of({"name": "size", "label": "Size", "type": "radio"})


def test_parse_rejects_unknown_type():
    with pytest.raises(FormSchemaError):
        fields_of({"name": "dob", "label": "Birthday", "type": "date"})


def test_form_field_defaults():
    assert FormField("a", "A", "checkbox").default_value() is False
    assert FormField("b", "B", "multiple-choice", options=("x",)).default_value() == []
    assert FormField("c", "C", "text").default_value() == ""
