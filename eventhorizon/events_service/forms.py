"""
Registration form schema.

An event carries an ordered list of field definitions. The same list drives
the attendee form and the validation of what the attendee submits.
"""

import re
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Mapping, Optional, Tuple

FIELD_TYPES = ("text", "email", "tel", "checkbox", "textarea", "radio", "multiple-choice")
STRING_TYPES = ("text", "email", "tel", "textarea")
CHOICE_TYPES = ("radio", "multiple-choice")

# Error codes reported per field
MISSING_REQUIRED = "missing-required"
INVALID_FORMAT = "invalid-format"
INVALID_OPTION = "invalid-option"

EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")
TEL_RE = re.compile(r"^[\d\s+()-]+$")
TEL_MIN_LENGTH = 7

CHECKBOX_TRUE = ("true", "on", "1", "yes")
CHECKBOX_FALSE = ("", "false", "off", "0", "no")


class FormSchemaError(ValueError):
    """A field definition list breaks one of the schema rules."""


@dataclass(frozen=True)
class FieldError:
    code: str
    message: str

    def to_dict(self) -> Dict[str, str]:
        return {"code": self.code, "message": self.message}


@dataclass(frozen=True)
class FormField:
    name: str
    label: str
    type: str
    required: bool = False
    placeholder: Optional[str] = None
    options: Tuple[str, ...] = field(default_factory=tuple)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "FormField":
        """
        Build a field from its stored/JSON form.

        Raises:
            FormSchemaError: Missing name, unknown type, or bad options.
        """
        name = data.get("name")
        if not name or not isinstance(name, str):
            raise FormSchemaError("Every form field needs a name.")

        field_type = data.get("type", "text")
        if field_type not in FIELD_TYPES:
            raise FormSchemaError(
                f"Field '{name}': type must be one of: {', '.join(FIELD_TYPES)}"
            )

        options = data.get("options") or []
        if not isinstance(options, (list, tuple)) or not all(isinstance(o, str) for o in options):
            raise FormSchemaError(f"Field '{name}': options must be a list of strings.")
        if field_type in CHOICE_TYPES and not options:
            raise FormSchemaError(f"Field '{name}': {field_type} fields need at least one option.")

        return cls(
            name=name,
            label=data.get("label") or name,
            type=field_type,
            required=bool(data.get("required", False)),
            placeholder=data.get("placeholder"),
            options=tuple(options),
        )

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "name": self.name,
            "label": self.label,
            "type": self.type,
            "required": self.required,
        }
        if self.placeholder is not None:
            data["placeholder"] = self.placeholder
        if self.options:
            data["options"] = list(self.options)
        return data

    def default_value(self) -> Any:
        if self.type == "checkbox":
            return False
        if self.type == "multiple-choice":
            return []
        return ""


def parse_form_fields(raw: Optional[Iterable[Mapping[str, Any]]]) -> List[FormField]:
    """
    Parse an event's formFields list, keeping declaration order.

    Raises:
        FormSchemaError: A field is malformed or two fields share a name.
    """
    if raw is None:
        return []
    if not isinstance(raw, (list, tuple)):
        raise FormSchemaError("formFields must be a list.")

    fields: List[FormField] = []
    seen = set()
    for item in raw:
        if not isinstance(item, Mapping):
            raise FormSchemaError("Each form field must be an object.")
        form_field = FormField.from_dict(item)
        if form_field.name in seen:
            raise FormSchemaError(f"Duplicate form field name: '{form_field.name}'")
        seen.add(form_field.name)
        fields.append(form_field)
    return fields


def is_valid_email(value: str) -> bool:
    return bool(EMAIL_RE.match(value))


def _check_string(form_field: FormField, value: Any):
    if value is None:
        value = ""
    if not isinstance(value, str):
        return None, FieldError(INVALID_FORMAT, f"{form_field.label} must be text.")

    if value.strip() == "":
        if form_field.required:
            return None, FieldError(MISSING_REQUIRED, f"{form_field.label} is required.")
        return "", None

    # Email and phone values are stored trimmed
    if form_field.type in ("email", "tel"):
        value = value.strip()

    if form_field.type == "email" and not is_valid_email(value):
        return None, FieldError(INVALID_FORMAT, "Please enter a valid email.")

    if form_field.type == "tel":
        if len(value) < TEL_MIN_LENGTH:
            return None, FieldError(INVALID_FORMAT, "Phone number is too short.")
        if not TEL_RE.match(value):
            return None, FieldError(
                INVALID_FORMAT,
                "Phone number can only contain digits, spaces, and characters like + ( ) -",
            )

    return value, None


def _check_checkbox(form_field: FormField, value: Any):
    if isinstance(value, str):
        lowered = value.strip().lower()
        if lowered in CHECKBOX_TRUE:
            value = True
        elif lowered in CHECKBOX_FALSE:
            value = False
    if value is None:
        value = False
    if not isinstance(value, bool):
        return None, FieldError(INVALID_FORMAT, f"{form_field.label} must be checked or unchecked.")
    if form_field.required and value is not True:
        return None, FieldError(MISSING_REQUIRED, "You must check this box.")
    return value, None


def _check_radio(form_field: FormField, value: Any):
    if value is None or value == "":
        if form_field.required:
            return None, FieldError(MISSING_REQUIRED, f"{form_field.label} is required.")
        return "", None
    if value not in form_field.options:
        return None, FieldError(INVALID_OPTION, f"'{value}' is not an option for {form_field.label}.")
    return value, None


def _check_multiple_choice(form_field: FormField, value: Any):
    if value is None or value == "":
        value = []
    elif isinstance(value, str):
        value = [value]
    if not isinstance(value, (list, tuple)):
        return None, FieldError(INVALID_FORMAT, f"{form_field.label} must be a list of options.")

    if not value:
        if form_field.required:
            return None, FieldError(
                MISSING_REQUIRED, f"Please select at least one option for {form_field.label}."
            )
        return [], None

    for choice in value:
        if choice not in form_field.options:
            return None, FieldError(INVALID_OPTION, f"'{choice}' is not an option for {form_field.label}.")
    return list(value), None


CHECKS = {
    "text": _check_string,
    "email": _check_string,
    "tel": _check_string,
    "textarea": _check_string,
    "checkbox": _check_checkbox,
    "radio": _check_radio,
    "multiple-choice": _check_multiple_choice,
}


def validate_submission(
    fields: Iterable[FormField], submission: Mapping[str, Any]
) -> Tuple[Dict[str, Any], Dict[str, FieldError]]:
    """
    Validate submitted values against the field definitions.

    Args:
        fields: Field definitions in display order.
        submission: Field name -> raw submitted value. Keys that match no
            field are ignored.

    Returns:
        tuple: (values, errors). values maps each field name to its typed
        value in field order. errors maps field name -> FieldError and is
        empty when the submission is valid.
    """
    values: Dict[str, Any] = {}
    errors: Dict[str, FieldError] = {}

    for form_field in fields:
        value, error = CHECKS[form_field.type](form_field, submission.get(form_field.name))
        if error:
            errors[form_field.name] = error
        else:
            values[form_field.name] = value

    return values, errors
