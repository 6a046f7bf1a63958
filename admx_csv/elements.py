# (C) 2025 Noverse. All Rights Reserved.
# https://github.com/nohuto
# https://discord.gg/E2ybG4j9jU

from dataclasses import dataclass
from typing import List, Optional, Sequence

from .documents import (
    BooleanElement,
    CheckBox,
    ComboBox,
    DecimalElement,
    DecimalTextBox,
    Element,
    EnumElement,
    ListElement,
    ListItem,
    MultiTextElement,
    PresentationControl,
    ResourceDocument,
    TextElement,
    UnknownElement,
    ValueContainer,
)
from .resolve import resolve_string_ref

UNKNOWN_LABEL = "unknown"
ENUM_INDENT = "\n     "


@dataclass(frozen=True)
class ElementRecord:
    kind: str
    label: str
    value_name: str
    possible_values: str


def scalar_kind(container: Optional[ValueContainer], owner: str = "") -> str:
    if container is None:
        return ""
    scalar = container.single(owner)
    return scalar.kind if scalar is not None else ""


def format_scalar(container: Optional[ValueContainer], owner: str = "") -> Optional[str]:
    """Literal text of the single scalar in `container`.

    None when there is no scalar or its kind is not one the report knows.
    """
    if container is None:
        return None
    scalar = container.single(owner)
    if scalar is None:
        return None
    if scalar.kind in ("decimal", "longDecimal"):
        return scalar.value
    if scalar.kind == "string":
        return scalar.value
    if scalar.kind == "delete":
        return "(delete)"
    return None


def _lines(header: str, lines: Sequence[str]) -> str:
    return "\n".join([header, *lines])


def _flagged(value_name: str, **flags: bool) -> str:
    for suffix, enabled in flags.items():
        if enabled:
            value_name += f" ({suffix.replace('_', ' ')})"
    return value_name


def _list_element(element: ListElement, label: str) -> ElementRecord:
    if element.value_prefix is not None:
        prefix = element.value_prefix
        value_name = f"(prefix) {prefix}"
        possible_values = f"{prefix}1\n{prefix}2"
    else:
        value_name = "(value list)"
        possible_values = ""
    if element.additive:
        value_name += " (append)"
    return ElementRecord("list", label, value_name, possible_values)


def _text_element(element: TextElement, control: Optional[PresentationControl], label: str) -> ElementRecord:
    if isinstance(control, ComboBox):
        return ElementRecord("text", label, f"{element.value_name} (comboBox)", "\n".join(control.suggestions))
    value_name = _flagged(element.value_name, required=element.required, expandable=element.expandable)
    possible_values = f"Max length: {element.max_length}" if element.max_length is not None else ""
    return ElementRecord("text", label, value_name, possible_values)


def _enum_element(element: EnumElement, label: str, resources: ResourceDocument) -> ElementRecord:
    entries = []
    for index, item in enumerate(element.items):
        value = format_scalar(item.value, f"enum '{element.id}' item {index + 1}")
        item_label = resolve_string_ref(resources, item.display_name_ref)
        entries.append(f'{ENUM_INDENT}"{value or ""}" = "{item_label}"')
    value_name = _flagged(element.value_name, required=element.required)
    return ElementRecord("enum", label, value_name, "List items: " + " ".join(entries))


def _member_line(item: ListItem, state: str, owner: str) -> Optional[str]:
    value = format_scalar(item.value, owner)
    if value is None:
        return None
    return f"{item.value_name} = {value} ({state})"


def _boolean_element(element: BooleanElement, control: Optional[PresentationControl], label: str) -> ElementRecord:
    owner = f"boolean '{element.id}'"
    lines: List[str] = []
    sides = (
        (element.true_value, element.true_list, "1", "true"),
        (element.false_value, element.false_list, "0", "false"),
    )
    for container, members, fallback, state in sides:
        # without an explicit value or list, ADMX stores 1 for checked and 0 for unchecked
        literal = fallback if container is None and not members else format_scalar(container, owner)
        if literal is not None:
            lines.append(f"{literal} ({state})")
    for members, state in ((element.true_list, "true"), (element.false_list, "false")):
        for item in members:
            line = _member_line(item, state, owner)
            if line is not None:
                lines.append(line)
    default_checked = isinstance(control, CheckBox) and control.default_checked
    value_name = _flagged(element.value_name, default_checked=default_checked)
    return ElementRecord("boolean", label, value_name, _lines("Checkbox values:", lines) if lines else "")


def _decimal_element(element: DecimalElement, control: Optional[PresentationControl], label: str) -> ElementRecord:
    lines: List[str] = []
    if isinstance(control, DecimalTextBox) and control.default_value is not None:
        lines.append(f"Default: {control.default_value}")
    if element.min_value is not None:
        lines.append(f"Minimum: {element.min_value}")
    if element.max_value is not None:
        lines.append(f"Maximum: {element.max_value}")
    return ElementRecord("decimal", label, element.value_name, _lines("Textbox values:", lines) if lines else "")


def _multi_text_element(element: MultiTextElement, label: str) -> ElementRecord:
    lines: List[str] = []
    if element.max_length is not None:
        lines.append(f"Max length: {element.max_length}")
    if element.max_strings is not None:
        lines.append(f"Max strings: {element.max_strings}")
    value_name = _flagged(element.value_name, required=element.required)
    return ElementRecord("multiText", label, value_name, "\n".join(lines))


def dispatch_element(
    element: Element, control: Optional[PresentationControl], resources: ResourceDocument
) -> ElementRecord:
    """Describe one policy element as kind, label, value name and possible values."""
    label = control.label if control is not None else ""
    if isinstance(element, ListElement):
        return _list_element(element, label)
    if isinstance(element, TextElement):
        return _text_element(element, control, label)
    if isinstance(element, EnumElement):
        return _enum_element(element, label, resources)
    if isinstance(element, BooleanElement):
        return _boolean_element(element, control, label)
    if isinstance(element, DecimalElement):
        return _decimal_element(element, control, label)
    if isinstance(element, MultiTextElement):
        return _multi_text_element(element, label)
    if isinstance(element, UnknownElement):
        return ElementRecord(element.tag, UNKNOWN_LABEL, element.value_name, "")
    raise TypeError(f"unhandled element type {type(element).__name__}")
