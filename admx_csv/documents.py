# (C) 2025 Noverse. All Rights Reserved.
# https://github.com/nohuto
# https://discord.gg/E2ybG4j9jU

"""Typed model of one ADMX policy document and its ADML resource document.

Elements and presentation controls are closed sets of variants built once by
the loader, so the dispatcher can match on type instead of probing raw XML
attributes.
"""

from dataclasses import dataclass, field
from typing import Dict, Mapping, Optional, Tuple, Union

from .errors import PolicyStructureError

@dataclass(frozen=True)
class Scalar:
    kind: str
    value: str = ""


@dataclass(frozen=True)
class ValueContainer:
    """A `<value>`, `<trueValue>`, `<enabledValue>`... node and its scalar children."""

    scalars: Tuple[Scalar, ...] = ()

    def single(self, owner: str = "") -> Optional[Scalar]:
        if len(self.scalars) > 1:
            where = f" in {owner}" if owner else ""
            raise PolicyStructureError(
                f"value container{where} holds {len(self.scalars)} scalars, expected one",
                "Keep exactly one <decimal>, <longDecimal>, <string> or <delete> child per value.",
            )
        return self.scalars[0] if self.scalars else None


@dataclass(frozen=True)
class ListItem:
    value_name: str
    key: str
    value: ValueContainer


@dataclass(frozen=True)
class EnumItem:
    display_name_ref: str
    value: ValueContainer


@dataclass(frozen=True)
class ListElement:
    id: str
    key: str = ""
    value_prefix: Optional[str] = None
    additive: bool = False


@dataclass(frozen=True)
class TextElement:
    id: str
    value_name: str = ""
    key: str = ""
    required: bool = False
    expandable: bool = False
    max_length: Optional[str] = None


@dataclass(frozen=True)
class EnumElement:
    id: str
    value_name: str = ""
    key: str = ""
    required: bool = False
    items: Tuple[EnumItem, ...] = ()


@dataclass(frozen=True)
class BooleanElement:
    id: str
    value_name: str = ""
    key: str = ""
    true_value: Optional[ValueContainer] = None
    false_value: Optional[ValueContainer] = None
    true_list: Tuple[ListItem, ...] = ()
    false_list: Tuple[ListItem, ...] = ()


@dataclass(frozen=True)
class DecimalElement:
    id: str
    value_name: str = ""
    key: str = ""
    required: bool = False
    min_value: Optional[str] = None
    max_value: Optional[str] = None


@dataclass(frozen=True)
class MultiTextElement:
    id: str
    value_name: str = ""
    key: str = ""
    required: bool = False
    max_length: Optional[str] = None
    max_strings: Optional[str] = None


@dataclass(frozen=True)
class UnknownElement:
    id: str
    tag: str
    value_name: str = ""
    key: str = ""


Element = Union[
    ListElement, TextElement, EnumElement, BooleanElement, DecimalElement, MultiTextElement, UnknownElement
]


@dataclass(frozen=True)
class TextBox:
    ref_id: str
    label: str = ""


@dataclass(frozen=True)
class ComboBox:
    ref_id: str
    label: str = ""
    suggestions: Tuple[str, ...] = ()


@dataclass(frozen=True)
class ListBox:
    ref_id: str
    label: str = ""


@dataclass(frozen=True)
class DropdownList:
    ref_id: str
    label: str = ""


@dataclass(frozen=True)
class CheckBox:
    ref_id: str
    label: str = ""
    default_checked: bool = False


@dataclass(frozen=True)
class DecimalTextBox:
    ref_id: str
    label: str = ""
    default_value: Optional[str] = None


@dataclass(frozen=True)
class MultiTextBox:
    ref_id: str
    label: str = ""


PresentationControl = Union[TextBox, ComboBox, ListBox, DropdownList, CheckBox, DecimalTextBox, MultiTextBox]


@dataclass(frozen=True)
class Presentation:
    """One `<presentation>` fragment keyed by the controls' refId."""

    id: str
    controls: Tuple[PresentationControl, ...] = ()

    def __post_init__(self) -> None:
        index: Dict[str, PresentationControl] = {}
        for control in self.controls:
            index.setdefault(control.ref_id, control)
        object.__setattr__(self, "_by_ref_id", index)

    def control_for(self, ref_id: str) -> Optional[PresentationControl]:
        return self._by_ref_id.get(ref_id)

    def duplicate_ref_ids(self) -> Tuple[str, ...]:
        seen: Dict[str, int] = {}
        for control in self.controls:
            seen[control.ref_id] = seen.get(control.ref_id, 0) + 1
        return tuple(ref_id for ref_id, count in seen.items() if count > 1)


@dataclass(frozen=True)
class Category:
    name: str
    display_name_ref: str
    parent_category: Optional[str] = None


@dataclass(frozen=True)
class SupportedOnDefinition:
    name: str
    display_name_ref: str


@dataclass(frozen=True)
class Policy:
    name: str
    policy_class: str = ""
    key: str = ""
    display_name_ref: str = ""
    explain_text_ref: str = ""
    presentation_ref: Optional[str] = None
    supported_on_ref: str = ""
    parent_category_ref: str = ""
    value_name: Optional[str] = None
    enabled_value: Optional[ValueContainer] = None
    disabled_value: Optional[ValueContainer] = None
    elements: Tuple[Element, ...] = ()
    enabled_list: Tuple[ListItem, ...] = ()
    disabled_list: Tuple[ListItem, ...] = ()


@dataclass(frozen=True)
class PolicyDocument:
    name: str
    definitions: Tuple[SupportedOnDefinition, ...] = ()
    categories: Tuple[Category, ...] = ()
    policies: Tuple[Policy, ...] = ()

    def __post_init__(self) -> None:
        definitions: Dict[str, SupportedOnDefinition] = {}
        for definition in self.definitions:
            definitions.setdefault(definition.name, definition)
        categories: Dict[str, Category] = {}
        for category in self.categories:
            categories.setdefault(category.name, category)
        object.__setattr__(self, "_definitions", definitions)
        object.__setattr__(self, "_categories", categories)

    def definition(self, name: str) -> Optional[SupportedOnDefinition]:
        return self._definitions.get(name)

    def category(self, name: str) -> Optional[Category]:
        return self._categories.get(name)


@dataclass(frozen=True)
class ResourceDocument:
    """String and presentation tables of one ADML file.

    `strings` keeps the raw inner text of each `<string>` entry; the first
    entry wins when an id repeats.
    """

    name: str = ""
    strings: Mapping[str, str] = field(default_factory=dict)
    presentations: Mapping[str, Presentation] = field(default_factory=dict)

    def raw_string(self, string_id: str) -> Optional[str]:
        return self.strings.get(string_id)
