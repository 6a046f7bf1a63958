# (C) 2025 Noverse. All Rights Reserved.
# https://github.com/nohuto
# https://discord.gg/E2ybG4j9jU

import io, logging, re
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable, Dict, Iterable, Iterator, List, Mapping, Match, Optional, Sequence, Tuple, cast
from xml.etree import ElementTree as et

from .documents import (
    BooleanElement,
    Category,
    CheckBox,
    ComboBox,
    DecimalElement,
    DecimalTextBox,
    DropdownList,
    Element,
    EnumElement,
    EnumItem,
    ListBox,
    ListElement,
    ListItem,
    MultiTextBox,
    MultiTextElement,
    Policy,
    PolicyDocument,
    Presentation,
    PresentationControl,
    ResourceDocument,
    Scalar,
    SupportedOnDefinition,
    TextBox,
    TextElement,
    UnknownElement,
    ValueContainer,
)
from .errors import DocumentError

LOG = logging.getLogger("admx_csv")
UNICODE_ENCODING_PATTERN = re.compile(br"encoding\s*=\s*(?P<quote>['\"])unicode(?P=quote)", re.IGNORECASE)
UNICODE_ENCODING_TEXT_PATTERN = re.compile(r"encoding\s*=\s*(?P<quote>['\"])unicode(?P=quote)", re.IGNORECASE)
DEFAULT_VENDOR_FILES = {"windows": "Windows.adml"}

Qualify = Callable[[str], str]


@dataclass(frozen=True)
class SourcePair:
    admx_path: Path
    adml_path: Optional[Path]


def load_xml_tree(path: Path) -> "et.ElementTree[Any]":
    try:
        return et.parse(path)
    except LookupError:
        raw = path.read_bytes()
        fixed = _normalize_unicode_encoding(raw)
        if fixed is not None:
            return et.parse(io.BytesIO(fixed))
        raise


def _normalize_unicode_encoding(raw: bytes) -> Optional[bytes]:
    # Some ADML files declare encoding="unicode", which expat does not know.
    if UNICODE_ENCODING_PATTERN.search(raw):
        def repl(match: Match[bytes]) -> bytes:
            quote = match.group("quote")
            return b"encoding=" + quote + b"utf-16" + quote

        return UNICODE_ENCODING_PATTERN.sub(repl, raw, count=1)

    for encoding in ("utf-16", "utf-16-le", "utf-16-be"):
        try:
            text = raw.decode(encoding)
        except UnicodeDecodeError:
            continue
        if UNICODE_ENCODING_TEXT_PATTERN.search(text):
            def repl_text(match: Match[str]) -> str:
                quote = match.group("quote")
                return f"encoding={quote}utf-16{quote}"

            text = UNICODE_ENCODING_TEXT_PATTERN.sub(repl_text, text, count=1)
            return text.encode(encoding)
    return None


def _load_root(path: Path) -> et.Element:
    try:
        tree = load_xml_tree(path)
    except et.ParseError as exc:
        raise DocumentError(path.name, str(exc)) from exc
    except LookupError as exc:
        raise DocumentError(path.name, f"unsupported encoding ({exc})") from exc
    return cast(et.Element, tree.getroot())


def _extract_namespace(node: Any) -> str:
    if "}" in node.tag:
        return node.tag.split("}", 1)[0].strip("{")
    return ""


def _qualifier(root: Any) -> Qualify:
    namespace = _extract_namespace(root)
    return lambda tag: f"{{{namespace}}}{tag}" if namespace else tag


def _local_name(tag: str) -> str:
    return tag.split("}", 1)[1] if "}" in tag else tag


def _children(node: Any) -> Iterator[Any]:
    """Child elements of `node`, skipping comments and processing instructions."""
    for child in node:
        if isinstance(child.tag, str):
            yield child


def _flag(node: Any, name: str) -> bool:
    return (node.get(name) or "").strip().lower() == "true"


def _text(node: Optional[Any]) -> str:
    if node is None:
        return ""
    return (node.text or "").strip()


# --- ADMX ---


def load_policy_document(path: Path) -> PolicyDocument:
    root = _load_root(path)
    return parse_policy_document(root, name=path.name)


def parse_policy_document(root: Any, *, name: str = "") -> PolicyDocument:
    q = _qualifier(root)

    definitions: List[SupportedOnDefinition] = []
    definitions_node = root.find(f"{q('supportedOn')}/{q('definitions')}")
    if definitions_node is not None:
        for node in definitions_node.findall(q("definition")):
            definitions.append(SupportedOnDefinition(node.get("name", ""), node.get("displayName", "")))

    categories: List[Category] = []
    categories_node = root.find(q("categories"))
    if categories_node is not None:
        for node in categories_node.findall(q("category")):
            parent = node.find(q("parentCategory"))
            categories.append(
                Category(
                    name=node.get("name", ""),
                    display_name_ref=node.get("displayName", ""),
                    parent_category=parent.get("ref") if parent is not None else None,
                )
            )

    policies: List[Policy] = []
    policies_node = root.find(q("policies"))
    if policies_node is not None:
        for node in policies_node.findall(q("policy")):
            policies.append(_parse_policy(node, q))

    return PolicyDocument(
        name=name,
        definitions=tuple(definitions),
        categories=tuple(categories),
        policies=tuple(policies),
    )


def _parse_policy(node: Any, q: Qualify) -> Policy:
    parent_category = node.find(q("parentCategory"))
    supported_on = node.find(q("supportedOn"))
    enabled_value = node.find(q("enabledValue"))
    disabled_value = node.find(q("disabledValue"))
    elements_node = node.find(q("elements"))
    elements: Tuple[Element, ...] = ()
    if elements_node is not None:
        elements = tuple(_parse_element(child, q) for child in _children(elements_node))
    return Policy(
        name=node.get("name", ""),
        policy_class=node.get("class", ""),
        key=node.get("key", ""),
        display_name_ref=node.get("displayName", ""),
        explain_text_ref=node.get("explainText", ""),
        presentation_ref=node.get("presentation"),
        supported_on_ref=supported_on.get("ref", "") if supported_on is not None else "",
        parent_category_ref=parent_category.get("ref", "") if parent_category is not None else "",
        value_name=node.get("valueName"),
        enabled_value=_parse_value(enabled_value) if enabled_value is not None else None,
        disabled_value=_parse_value(disabled_value) if disabled_value is not None else None,
        elements=elements,
        enabled_list=_parse_value_list(node.find(q("enabledList")), q),
        disabled_list=_parse_value_list(node.find(q("disabledList")), q),
    )


def _parse_value(node: Any) -> ValueContainer:
    scalars: List[Scalar] = []
    for child in _children(node):
        kind = _local_name(child.tag)
        if kind == "string":
            scalars.append(Scalar(kind, (child.text or "").strip()))
        else:
            scalars.append(Scalar(kind, child.get("value", "")))
    return ValueContainer(tuple(scalars))


def _parse_value_list(node: Optional[Any], q: Qualify) -> Tuple[ListItem, ...]:
    if node is None:
        return ()
    default_key = node.get("defaultKey", "")
    items: List[ListItem] = []
    for item in node.findall(q("item")):
        value = item.find(q("value"))
        items.append(
            ListItem(
                value_name=item.get("valueName", ""),
                key=item.get("key") or default_key,
                value=_parse_value(value) if value is not None else ValueContainer(),
            )
        )
    return tuple(items)


def _parse_element(node: Any, q: Qualify) -> Element:
    tag = _local_name(node.tag)
    element_id = node.get("id", "")
    value_name = node.get("valueName", "")
    key = node.get("key", "")
    if tag == "list":
        return ListElement(
            id=element_id,
            key=key,
            value_prefix=node.get("valuePrefix"),
            additive=_flag(node, "additive"),
        )
    if tag == "text":
        return TextElement(
            id=element_id,
            value_name=value_name,
            key=key,
            required=_flag(node, "required"),
            expandable=_flag(node, "expandable"),
            max_length=node.get("maxLength"),
        )
    if tag == "enum":
        items: List[EnumItem] = []
        for item in node.findall(q("item")):
            value = item.find(q("value"))
            items.append(
                EnumItem(
                    display_name_ref=item.get("displayName", ""),
                    value=_parse_value(value) if value is not None else ValueContainer(),
                )
            )
        return EnumElement(
            id=element_id, value_name=value_name, key=key, required=_flag(node, "required"), items=tuple(items)
        )
    if tag == "boolean":
        true_value = node.find(q("trueValue"))
        false_value = node.find(q("falseValue"))
        return BooleanElement(
            id=element_id,
            value_name=value_name,
            key=key,
            true_value=_parse_value(true_value) if true_value is not None else None,
            false_value=_parse_value(false_value) if false_value is not None else None,
            true_list=_parse_value_list(node.find(q("trueList")), q),
            false_list=_parse_value_list(node.find(q("falseList")), q),
        )
    if tag == "decimal":
        return DecimalElement(
            id=element_id,
            value_name=value_name,
            key=key,
            required=_flag(node, "required"),
            min_value=node.get("minValue"),
            max_value=node.get("maxValue"),
        )
    if tag == "multiText":
        return MultiTextElement(
            id=element_id,
            value_name=value_name,
            key=key,
            required=_flag(node, "required"),
            max_length=node.get("maxLength"),
            max_strings=node.get("maxStrings"),
        )
    return UnknownElement(id=element_id, tag=tag, value_name=value_name, key=key)


# --- ADML ---


def load_resource_document(path: Path) -> ResourceDocument:
    root = _load_root(path)
    return parse_resource_document(root, name=path.name)


def parse_resource_document(root: Any, *, name: str = "") -> ResourceDocument:
    q = _qualifier(root)
    strings: Dict[str, str] = {}
    string_table = root.find(f".//{q('stringTable')}")
    if string_table is not None:
        for node in string_table.findall(q("string")):
            string_id = node.get("id")
            if string_id and string_id not in strings:
                strings[string_id] = node.text or ""

    presentations: Dict[str, Presentation] = {}
    presentation_table = root.find(f".//{q('presentationTable')}")
    if presentation_table is not None:
        for node in presentation_table.findall(q("presentation")):
            presentation_id = node.get("id")
            if not presentation_id or presentation_id in presentations:
                continue
            controls = [control for control in (_parse_control(child, q) for child in _children(node)) if control]
            presentations[presentation_id] = Presentation(presentation_id, tuple(controls))
    return ResourceDocument(name=name, strings=strings, presentations=presentations)


def _control_label(node: Any, q: Qualify) -> str:
    label = node.find(q("label"))
    if label is not None:
        return _text(label)
    return _text(node)


def _parse_control(node: Any, q: Qualify) -> Optional[PresentationControl]:
    ref_id = node.get("refId")
    if not ref_id:
        # plain <text> captions have no element to join against
        return None
    tag = _local_name(node.tag)
    label = _control_label(node, q)
    if tag == "textBox":
        return TextBox(ref_id, label)
    if tag == "comboBox":
        return ComboBox(ref_id, label, suggestions=tuple(_text(s) for s in node.findall(q("suggestion"))))
    if tag == "listBox":
        return ListBox(ref_id, label)
    if tag == "dropdownList":
        return DropdownList(ref_id, label)
    if tag == "checkBox":
        return CheckBox(ref_id, label, default_checked=_flag(node, "defaultChecked"))
    if tag == "decimalTextBox":
        return DecimalTextBox(ref_id, label, default_value=node.get("defaultValue"))
    if tag == "multiTextBox":
        return MultiTextBox(ref_id, label)
    LOG.debug(f"Ignoring unsupported presentation control <{tag} refId='{ref_id}'>")
    return None


# --- discovery ---


def resolve_language_directory(definitions_path: Path, language: str) -> Path:
    candidate = definitions_path / language
    if candidate.exists():
        return candidate
    lower = language.casefold()
    for directory in definitions_path.iterdir():
        if directory.is_dir() and directory.name.casefold() == lower:
            return directory
    return candidate


def _find_adml(language_dir: Path, stem: str) -> Optional[Path]:
    candidate = language_dir / f"{stem}.adml"
    if candidate.exists():
        return candidate
    if not language_dir.is_dir():
        return None
    lower = f"{stem}.adml".casefold()
    for path in language_dir.iterdir():
        if path.name.casefold() == lower:
            return path
    return None


def discover_sources(
    definitions_path: Path, language: str, ignored_admx: Optional[Sequence[str]] = None
) -> List[SourcePair]:
    """Pair every `*.admx` (sorted by name) with its `<language>/<stem>.adml`."""
    ignore_set = {item.lower().removesuffix(".admx") for item in (ignored_admx or [])}
    language_dir = resolve_language_directory(definitions_path, language)
    pairs: List[SourcePair] = []
    for admx_path in sorted(definitions_path.glob("*.admx")):
        if not admx_path.is_file():
            continue
        if admx_path.stem.lower() in ignore_set:
            LOG.debug(f"Skipping ignored ADMX: {admx_path.name}")
            continue
        pairs.append(SourcePair(admx_path, _find_adml(language_dir, admx_path.stem)))
    return pairs


def default_vendor_paths(definitions_path: Path, language: str) -> Dict[str, Path]:
    language_dir = resolve_language_directory(definitions_path, language)
    found: Dict[str, Path] = {}
    for vendor, file_name in DEFAULT_VENDOR_FILES.items():
        path = _find_adml(language_dir, Path(file_name).stem)
        if path is not None:
            found[vendor] = path
    return found


def load_vendor_documents(paths: Mapping[str, Path]) -> Dict[str, ResourceDocument]:
    """Load each vendor ADML once; keys are lower-cased vendor prefixes."""
    vendors: Dict[str, ResourceDocument] = {}
    for vendor, path in paths.items():
        try:
            vendors[vendor.lower()] = load_resource_document(Path(path))
        except DocumentError as exc:
            LOG.warning(f"Vendor '{vendor}' unavailable: {exc}")
        except OSError as exc:
            LOG.warning(f"Vendor '{vendor}' unavailable: {path}: {exc.strerror or exc}")
        else:
            LOG.debug(f"Loaded vendor '{vendor}' from {path}")
    return vendors


def iter_documents(pairs: Iterable[SourcePair]) -> Iterator[Tuple[SourcePair, PolicyDocument, ResourceDocument]]:
    """Load each pair in order; files that cannot be parsed are logged and skipped."""
    for pair in pairs:
        try:
            document = load_policy_document(pair.admx_path)
        except DocumentError as exc:
            LOG.warning(str(exc))
            continue
        if pair.adml_path is None:
            LOG.warning(f"{pair.admx_path.name}: no matching ADML, strings will be blank")
            resources = ResourceDocument(name="")
        else:
            try:
                resources = load_resource_document(pair.adml_path)
            except DocumentError as exc:
                LOG.warning(str(exc))
                resources = ResourceDocument(name=pair.adml_path.name)
        yield pair, document, resources
