# (C) 2025 Noverse. All Rights Reserved.
# https://github.com/nohuto
# https://discord.gg/E2ybG4j9jU

import logging
from collections import Counter
from contextlib import contextmanager
from dataclasses import astuple, dataclass, field
from typing import Dict, Iterable, Iterator, List, Mapping, Optional, Sequence, Tuple

from .documents import ListItem, Policy, PolicyDocument, ResourceDocument
from .elements import dispatch_element, format_scalar, scalar_kind
from .errors import PolicyScopedError
from .resolve import lookup_control, lookup_presentation, resolve_category, resolve_string_ref, resolve_supported_on

LOG = logging.getLogger("admx_csv")

COLUMNS = (
    "File",
    "Category",
    "Policy Name",
    "Display Name",
    "Class",
    "Explain Text",
    "Supported On",
    "Type",
    "Label",
    "Registry Key",
    "Value Name",
    "Possible Values",
)

HIVES = {
    "machine": ("HKLM",),
    "user": ("HKCU",),
    "both": ("HKLM", "HKCU"),
}


@dataclass(frozen=True)
class OutputRow:
    source_file: str
    parent_category: str
    policy_name: str
    display_name: str
    policy_class: str
    explain_text: str
    supported_on: str
    row_kind: str
    label: str
    registry_key: str
    value_name: str
    possible_values: str

    def values(self) -> Tuple[str, ...]:
        return astuple(self)

    def as_dict(self) -> Dict[str, str]:
        return dict(zip(COLUMNS, self.values()))


@dataclass(frozen=True)
class Diagnostic:
    source_file: str
    policy_name: str
    field: str
    message: str


@dataclass
class RunReport:
    rows: List[OutputRow] = field(default_factory=list)
    policy_counts: Dict[str, int] = field(default_factory=dict)
    diagnostics: List[Diagnostic] = field(default_factory=list)

    @property
    def total_rows(self) -> int:
        return len(self.rows)

    @property
    def total_policies(self) -> int:
        return sum(self.policy_counts.values())

    def class_summary(self) -> Dict[str, int]:
        counter = Counter(row.policy_class or "Unknown" for row in self.rows if row.row_kind == "policy")
        return {key: counter[key] for key in sorted(counter)}


def build_registry_key(policy_class: str, key: str) -> str:
    if not key:
        return ""
    normalized = key.lstrip("\\")
    hives = HIVES.get((policy_class or "").lower(), ("HKLM",))
    return "\n".join(f"{hive}\\{normalized}" for hive in hives)


def policy_value_text(policy: Policy) -> str:
    lines = []
    for container, state in ((policy.enabled_value, "Enabled"), (policy.disabled_value, "Disabled")):
        literal = format_scalar(container, f"{state.lower()}Value")
        if literal is not None:
            lines.append(f"   {literal} ({state})")
    if not lines:
        return ""
    return "\n".join(["Policy value:", *lines])


@contextmanager
def _field(policy: Policy, name: str) -> Iterator[None]:
    try:
        yield
    except PolicyScopedError as exc:
        exc.attach(policy=policy.name, field=name)
        raise


class RowEmitter:
    """Turn the policies of one document into contiguous blocks of rows."""

    def __init__(
        self,
        vendors: Optional[Mapping[str, ResourceDocument]] = None,
        *,
        hive_prefix: bool = False,
        class_filter: Optional[Sequence[str]] = None,
        policy_filter: Optional[str] = None,
    ) -> None:
        self.vendors = {key.lower(): value for key, value in (vendors or {}).items()}
        self.hive_prefix = hive_prefix
        self.class_filter = {c.lower() for c in (class_filter or [])}
        self.policy_filter = policy_filter.lower() if policy_filter else None

    def _key(self, policy: Policy, key: str) -> str:
        key = key or policy.key
        if self.hive_prefix:
            return build_registry_key(policy.policy_class, key)
        return key

    def _wants_class(self, policy: Policy) -> bool:
        if not self.class_filter:
            return True
        policy_class = policy.policy_class.lower()
        return policy_class in self.class_filter or policy_class == "both"

    def _text(self, policy: Policy, resources: ResourceDocument, ref: str, name: str) -> str:
        if not ref:
            return ""
        with _field(policy, name):
            return resolve_string_ref(resources, ref)

    def policy_rows(
        self, source_file: str, policy: Policy, document: PolicyDocument, resources: ResourceDocument
    ) -> Optional[List[OutputRow]]:
        """All rows of one policy, or None when filters exclude it.

        Raises PolicyScopedError when the policy is structurally broken; no
        partial block is returned in that case.
        """
        if not self._wants_class(policy):
            return None
        display_name = self._text(policy, resources, policy.display_name_ref, "displayName")
        if self.policy_filter and self.policy_filter not in f"{policy.name} {display_name}".lower():
            return None
        explain_text = self._text(policy, resources, policy.explain_text_ref, "explainText")
        with _field(policy, "supportedOn"):
            supported_on = resolve_supported_on(policy, document, resources, self.vendors)
        with _field(policy, "parentCategory"):
            category = resolve_category(policy, document, resources)
        with _field(policy, "presentation"):
            presentation = lookup_presentation(policy, resources)
        if presentation is not None:
            for ref_id in presentation.duplicate_ref_ids():
                LOG.warning(f"{source_file}: presentation '{presentation.id}' has several controls for '{ref_id}'")

        def row(kind: str, label: str, key: str, value_name: str, possible_values: str) -> OutputRow:
            return OutputRow(
                source_file=source_file,
                parent_category=category,
                policy_name=policy.name,
                display_name=display_name,
                policy_class=policy.policy_class,
                explain_text=explain_text,
                supported_on=supported_on,
                row_kind=kind,
                label=label,
                registry_key=self._key(policy, key),
                value_name=value_name,
                possible_values=possible_values,
            )

        with _field(policy, "enabledValue/disabledValue"):
            rows = [row("policy", "", policy.key, policy.value_name or "", policy_value_text(policy))]

        for element in policy.elements:
            with _field(policy, f"elements/{element.id}"):
                record = dispatch_element(element, lookup_control(presentation, element.id), resources)
            rows.append(row(record.kind, record.label, element.key, record.value_name, record.possible_values))

        for list_name, members in (("enabledList", policy.enabled_list), ("disabledList", policy.disabled_list)):
            with _field(policy, list_name):
                rows.extend(self._member_rows(list_name, members, row))
        return rows

    @staticmethod
    def _member_rows(list_name: str, members: Iterable[ListItem], row) -> Iterator[OutputRow]:
        for index, item in enumerate(members):
            owner = f"{list_name} item {index + 1}"
            kind = f"{list_name} {scalar_kind(item.value, owner)}".rstrip()
            yield row(kind, "", item.key, item.value_name, format_scalar(item.value, owner) or "")

    def document_rows(
        self,
        source_file: str,
        document: PolicyDocument,
        resources: ResourceDocument,
        diagnostics: Optional[List[Diagnostic]] = None,
    ) -> Tuple[List[OutputRow], int]:
        """Rows for every policy in document order, plus the number of policies emitted."""
        rows: List[OutputRow] = []
        count = 0
        for policy in document.policies:
            try:
                block = self.policy_rows(source_file, policy, document, resources)
            except PolicyScopedError as exc:
                LOG.warning(f"{source_file}: {exc.message}")
                if diagnostics is not None:
                    diagnostics.append(Diagnostic(source_file, policy.name, exc.field, exc.detail))
                continue
            if block is None:
                continue
            rows.extend(block)
            count += 1
        return rows, count


def policy_rows(
    policy: Policy,
    document: PolicyDocument,
    resources: ResourceDocument,
    vendors: Optional[Mapping[str, ResourceDocument]] = None,
    *,
    source_file: str = "",
) -> List[OutputRow]:
    rows = RowEmitter(vendors).policy_rows(source_file or document.name, policy, document, resources)
    return rows or []


def convert(
    sources: Iterable[Tuple[str, PolicyDocument, ResourceDocument]],
    vendors: Optional[Mapping[str, ResourceDocument]] = None,
    *,
    emitter: Optional[RowEmitter] = None,
) -> RunReport:
    """Flatten each (file name, policy document, resources) triple in order."""
    emitter = emitter or RowEmitter(vendors)
    report = RunReport()
    for source_file, document, resources in sources:
        rows, count = emitter.document_rows(source_file, document, resources, report.diagnostics)
        report.rows.extend(rows)
        report.policy_counts[source_file] = count
        LOG.info(f"{source_file}: {count} policies, {len(rows)} rows")
    return report
