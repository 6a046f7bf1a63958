# (C) 2025 Noverse. All Rights Reserved.
# https://github.com/nohuto
# https://discord.gg/E2ybG4j9jU

"""Reference resolution across string tables, category trees, supported-on
tables and presentation fragments.

Misses never raise: they come back as an empty string, or as UNKNOWN for a
supported-on definition that cannot be named. Only malformed reference syntax
raises (ReferenceSyntaxError), and the caller scopes that to one policy.
"""

from typing import Mapping, Optional

from .documents import Policy, PolicyDocument, Presentation, PresentationControl, ResourceDocument
from .refs import parse_presentation_ref, parse_string_ref, split_prefixed

UNKNOWN = "*unknown*"


def resolve_string(resources: ResourceDocument, string_id: str) -> str:
    text = resources.raw_string(string_id)
    return text.strip() if text else ""


def resolve_string_ref(resources: ResourceDocument, ref: str) -> str:
    """Resolve `$(string.ID)` against `resources`."""
    return resolve_string(resources, parse_string_ref(ref))


def resolve_supported_on(
    policy: Policy,
    document: PolicyDocument,
    resources: ResourceDocument,
    vendors: Optional[Mapping[str, ResourceDocument]] = None,
) -> str:
    ref = policy.supported_on_ref
    if not ref:
        return ""
    vendor, ref_id = split_prefixed(ref)
    if vendor is not None:
        vendor_resources = (vendors or {}).get(vendor.lower())
        text = resolve_string(vendor_resources, ref_id) if vendor_resources is not None else ""
        return text or resolve_string(resources, ref_id)

    definition = document.definition(ref)
    if definition is None:
        return UNKNOWN
    return resolve_string_ref(resources, definition.display_name_ref) or UNKNOWN


def resolve_category(policy: Policy, document: PolicyDocument, resources: ResourceDocument) -> str:
    ref = policy.parent_category_ref
    if not ref:
        return ""
    vendor, ref_id = split_prefixed(ref)
    if vendor is not None:
        return resolve_string(resources, ref_id)

    category = document.category(ref)
    if category is not None:
        return resolve_string_ref(resources, category.display_name_ref)

    # label stored directly under the category name
    return resources.raw_string(ref) or ""


def lookup_presentation(policy: Policy, resources: ResourceDocument) -> Optional[Presentation]:
    if not policy.presentation_ref:
        return None
    return resources.presentations.get(parse_presentation_ref(policy.presentation_ref))


def lookup_control(presentation: Optional[Presentation], element_id: str) -> Optional[PresentationControl]:
    if presentation is None or not element_id:
        return None
    return presentation.control_for(element_id)
