"""
Tests for string, supported-on, category and presentation resolution.
"""

import pytest

from admx_csv.documents import Policy
from admx_csv.errors import ReferenceSyntaxError
from admx_csv.resolve import (
    UNKNOWN,
    lookup_control,
    lookup_presentation,
    resolve_category,
    resolve_string,
    resolve_string_ref,
    resolve_supported_on,
)


class TestStringResolver:
    """Tests for string table lookups."""

    def test_found(self, contoso_resources):
        assert resolve_string(contoso_resources, "Mode_B") == "Beta"

    def test_not_found_is_empty(self, contoso_resources):
        assert resolve_string(contoso_resources, "DoesNotExist") == ""

    def test_reference(self, contoso_resources):
        assert resolve_string_ref(contoso_resources, "$(string.Settings)") == "App settings"

    def test_malformed_reference(self, contoso_resources):
        with pytest.raises(ReferenceSyntaxError):
            resolve_string_ref(contoso_resources, "$(string.Settings")


class TestSupportedOnResolver:
    """Tests for the three-tier supported-on lookup."""

    def test_vendor_reference(self, contoso_document, contoso_resources, windows_resources):
        """A vendor prefix resolves against that vendor's string table."""
        policy = contoso_document.policies[0]

        text = resolve_supported_on(policy, contoso_document, contoso_resources, {"windows": windows_resources})

        assert text == "At least Windows 7"

    def test_vendor_key_is_case_insensitive(self, contoso_document, contoso_resources, windows_resources):
        policy = Policy(name="P", supported_on_ref="WINDOWS:SUPPORTED_Windows7")

        text = resolve_supported_on(policy, contoso_document, contoso_resources, {"windows": windows_resources})

        assert text == "At least Windows 7"

    def test_unknown_vendor_uses_local_table(self, contoso_document, contoso_resources):
        """Without a loaded vendor document the local string table is used."""
        policy = Policy(name="P", supported_on_ref="products:SUPPORTED_App2")

        assert resolve_supported_on(policy, contoso_document, contoso_resources, {}) == "Contoso App 2.0 or later"

    def test_vendor_miss_falls_back_to_local(self, contoso_document, contoso_resources, windows_resources):
        """An id missing from the vendor table is retried locally."""
        policy = Policy(name="P", supported_on_ref="windows:SUPPORTED_App2")

        text = resolve_supported_on(policy, contoso_document, contoso_resources, {"windows": windows_resources})

        assert text == "Contoso App 2.0 or later"

    def test_vendor_miss_everywhere_is_empty(self, contoso_document, contoso_resources, windows_resources):
        policy = Policy(name="P", supported_on_ref="windows:SUPPORTED_Nowhere")

        assert resolve_supported_on(policy, contoso_document, contoso_resources, {"windows": windows_resources}) == ""

    def test_local_definition(self, contoso_document, contoso_resources):
        """A bare name resolves through the document's own definitions."""
        policy = contoso_document.policies[1]

        assert resolve_supported_on(policy, contoso_document, contoso_resources) == "Contoso App 2.0 or later"

    def test_missing_definition_is_unknown(self, contoso_document, contoso_resources):
        policy = Policy(name="P", supported_on_ref="SUPPORTED_Nope")

        assert resolve_supported_on(policy, contoso_document, contoso_resources) == UNKNOWN

    def test_unnamed_definition_is_unknown(self, contoso_document, contoso_resources):
        """A definition whose display string is missing also yields the sentinel."""
        policy = Policy(name="P", supported_on_ref="SUPPORTED_Unnamed")

        assert resolve_supported_on(policy, contoso_document, contoso_resources) == "*unknown*"

    def test_no_reference(self, contoso_document, contoso_resources):
        assert resolve_supported_on(Policy(name="P"), contoso_document, contoso_resources) == ""

    def test_idempotent(self, contoso_document, contoso_resources, windows_resources):
        vendors = {"windows": windows_resources}
        for policy in contoso_document.policies:
            first = resolve_supported_on(policy, contoso_document, contoso_resources, vendors)
            second = resolve_supported_on(policy, contoso_document, contoso_resources, vendors)
            assert first == second

    def test_malformed_definition_display_name(self, make_document, contoso_resources):
        document = make_document(
            '<supportedOn><definitions><definition name="S" displayName="S_Text"/></definitions></supportedOn>'
        )

        with pytest.raises(ReferenceSyntaxError):
            resolve_supported_on(Policy(name="P", supported_on_ref="S"), document, contoso_resources)


class TestCategoryResolver:
    """Tests for parent category lookups."""

    def test_local_category(self, contoso_document, contoso_resources):
        policy = contoso_document.policies[0]

        assert resolve_category(policy, contoso_document, contoso_resources) == "Contoso App"

    def test_prefixed_reference_is_a_string_id(self, contoso_document, make_resources):
        resources = make_resources({"WindowsComponents": "Windows Components"})
        policy = Policy(name="P", parent_category_ref="windows:WindowsComponents")

        assert resolve_category(policy, contoso_document, resources) == "Windows Components"

    def test_direct_string_uses_raw_text(self, contoso_document, make_resources):
        """A name outside the category tree is looked up as a string id, text kept raw."""
        resources = make_resources({"LooseCategory": "  Loose category "})
        policy = Policy(name="P", parent_category_ref="LooseCategory")

        assert resolve_category(policy, contoso_document, resources) == "  Loose category "

    @pytest.mark.parametrize("ref", ["", "Nowhere", "windows:Nowhere"])
    def test_unresolvable_is_empty(self, contoso_document, contoso_resources, ref):
        policy = Policy(name="P", parent_category_ref=ref)

        assert resolve_category(policy, contoso_document, contoso_resources) == ""


class TestPresentationLookup:
    """Tests for joining elements to presentation controls."""

    def test_control_found(self, contoso_document, contoso_resources):
        presentation = lookup_presentation(contoso_document.policies[1], contoso_resources)

        assert presentation.id == "Settings"
        assert lookup_control(presentation, "Mode").label == "Mode"

    def test_missing_control(self, contoso_document, contoso_resources):
        presentation = lookup_presentation(contoso_document.policies[1], contoso_resources)

        assert lookup_control(presentation, "Nope") is None

    def test_no_presentation(self, contoso_document, contoso_resources):
        assert lookup_presentation(contoso_document.policies[0], contoso_resources) is None
        assert lookup_control(None, "Mode") is None

    def test_unknown_fragment(self, contoso_resources):
        policy = Policy(name="P", presentation_ref="$(presentation.Nope)")

        assert lookup_presentation(policy, contoso_resources) is None

    def test_malformed_presentation_reference(self, contoso_resources):
        policy = Policy(name="P", presentation_ref="Settings")

        with pytest.raises(ReferenceSyntaxError):
            lookup_presentation(policy, contoso_resources)
