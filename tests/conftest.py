"""
Pytest configuration and shared fixtures.
"""

import shutil
from pathlib import Path
from xml.etree import ElementTree as et

import pytest

from admx_csv.loader import (
    load_policy_document,
    load_resource_document,
    parse_policy_document,
    parse_resource_document,
)

NAMESPACE = "http://schemas.microsoft.com/GroupPolicy/2006/07/PolicyDefinitions"


@pytest.fixture
def fixtures_dir():
    """Return path to test fixtures directory."""
    return Path(__file__).parent / "fixtures"


@pytest.fixture
def definitions_dir(fixtures_dir, tmp_path):
    """Copy the sample PolicyDefinitions tree into a scratch directory."""
    target = tmp_path / "PolicyDefinitions"
    shutil.copytree(fixtures_dir / "PolicyDefinitions", target)
    return target


@pytest.fixture
def contoso_document(fixtures_dir):
    return load_policy_document(fixtures_dir / "PolicyDefinitions" / "Contoso.admx")


@pytest.fixture
def contoso_resources(fixtures_dir):
    return load_resource_document(fixtures_dir / "PolicyDefinitions" / "en-US" / "Contoso.adml")


@pytest.fixture
def windows_resources(fixtures_dir):
    return load_resource_document(fixtures_dir / "PolicyDefinitions" / "en-US" / "Windows.adml")


@pytest.fixture
def make_document():
    """Build a PolicyDocument from the inner XML of <policyDefinitions>."""

    def build(body: str, name: str = "Test.admx"):
        root = et.fromstring(f'<policyDefinitions xmlns="{NAMESPACE}">{body}</policyDefinitions>')
        return parse_policy_document(root, name=name)

    return build


@pytest.fixture
def make_resources():
    """Build a ResourceDocument from string entries and presentation XML."""

    def build(strings=None, presentations: str = "", name: str = "Test.adml"):
        entries = "".join(f'<string id="{key}">{value}</string>' for key, value in (strings or {}).items())
        root = et.fromstring(
            f'<policyDefinitionResources xmlns="{NAMESPACE}"><resources>'
            f"<stringTable>{entries}</stringTable>"
            f"<presentationTable>{presentations}</presentationTable>"
            f"</resources></policyDefinitionResources>"
        )
        return parse_resource_document(root, name=name)

    return build
