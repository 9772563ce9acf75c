"""Unit tests for catalog/tenants.py -- email domain to institution resolution."""

from unittest.mock import MagicMock

import pytest

from catalog.tenants import TenantResolver, email_domain


@pytest.mark.parametrize(
    "email, expected",
    [
        ("ada@mit.edu", "mit.edu"),
        ("Ada@MIT.Edu", "mit.edu"),
        ("odd@name@mit.edu", "name@mit.edu"),
        ("no-at-sign", ""),
    ],
)
def test_email_domain(email, expected):
    assert email_domain(email) == expected


def test_resolves_matching_institution(store, institution):
    result = TenantResolver(store).resolve_institution_for_email("grace@mit.edu")
    assert result.ok
    assert result.data.id == institution.id


def test_unknown_domain_is_institution_not_found(store, institution):
    result = TenantResolver(store).resolve_institution_for_email("grace@stanford.edu")
    assert result.status == "fail"
    assert result.code == 1000
    assert result.message == "institution not found"


def test_subdomain_does_not_match(store, institution):
    result = TenantResolver(store).resolve_institution_for_email("grace@cs.mit.edu")
    assert result.code == 1000


def test_store_failure_passes_through_without_code():
    broken = MagicMock()
    broken.find_one_institution.side_effect = RuntimeError("database is locked")
    result = TenantResolver(broken).resolve_institution_for_email("grace@mit.edu")
    assert result.status == "fail"
    assert result.code is None
    assert result.message == "database is locked"
