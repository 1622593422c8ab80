"""
Tests for AccessPolicy – read/write tiers and the allow-list membership test.
"""

import pytest

from pgwarden._types import Identity, Permission
from pgwarden.auth import AccessPolicy
from pgwarden.errors import AuthorizationError


def test_any_identity_can_read(access_policy: AccessPolicy, reader: Identity):
    assert access_policy.can_read(reader)
    assert access_policy.permissions(reader) == {Permission.READ}


def test_allow_listed_identity_can_write(access_policy: AccessPolicy, writer: Identity):
    assert access_policy.can_write(writer)
    assert access_policy.permissions(writer) == {Permission.READ, Permission.WRITE}
    access_policy.require_write(writer)


def test_non_allow_listed_identity_cannot_write(access_policy: AccessPolicy, reader: Identity):
    assert not access_policy.can_write(reader)
    with pytest.raises(AuthorizationError, match="reader"):
        access_policy.require_write(reader)


def test_missing_identity_has_no_permissions(access_policy: AccessPolicy):
    assert not access_policy.can_read(None)
    assert not access_policy.can_write(None)
    assert access_policy.permissions(None) == frozenset()
    with pytest.raises(AuthorizationError):
        access_policy.require_read(None)


def test_membership_is_exact_and_case_sensitive(access_policy: AccessPolicy):
    assert not access_policy.can_write(Identity(login="OctoCat"))
    assert not access_policy.can_write(Identity(login=" octocat"))


def test_allow_list_is_injected_per_instance(writer: Identity):
    assert not AccessPolicy(set()).can_write(writer)
    assert AccessPolicy(["someone", "octocat"]).can_write(writer)


def test_authorization_error_is_a_permission_error(access_policy: AccessPolicy, reader: Identity):
    with pytest.raises(PermissionError):
        access_policy.require_write(reader)
