"""
Tests for the Identity & Role Registry

Verifies:
- First registrant becomes admin, later ones analysts
- Duplicate registration is rejected
- Profile visibility (self vs. admin)
- Admin-only role management
"""

import logging

import pytest

from errors import AlreadyExists, Forbidden, InvalidArgument, NotFound, Unauthenticated
from models import Role


async def test_first_registrant_becomes_admin(registry):
    first = await registry.register_self("a", "Alice")
    second = await registry.register_self("b", "Bob")
    third = await registry.register_self("c", "Carol")

    assert first.role == Role.ADMIN
    assert second.role == Role.ANALYST
    assert third.role == Role.ANALYST


async def test_duplicate_registration_fails(registry):
    await registry.register_self("a", "Alice")
    with pytest.raises(AlreadyExists):
        await registry.register_self("a", "Alice again")

    profile = await registry.get_profile("a", "a")
    assert profile.name == "Alice"


async def test_register_requires_name(registry):
    with pytest.raises(InvalidArgument):
        await registry.register_self("a", "  ")
    assert await registry.get_profile("a", "a") is None


async def test_own_profile_lookup_works_unregistered(registry):
    assert await registry.get_profile("nobody", "nobody") is None

    with pytest.raises(NotFound):
        await registry.get_my_profile("nobody")
    with pytest.raises(NotFound):
        await registry.get_my_profile(None)


async def test_profile_of_another_identity(registry, operators):
    admin, analyst = operators

    profile = await registry.get_profile(admin, analyst)
    assert profile.name == "Bob"
    assert await registry.get_profile(admin, "ghost") is None

    with pytest.raises(Forbidden):
        await registry.get_profile(analyst, admin)
    with pytest.raises(Unauthenticated):
        await registry.get_profile("stranger", admin)


async def test_is_caller_admin(registry, operators):
    admin, analyst = operators
    assert await registry.is_caller_admin(admin) is True
    assert await registry.is_caller_admin(analyst) is False
    assert await registry.is_caller_admin("stranger") is False
    assert await registry.is_caller_admin(None) is False


async def test_list_profiles_in_registration_order(registry, operators):
    admin, analyst = operators
    await registry.register_self("c", "Carol")

    profiles = await registry.list_profiles(admin)
    assert [p.identity for p in profiles] == [admin, analyst, "c"]

    with pytest.raises(Forbidden):
        await registry.list_profiles(analyst)
    with pytest.raises(Unauthenticated):
        await registry.list_profiles("stranger")


async def test_admin_promotes_analyst(registry, operators):
    admin, analyst = operators

    await registry.set_role(admin, analyst, "admin")

    profile = await registry.get_profile(analyst, analyst)
    assert profile.role == Role.ADMIN
    assert profile.name == "Bob"


async def test_set_role_rules(registry, operators):
    admin, analyst = operators

    with pytest.raises(Forbidden):
        await registry.set_role(analyst, analyst, Role.ADMIN)
    with pytest.raises(Unauthenticated):
        await registry.set_role("stranger", analyst, Role.ADMIN)
    with pytest.raises(NotFound):
        await registry.set_role(admin, "ghost", Role.ANALYST)
    with pytest.raises(InvalidArgument):
        await registry.set_role(admin, analyst, "superuser")

    assert (await registry.get_profile(analyst, analyst)).role == Role.ANALYST


async def test_set_role_keeps_other_fields(registry, operators):
    admin, analyst = operators
    before = await registry.get_profile(analyst, analyst)

    await registry.set_role(admin, analyst, Role.ADMIN)

    after = await registry.get_profile(analyst, analyst)
    assert after.name == before.name
    assert after.created_at == before.created_at


async def test_last_admin_self_demotion_is_logged(registry, operators, caplog):
    admin, _ = operators

    with caplog.at_level(logging.WARNING):
        await registry.set_role(admin, admin, Role.ANALYST)

    assert (await registry.get_profile(admin, admin)).role == Role.ANALYST
    assert "no administrators remain" in caplog.text
