import pytest

from quoteportal.auth.gate import ANONYMOUS, AuthorizationGate, Caller, Role
from quoteportal.errors import Forbidden, Unauthorized


def test_claims_without_subject_resolve_to_anonymous(gate):
    assert gate.resolve(None) is ANONYMOUS
    assert gate.resolve({"email": "x@example.com"}) is ANONYMOUS


def test_role_claim_grants_administrator(gate):
    caller = gate.resolve({"sub": "u1", "email": "ops@example.com", "app_metadata": {"role": "admin"}})
    assert caller.role == Role.ADMINISTRATOR
    assert caller.is_admin
    assert caller.user_id == "u1"


def test_role_claim_may_be_a_list(gate):
    caller = gate.resolve({"sub": "u1", "app_metadata": {"role": ["staff", "admin"]}})
    assert caller.is_admin


def test_email_alone_does_not_make_an_administrator(gate):
    caller = gate.resolve({"sub": "u1", "email": "admin@example.com"})
    assert caller.role == Role.CUSTOMER


def test_claim_path_and_role_name_are_configurable():
    gate = AuthorizationGate(role_claim="roles", admin_role="quote-admin")
    assert gate.resolve({"sub": "u1", "roles": ["quote-admin"]}).is_admin
    assert not gate.resolve({"sub": "u2", "app_metadata": {"role": "admin"}}).is_admin


def test_require_role_orders_roles(gate, alice, admin):
    assert gate.require_role(alice, Role.CUSTOMER) is alice
    assert gate.require_role(admin, Role.CUSTOMER) is admin
    with pytest.raises(Unauthorized):
        gate.require_role(ANONYMOUS, Role.CUSTOMER)
    with pytest.raises(Unauthorized):
        gate.require_role(alice, Role.ADMINISTRATOR)


def test_require_administrator_distinguishes_anonymous_from_customer(gate, alice, admin):
    with pytest.raises(Unauthorized):
        gate.require_administrator(ANONYMOUS)
    with pytest.raises(Forbidden):
        gate.require_administrator(alice)
    assert gate.require_administrator(admin) is admin


def test_require_owner_or_admin(gate, alice, bob, admin):
    assert gate.require_owner_or_admin(alice, "user-alice") is alice
    assert gate.require_owner_or_admin(admin, "user-alice") is admin
    with pytest.raises(Forbidden):
        gate.require_owner_or_admin(bob, "user-alice")
    with pytest.raises(Forbidden):
        gate.require_owner_or_admin(alice, None)
    with pytest.raises(Unauthorized):
        gate.require_owner_or_admin(ANONYMOUS, "user-alice")


def test_caller_flags():
    assert not ANONYMOUS.is_authenticated
    assert Caller(role=Role.CUSTOMER, user_id="u").is_authenticated
