"""Tests for the address book, in particular the one-default-per-type rule."""
from __future__ import annotations

import pytest
from sqlalchemy import select

import address_service
import models
from errors import NotFoundError
from schemas import AuthContext, CreateAddressInput, UpdateAddressInput
from tests.helpers import ctx_for


def _address_input(**overrides) -> CreateAddressInput:
    values = {
        "type": "shipping",
        "first_name": "John",
        "last_name": "Doe",
        "street_address": "123 Main St",
        "city": "Springfield",
        "state": "IL",
        "postal_code": "62701",
        "country": "US",
    }
    values.update(overrides)
    return CreateAddressInput(**values)


def _defaults(session, user_id: int, address_type: str):
    return session.scalars(
        select(models.UserAddress.id).where(
            models.UserAddress.user_id == user_id,
            models.UserAddress.type == address_type,
            models.UserAddress.is_default.is_(True),
        )
    ).all()


class TestCreateAddress:
    def test_creates_address(self, session, make_user) -> None:
        user = make_user()

        address = address_service.create_address(session, _address_input(phone="555-0100"), ctx_for(user))

        assert address.user_id == user.id
        assert address.phone == "555-0100"
        assert address.is_default is False

    def test_new_default_replaces_old_default_of_same_type(self, session, make_user) -> None:
        user = make_user()
        old = address_service.create_address(session, _address_input(is_default=True), ctx_for(user))
        billing = address_service.create_address(
            session, _address_input(type="billing", is_default=True), ctx_for(user)
        )

        new = address_service.create_address(
            session, _address_input(street_address="9 Elm St", is_default=True), ctx_for(user)
        )

        assert _defaults(session, user.id, "shipping") == [new.id]
        assert _defaults(session, user.id, "billing") == [billing.id]
        session.refresh(old)
        assert old.is_default is False

    def test_defaults_of_other_users_untouched(self, session, make_user) -> None:
        alice, bob = make_user(), make_user()
        bobs = address_service.create_address(session, _address_input(is_default=True), ctx_for(bob))

        address_service.create_address(session, _address_input(is_default=True), ctx_for(alice))

        assert _defaults(session, bob.id, "shipping") == [bobs.id]

    def test_unknown_user(self, session) -> None:
        with pytest.raises(NotFoundError, match="User not found"):
            address_service.create_address(
                session, _address_input(), AuthContext(user_id=999, role="customer")
            )


class TestGetUserAddresses:
    def test_defaults_first_and_only_own(self, session, make_user) -> None:
        user, other = make_user(), make_user()
        plain = address_service.create_address(session, _address_input(), ctx_for(user))
        default = address_service.create_address(
            session, _address_input(type="billing", is_default=True), ctx_for(user)
        )
        address_service.create_address(session, _address_input(), ctx_for(other))

        result = address_service.get_user_addresses(session, ctx_for(user))

        assert [a.id for a in result] == [default.id, plain.id]


class TestUpdateAddress:
    def test_setting_default_flips_previous_default(self, session, make_user) -> None:
        user = make_user()
        first = address_service.create_address(session, _address_input(is_default=True), ctx_for(user))
        second = address_service.create_address(session, _address_input(), ctx_for(user))
        billing = address_service.create_address(
            session, _address_input(type="billing", is_default=True), ctx_for(user)
        )

        address_service.update_address(
            session, UpdateAddressInput(id=second.id, is_default=True), ctx_for(user)
        )

        assert _defaults(session, user.id, "shipping") == [second.id]
        assert _defaults(session, user.id, "billing") == [billing.id]
        session.refresh(first)
        assert first.is_default is False

    def test_default_uses_resulting_type(self, session, make_user) -> None:
        user = make_user()
        billing = address_service.create_address(
            session, _address_input(type="billing", is_default=True), ctx_for(user)
        )
        shipping = address_service.create_address(
            session, _address_input(type="shipping"), ctx_for(user)
        )

        address_service.update_address(
            session, UpdateAddressInput(id=shipping.id, type="billing", is_default=True), ctx_for(user)
        )

        assert _defaults(session, user.id, "billing") == [shipping.id]
        session.refresh(billing)
        assert billing.is_default is False

    def test_moving_default_to_other_type_displaces_its_default(self, session, make_user) -> None:
        user = make_user()
        billing = address_service.create_address(
            session, _address_input(type="billing", is_default=True), ctx_for(user)
        )
        shipping = address_service.create_address(
            session, _address_input(is_default=True), ctx_for(user)
        )

        address_service.update_address(
            session, UpdateAddressInput(id=shipping.id, type="billing"), ctx_for(user)
        )

        assert _defaults(session, user.id, "billing") == [shipping.id]
        assert _defaults(session, user.id, "shipping") == []
        session.refresh(billing)
        assert billing.is_default is False

    def test_editing_default_keeps_it_default(self, session, make_user) -> None:
        user = make_user()
        address = address_service.create_address(session, _address_input(is_default=True), ctx_for(user))

        updated = address_service.update_address(
            session, UpdateAddressInput(id=address.id, city="Chicago"), ctx_for(user)
        )

        assert updated.is_default is True
        assert _defaults(session, user.id, "shipping") == [address.id]

    def test_partial_update_and_phone_clear(self, session, make_user) -> None:
        user = make_user()
        address = address_service.create_address(session, _address_input(phone="555"), ctx_for(user))

        updated = address_service.update_address(
            session, UpdateAddressInput(id=address.id, city="Chicago", phone=None), ctx_for(user)
        )

        assert updated.city == "Chicago"
        assert updated.phone is None
        assert updated.street_address == "123 Main St"

    def test_no_fields_returns_unchanged_row(self, session, make_user) -> None:
        user = make_user()
        address = address_service.create_address(session, _address_input(), ctx_for(user))

        updated = address_service.update_address(session, UpdateAddressInput(id=address.id), ctx_for(user))

        assert updated.id == address.id
        assert updated.city == "Springfield"

    def test_other_users_address(self, session, make_user) -> None:
        owner, intruder = make_user(), make_user()
        address = address_service.create_address(session, _address_input(), ctx_for(owner))

        with pytest.raises(NotFoundError, match="Address not found or access denied"):
            address_service.update_address(
                session, UpdateAddressInput(id=address.id, city="X"), ctx_for(intruder)
            )


class TestDeleteAddress:
    def test_delete_own(self, session, make_user) -> None:
        user = make_user()
        address = address_service.create_address(session, _address_input(), ctx_for(user))
        address_id = address.id

        assert address_service.delete_address(session, address_id, ctx_for(user)) is True
        assert session.get(models.UserAddress, address_id) is None

    def test_delete_other_users_returns_false(self, session, make_user) -> None:
        owner, intruder = make_user(), make_user()
        address = address_service.create_address(session, _address_input(), ctx_for(owner))

        assert address_service.delete_address(session, address.id, ctx_for(intruder)) is False
        session.expire_all()
        assert session.get(models.UserAddress, address.id) is not None

    def test_delete_missing_returns_false(self, session, make_user) -> None:
        assert address_service.delete_address(session, 999, ctx_for(make_user())) is False
