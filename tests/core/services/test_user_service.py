"""Tests for UserService - account creation steps, role change, removal."""

from unittest.mock import Mock, call
from uuid import uuid4

import pytest

from clients.auth_gateway_client import AuthAccount, AuthGatewayClient, AuthGatewayError
from clients.postgres_client import StoreError
from core.models import UserCreate
from core.models.user import AppRole
from core.services.user_service import PartialUserCreationError, UserService
from utils.timezone import now_utc

REDIRECT = "https://backoffice.example.fr/login"


@pytest.fixture
def gateway():
    return Mock(spec=AuthGatewayClient)


@pytest.fixture
def user_service(db, gateway, changes):
    return UserService(db, gateway, changes, REDIRECT)


@pytest.fixture
def new_user():
    return UserCreate(email="claire@toiture.fr", password="secret123", full_name="Claire Martin", role=AppRole.SECRETAIRE)


def _profile_row(account_id, email="claire@toiture.fr"):
    now = now_utc()
    return {"id": account_id, "email": email, "full_name": "Claire Martin", "created_at": now, "updated_at": now}


class TestCreateUser:

    def test_runs_three_steps_in_order(self, db, gateway, changes, user_service, new_user):
        account_id = uuid4()
        gateway.sign_up.return_value = AuthAccount(id=account_id, email=new_user.email)
        db.execute_returning.return_value = [_profile_row(account_id)]

        user = user_service.create_user(new_user)

        gateway.sign_up.assert_called_once_with(
            email="claire@toiture.fr",
            password="secret123",
            full_name="Claire Martin",
            redirect_to=REDIRECT,
        )
        profile_params = db.execute_returning.call_args[0][1]
        assert profile_params[0] == account_id
        role_sql, role_params = db.execute.call_args[0]
        assert "INSERT INTO user_roles" in role_sql
        assert role_params[1:3] == (account_id, "secretaire")
        assert user.id == account_id
        assert user.role == AppRole.SECRETAIRE
        assert changes.published.call_args_list == [
            call("profiles", "insert", account_id),
            call("user_roles", "insert", account_id),
        ]

    def test_refused_sign_up_creates_nothing(self, db, gateway, user_service, new_user):
        gateway.sign_up.side_effect = AuthGatewayError("User already registered", 422)

        with pytest.raises(AuthGatewayError):
            user_service.create_user(new_user)

        db.execute_returning.assert_not_called()
        db.execute.assert_not_called()

    def test_profile_failure_names_the_step(self, db, gateway, user_service, new_user):
        account_id = uuid4()
        gateway.sign_up.return_value = AuthAccount(id=account_id, email=new_user.email)
        db.execute_returning.side_effect = StoreError("duplicate key value violates unique constraint")

        with pytest.raises(PartialUserCreationError) as exc_info:
            user_service.create_user(new_user)

        assert exc_info.value.step == "profile"
        assert exc_info.value.account_id == account_id
        assert "duplicate key" in exc_info.value.message
        db.execute.assert_not_called()

    def test_role_failure_names_the_step(self, db, gateway, user_service, new_user):
        account_id = uuid4()
        gateway.sign_up.return_value = AuthAccount(id=account_id, email=new_user.email)
        db.execute_returning.return_value = [_profile_row(account_id)]
        db.execute.side_effect = StoreError("permission denied for table user_roles")

        with pytest.raises(PartialUserCreationError) as exc_info:
            user_service.create_user(new_user)

        assert exc_info.value.step == "role"


class TestChangeRole:

    def test_deletes_then_inserts(self, db, changes, user_service):
        user_id = uuid4()

        user_service.change_role(user_id, AppRole.ADMIN)

        first, second = db.execute.call_args_list
        assert first[0][0].startswith("DELETE FROM user_roles")
        assert "INSERT INTO user_roles" in second[0][0]
        assert second[0][1][1:3] == (user_id, "admin")
        changes.published.assert_called_once_with("user_roles", "update", user_id)

    def test_failed_insert_propagates(self, db, user_service):
        db.execute.side_effect = [[], StoreError("insert refused")]

        with pytest.raises(StoreError):
            user_service.change_role(uuid4(), "lecteur")


class TestDeleteUser:

    def test_removes_role_then_profile(self, db, user_service):
        user_id = uuid4()

        user_service.delete_user(user_id)

        statements = [c[0][0] for c in db.execute.call_args_list]
        assert statements[0].startswith("DELETE FROM user_roles")
        assert statements[1].startswith("DELETE FROM profiles")


class TestListUsers:

    def test_missing_role_reads_as_lecteur(self, db, user_service):
        row = {**_profile_row(uuid4()), "role": "lecteur"}
        db.execute.return_value = [row]

        users = user_service.list_users()

        sql, params = db.execute.call_args[0]
        assert "LEFT JOIN user_roles" in sql
        assert "COALESCE(r.role, %s)" in sql
        assert params == ("lecteur",)
        assert users[0].role == AppRole.LECTEUR

    def test_search_and_role_filter(self, db, user_service):
        db.execute.return_value = []

        user_service.list_users(search="claire", role="admin")

        _, params = db.execute.call_args[0]
        assert params == ("lecteur", "%claire%", "%claire%", "lecteur", "admin")
