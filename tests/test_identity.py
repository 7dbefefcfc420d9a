"""Tests for building the acting identity from a signed-in user."""

import pytest

from job_desk.database.models import User
from job_desk.identity import Identity, identity_for


def test_identity_from_authenticated_user(repo, tech_user):
    user = repo.authenticate_user("tech@acme.test", "1234")
    identity = identity_for(user)
    assert identity == Identity(user_id=tech_user.id,
                                company_id=tech_user.company_id)


def test_unsaved_user_rejected():
    with pytest.raises(ValueError):
        identity_for(User(company_id=1))


def test_identity_is_immutable(identity):
    with pytest.raises(AttributeError):
        identity.user_id = 99
