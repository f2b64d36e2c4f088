"""Request Schemas — stripping, length limits and slug format."""

from uuid import uuid4

import pytest
from pydantic import ValidationError

from mirrio.schemas.admin import EditionCreate, EditionUpdate, StatementCreate
from mirrio.schemas.group import CommentCreate, GroupCreate, GroupRename
from mirrio.schemas.round import VoteCreate


def test_group_name_is_stripped():
    body = GroupCreate(name="  Book club ", edition_id=uuid4())
    assert body.name == "Book club"


@pytest.mark.parametrize("name", ["", "   ", "x" * 101])
def test_group_name_rejected(name):
    with pytest.raises(ValidationError):
        GroupRename(name=name)


def test_vote_defaults_to_abstain():
    assert VoteCreate().target_user_id is None
    assert VoteCreate(target_user_id=None).target_user_id is None


def test_vote_target_must_be_uuid():
    with pytest.raises(ValidationError):
        VoteCreate(target_user_id="bob")


def test_comment_limits():
    assert CommentCreate(text="  lol ").text == "lol"
    with pytest.raises(ValidationError):
        CommentCreate(text="x" * 2001)
    with pytest.raises(ValidationError):
        CommentCreate(text="  ")


@pytest.mark.parametrize("slug", ["classic", "after-dark", "2026-edition"])
def test_valid_slugs(slug):
    assert EditionCreate(name="E", slug=slug).slug == slug


@pytest.mark.parametrize("slug", ["Classic", "-leading", "with space", ""])
def test_invalid_slugs(slug):
    with pytest.raises(ValidationError):
        EditionCreate(name="E", slug=slug)


def test_edition_update_is_partial():
    assert EditionUpdate(active=False).model_dump(exclude_unset=True) == {"active": False}


def test_statement_text_stripped_and_required():
    assert StatementCreate(text=" Who? ", edition_id=uuid4()).text == "Who?"
    with pytest.raises(ValidationError):
        StatementCreate(text="   ", edition_id=uuid4())
