from datetime import datetime

import pytest
from sqlalchemy import func, select

from models import MediaKind, Nominee, Vote
from core.exceptions import NominationNotFound, NomineeNotFound, RoomNotFound, StorageFailure
from core.nomination_manager import NominationManager
from core.nominee_manager import NomineeManager
from core.room_manager import RoomManager
from core.vote_manager import VoteManager

OWNER = 100
STRANGER = 200


@pytest.fixture()
def party(db_session):
    room_id = RoomManager.create_room(db_session, OWNER, "Party", "pw1")
    nomination_id = NominationManager.create_nomination(db_session, room_id, "Best Dish")
    pizza_id = NomineeManager.create_nominee(db_session, nomination_id, "Pizza")
    sushi_id = NomineeManager.create_nominee(db_session, nomination_id, "Sushi")
    return room_id, nomination_id, pizza_id, sushi_id


def _vote_rows(db_session, **filters):
    stmt = select(Vote)
    for column, value in filters.items():
        stmt = stmt.where(getattr(Vote, column) == value)
    return db_session.scalars(stmt).all()


def test_get_room_by_credentials_requires_matching_password(db_session, party):
    room_id = party[0]

    room = RoomManager.get_room_by_credentials(db_session, room_id, "pw1")
    assert room.title == "Party"
    assert room.owner_user_id == OWNER
    assert room.created_at is not None

    with pytest.raises(RoomNotFound):
        RoomManager.get_room_by_credentials(db_session, room_id, "wrong")
    with pytest.raises(RoomNotFound):
        RoomManager.get_room_by_credentials(db_session, room_id + 1, "pw1")


def test_list_rooms_by_owner_newest_first(db_session):
    first = RoomManager.create_room(db_session, OWNER, "First", "a")
    second = RoomManager.create_room(db_session, OWNER, "Second", "b")
    RoomManager.create_room(db_session, STRANGER, "Other", "c")

    rooms = RoomManager.list_rooms_by_owner(db_session, OWNER)
    assert [room.id for room in rooms] == [second, first]
    assert RoomManager.list_rooms_by_owner(db_session, 999) == []


def test_duplicate_names_are_allowed(db_session, party):
    room_id, nomination_id, _, _ = party
    again = NominationManager.create_nomination(db_session, room_id, "Best Dish")
    assert again != nomination_id

    twin = NomineeManager.create_nominee(db_session, nomination_id, "Pizza")
    names = [n.name for n in NomineeManager.list_nominees(db_session, nomination_id)]
    assert names == ["Pizza", "Sushi", "Pizza"]
    assert twin == NomineeManager.list_nominees(db_session, nomination_id)[-1].id


def test_vote_upsert_keeps_single_row_with_last_write(db_session, party):
    _, nomination_id, pizza_id, sushi_id = party
    first_at = datetime(2025, 1, 1, 10, 0, 0)
    last_at = datetime(2025, 1, 1, 11, 30, 0)

    VoteManager.record_vote(db_session, "hash-a", nomination_id, pizza_id, first_at)
    VoteManager.record_vote(db_session, "hash-a", nomination_id, sushi_id, datetime(2025, 1, 1, 11, 0, 0))
    VoteManager.record_vote(db_session, "hash-a", nomination_id, pizza_id, last_at)

    rows = _vote_rows(db_session, user_hash="hash-a", nomination_id=nomination_id)
    assert len(rows) == 1
    assert rows[0].nominee_id == pizza_id
    assert rows[0].cast_at == last_at


def test_votes_from_different_users_are_separate_rows(db_session, party):
    _, nomination_id, pizza_id, sushi_id = party
    VoteManager.record_vote(db_session, "hash-a", nomination_id, pizza_id, datetime(2025, 1, 1))
    VoteManager.record_vote(db_session, "hash-b", nomination_id, sushi_id, datetime(2025, 1, 1))

    assert len(_vote_rows(db_session, nomination_id=nomination_id)) == 2


def test_results_order_by_votes_then_id_with_zero_counts(db_session, party):
    _, nomination_id, pizza_id, sushi_id = party
    pasta_id = NomineeManager.create_nominee(db_session, nomination_id, "Pasta")
    soup_id = NomineeManager.create_nominee(db_session, nomination_id, "Soup")
    now = datetime(2025, 1, 1)

    VoteManager.record_vote(db_session, "u1", nomination_id, pasta_id, now)
    VoteManager.record_vote(db_session, "u2", nomination_id, pasta_id, now)
    VoteManager.record_vote(db_session, "u3", nomination_id, sushi_id, now)
    VoteManager.record_vote(db_session, "u4", nomination_id, pizza_id, now)

    results = VoteManager.results_by_nomination(db_session, nomination_id)
    assert [(r.nominee_id, r.vote_count) for r in results] == [
        (pasta_id, 2),
        (pizza_id, 1),
        (sushi_id, 1),
        (soup_id, 0),
    ]
    # repeated calls are stable
    assert VoteManager.results_by_nomination(db_session, nomination_id) == results


def test_results_for_empty_nomination(db_session, party):
    room_id = party[0]
    empty_id = NominationManager.create_nomination(db_session, room_id, "Empty")
    assert VoteManager.results_by_nomination(db_session, empty_id) == []


def test_delete_nominee_removes_only_its_votes(db_session, party):
    _, nomination_id, pizza_id, sushi_id = party
    now = datetime(2025, 1, 1)
    VoteManager.record_vote(db_session, "u1", nomination_id, pizza_id, now)
    VoteManager.record_vote(db_session, "u2", nomination_id, pizza_id, now)
    VoteManager.record_vote(db_session, "u3", nomination_id, sushi_id, now)

    assert NomineeManager.delete_nominee(db_session, pizza_id) is True

    assert VoteManager.count_votes_for_nominee(db_session, pizza_id) == 0
    assert VoteManager.count_votes_for_nominee(db_session, sushi_id) == 1
    results = VoteManager.results_by_nomination(db_session, nomination_id)
    assert [(r.name, r.vote_count) for r in results] == [("Sushi", 1)]


def test_delete_nomination_cascades_to_nominees_and_votes(db_session, party):
    room_id, nomination_id, pizza_id, sushi_id = party
    other_nomination = NominationManager.create_nomination(db_session, room_id, "Best Drink")
    tea_id = NomineeManager.create_nominee(db_session, other_nomination, "Tea")
    now = datetime(2025, 1, 1)
    VoteManager.record_vote(db_session, "u1", nomination_id, pizza_id, now)
    VoteManager.record_vote(db_session, "u2", nomination_id, sushi_id, now)
    VoteManager.record_vote(db_session, "u1", other_nomination, tea_id, now)

    assert NominationManager.delete_nomination(db_session, nomination_id) is True

    remaining_nominees = db_session.scalar(
        select(func.count(Nominee.id)).where(Nominee.id.in_([pizza_id, sushi_id]))
    )
    assert remaining_nominees == 0
    assert _vote_rows(db_session, nomination_id=nomination_id) == []
    assert VoteManager.count_votes_for_nominee(db_session, tea_id) == 1


def test_deletes_are_idempotent(db_session, party):
    _, nomination_id, pizza_id, _ = party

    assert NomineeManager.delete_nominee(db_session, pizza_id) is True
    assert NomineeManager.delete_nominee(db_session, pizza_id) is False
    assert NominationManager.delete_nomination(db_session, nomination_id) is True
    assert NominationManager.delete_nomination(db_session, nomination_id) is False


def test_ownership_resolves_through_the_chain(db_session, party):
    room_id, nomination_id, pizza_id, _ = party

    assert RoomManager.is_owner(db_session, room_id, OWNER) is True
    assert NominationManager.is_owner(db_session, nomination_id, OWNER) is True
    assert NomineeManager.is_owner(db_session, pizza_id, OWNER) is True

    assert RoomManager.is_owner(db_session, room_id, STRANGER) is False
    assert NominationManager.is_owner(db_session, nomination_id, STRANGER) is False
    assert NomineeManager.is_owner(db_session, pizza_id, STRANGER) is False


def test_ownership_of_missing_entities_is_false(db_session, party):
    assert RoomManager.is_owner(db_session, 9999, OWNER) is False
    assert NominationManager.is_owner(db_session, 9999, OWNER) is False
    assert NomineeManager.is_owner(db_session, 9999, OWNER) is False

    pizza_id = party[2]
    NomineeManager.delete_nominee(db_session, pizza_id)
    assert NomineeManager.is_owner(db_session, pizza_id, OWNER) is False


def test_lookup_accessors_raise_not_found(db_session, party):
    room_id, nomination_id, pizza_id, _ = party

    assert RoomManager.get_room_title(db_session, room_id) == "Party"
    assert NominationManager.get_room_id(db_session, nomination_id) == room_id
    assert NominationManager.get_name(db_session, nomination_id) == "Best Dish"
    assert NomineeManager.get_name(db_session, pizza_id) == "Pizza"
    assert NomineeManager.get_nomination_and_room(db_session, pizza_id) == (nomination_id, room_id)

    with pytest.raises(RoomNotFound):
        RoomManager.get_room_title(db_session, 9999)
    with pytest.raises(RoomNotFound):
        NominationManager.list_nominations(db_session, 9999)
    with pytest.raises(NominationNotFound):
        NominationManager.get_room_id(db_session, 9999)
    with pytest.raises(NominationNotFound):
        NominationManager.get_name(db_session, 9999)
    with pytest.raises(NominationNotFound):
        NomineeManager.list_nominees(db_session, 9999)
    with pytest.raises(NomineeNotFound):
        NomineeManager.get_name(db_session, 9999)
    with pytest.raises(NomineeNotFound):
        NomineeManager.get_nomination_and_room(db_session, 9999)


def test_is_in_room(db_session, party):
    room_id, nomination_id, _, _ = party
    other_room = RoomManager.create_room(db_session, OWNER, "Other", "pw2")

    assert NominationManager.is_in_room(db_session, nomination_id, room_id) is True
    assert NominationManager.is_in_room(db_session, nomination_id, other_room) is False


def test_media_can_be_replaced(db_session, party):
    pizza_id = party[2]

    assert NomineeManager.update_media(db_session, pizza_id, "photo-1", MediaKind.PHOTO) is True
    assert NomineeManager.update_media(db_session, pizza_id, "video-1", MediaKind.VIDEO) is True
    assert NomineeManager.update_media(db_session, 9999, "photo-2", MediaKind.PHOTO) is False

    db_session.expire_all()
    nominee = db_session.get(Nominee, pizza_id)
    assert nominee.media_file_id == "video-1"
    assert nominee.media_kind is MediaKind.VIDEO


@pytest.mark.parametrize(
    "create",
    [
        lambda db, room_id, nomination_id: RoomManager.create_room(db, OWNER, "", "pw"),
        lambda db, room_id, nomination_id: NominationManager.create_nomination(db, room_id, ""),
        lambda db, room_id, nomination_id: NomineeManager.create_nominee(db, nomination_id, ""),
    ],
)
def test_empty_names_are_rejected_by_the_schema(db_session, party, create):
    room_id, nomination_id, _, _ = party

    with pytest.raises(StorageFailure):
        create(db_session, room_id, nomination_id)

    # rollback 之後 session 仍可用
    assert RoomManager.get_room_title(db_session, room_id) == "Party"
