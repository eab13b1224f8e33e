from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest

from ethervote.errors import AlreadyVotedError, DuplicateIdentifierError, NotFoundError
from ethervote.models import VoteRecord
from ethervote.storage import MemoryStorage


def _vote(voter, candidate, tx="0xabc") -> VoteRecord:
    return VoteRecord(
        voter_id=voter.voter_id,
        candidate_id=candidate.id,
        district_id=candidate.district_id,
        constituency_id=candidate.constituency_id,
        transaction_hash=tx,
    )


def test_add_district_rejects_duplicate_name() -> None:
    store = MemoryStorage()
    store.add_district("Central District", ["North Central"])

    with pytest.raises(DuplicateIdentifierError):
        store.add_district("Central District", ["South Central"])


def test_constituency_lookup_is_scoped_to_district() -> None:
    store = MemoryStorage()
    central = store.add_district("Central District", ["North Central", "Shared"])
    eastern = store.add_district("Eastern District", ["East Hills", "Shared"])

    found = store.find_constituency(central.id, "Shared")

    assert found is not None and found.district_id == central.id
    assert store.find_constituency(eastern.id, "North Central") is None
    assert [d.name for d in store.list_districts()] == ["Central District", "Eastern District"]


def test_insert_voter_rejects_duplicate_email_and_voter_id(make_voter, storage) -> None:
    voter = make_voter(voter_id="V1", email="a@x.com")

    with pytest.raises(DuplicateIdentifierError) as email_clash:
        storage.insert_voter(voter.model_copy(update={"id": "", "voter_id": "V2"}))
    with pytest.raises(DuplicateIdentifierError) as id_clash:
        storage.insert_voter(voter.model_copy(update={"id": "", "email": "b@x.com"}))

    assert email_clash.value.details["field"] == "email"
    assert id_clash.value.details["field"] == "voter_id"


def test_returned_records_are_copies(make_candidate, storage) -> None:
    candidate = make_candidate("Alex Johnson")
    candidate.vote_count = 99

    assert storage.get_candidate(candidate.id).vote_count == 0


def test_record_vote_applies_all_effects(make_voter, make_candidate, storage) -> None:
    voter = make_voter()
    candidate = make_candidate("Alex Johnson")

    stored = storage.record_vote(_vote(voter, candidate))

    assert stored.id
    assert storage.get_voter(voter.voter_id).has_voted is True
    assert storage.get_candidate(candidate.id).vote_count == 1
    assert storage.get_vote_for_voter(voter.voter_id) == stored
    assert storage.count_votes_by_candidate() == {candidate.id: 1}


def test_record_vote_twice_leaves_tally_unchanged(make_voter, make_candidate, storage) -> None:
    voter = make_voter()
    first = make_candidate("Alex Johnson")
    second = make_candidate("Maria Rodriguez")
    storage.record_vote(_vote(voter, first))

    with pytest.raises(AlreadyVotedError):
        storage.record_vote(_vote(voter, second))

    assert storage.get_candidate(first.id).vote_count == 1
    assert storage.get_candidate(second.id).vote_count == 0
    assert storage.count_votes_by_candidate() == {first.id: 1}


def test_record_vote_for_missing_candidate_has_no_effect(make_voter, make_candidate, storage) -> None:
    voter = make_voter()
    candidate = make_candidate("Alex Johnson")
    ghost = candidate.model_copy(update={"id": "missing"})

    with pytest.raises(NotFoundError):
        storage.record_vote(_vote(voter, ghost))

    assert storage.get_voter(voter.voter_id).has_voted is False
    assert storage.get_vote_for_voter(voter.voter_id) is None


def test_revoked_tokens_are_remembered() -> None:
    store = MemoryStorage()
    store.revoke_token("jti-1", datetime.now(timezone.utc) + timedelta(minutes=5))

    assert store.is_token_revoked("jti-1") is True
    assert store.is_token_revoked("jti-2") is False
