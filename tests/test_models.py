from __future__ import annotations

from ethervote.models import Constituency, District, Voter


def test_reference_models_publish_schema_examples() -> None:
    district = District.model_json_schema()["properties"]["name"]
    constituency = Constituency.model_json_schema()["properties"]["name"]

    assert district["examples"] == ["Central District"]
    assert constituency["examples"] == ["North Central"]
    assert "example" not in district


def test_voter_password_hash_never_serialized() -> None:
    voter = Voter(
        id="1", name="John Doe", voter_id="V1", district="Central District", constituency="North Central",
        email="a@x.com", phone="555", wallet_address="0x" + "a" * 40, hashed_password="$2b$hash",
    )

    assert "hashed_password" not in voter.model_dump()
    assert "$2b$hash" not in repr(voter)
    assert voter.is_admin is False
