"""Model resolution and fixed-order probing."""

import asyncio

import pytest
from bson import ObjectId

from repository import FIXED_ORDER, PROFILE_MODELS, resolve_profile_type, to_object_id
from schemas import Escort, ProfileType, Spa


@pytest.mark.parametrize(
    "tag, expected",
    [
        ("escort", ProfileType.ESCORT),
        ("masseuse", ProfileType.MASSEUSE),
        ("of-model", ProfileType.OF_MODEL),
        ("spa", ProfileType.SPA),
    ],
)
def test_resolve_valid_tags(tag, expected):
    assert resolve_profile_type(tag) is expected


@pytest.mark.parametrize("tag", ["all", "Escort", "of_model", "", None])
def test_resolve_unknown_tags(tag):
    assert resolve_profile_type(tag) is None


def test_dispatch_table_covers_every_type():
    assert set(PROFILE_MODELS) == set(ProfileType)
    assert PROFILE_MODELS[ProfileType.ESCORT].schema is Escort
    assert PROFILE_MODELS[ProfileType.SPA].schema is Spa
    assert FIXED_ORDER == (ProfileType.ESCORT, ProfileType.MASSEUSE, ProfileType.OF_MODEL, ProfileType.SPA)


def test_to_object_id():
    oid = ObjectId()
    assert to_object_id(oid) is oid
    assert to_object_id(str(oid)) == oid
    assert to_object_id("xyz") is None
    assert to_object_id(None) is None


def test_insert_applies_schema_defaults(directory):
    doc = directory[ProfileType.SPA].insert(username="spa1", email="spa1@example.com", password="hash")

    stored = directory[ProfileType.SPA].collection.find_one({"_id": doc["_id"]})
    assert stored["userType"] == "spa"
    assert stored["isActive"] is True
    assert stored["isDeactivated"] is False
    assert stored["verification"] == {"isVerified": False}
    assert stored["analytics"]["views"] == 0
    assert stored["analytics"]["interactionHistory"] == []
    assert stored["business"] == {}
    assert stored["createdAt"] is not None


def test_first_match_prefers_fixed_order(directory, make_profile):
    make_profile(ProfileType.SPA, email="shared@example.com")
    make_profile(ProfileType.MASSEUSE, email="shared@example.com")

    profile_type, doc = asyncio.run(directory.first_match(lambda repo: repo.find_one({"email": "shared@example.com"})))

    assert profile_type is ProfileType.MASSEUSE
    assert doc["userType"] == "masseuse"


def test_first_match_without_hits(directory):
    assert asyncio.run(directory.first_match(lambda repo: repo.find_one({"email": "none"}))) == (None, None)


def test_probe_in_order_stops_at_first_hit(directory, make_profile):
    profile = make_profile(ProfileType.MASSEUSE)
    seen = []

    def probe(repo):
        seen.append(repo.profile_type)
        return repo.find_by_id(profile["_id"])

    profile_type, doc = directory.probe_in_order(probe)

    assert profile_type is ProfileType.MASSEUSE
    assert seen == [ProfileType.ESCORT, ProfileType.MASSEUSE]
    assert "password" not in doc


def test_gather_keeps_fixed_order(directory):
    results = asyncio.run(directory.gather(lambda repo: repo.profile_type.value))

    assert [value for _, value in results] == ["escort", "masseuse", "of-model", "spa"]
