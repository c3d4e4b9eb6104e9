"""
Profile data access.

Every profile type is stored in its own collection. ``ProfileRepository`` wraps
one collection; ``ProfileDirectory`` holds all four in the fixed collection
order (escort, masseuse, of-model, spa) that decides which collection wins
when more than one could answer a probe.
"""
import asyncio
from typing import Any, Callable, Dict, List, NamedTuple, Optional, Tuple, Type, TypeVar

import structlog
from bson import ObjectId
from fastapi import Depends
from pymongo import DESCENDING
from pymongo.database import Database
from starlette.concurrency import run_in_threadpool

from database import create_document, get_db, now_utc
from schemas import Escort, InteractionType, Masseuse, OFModel, ProfileBase, ProfileType, Spa

logger = structlog.get_logger(__name__)

T = TypeVar("T")

# Fields never returned from listings. Detail responses keep email.
LISTING_EXCLUDE = ("password", "email", "paymentHistory", "processedTransactions")
DETAIL_EXCLUDE = ("password", "paymentHistory", "processedTransactions")

LISTING_SORT = [("currentPackage.packageType", DESCENDING), ("createdAt", DESCENDING)]


class ProfileModel(NamedTuple):
    schema: Type[ProfileBase]
    collection: str


PROFILE_MODELS: Dict[ProfileType, ProfileModel] = {
    ProfileType.ESCORT: ProfileModel(Escort, "escorts"),
    ProfileType.MASSEUSE: ProfileModel(Masseuse, "masseuses"),
    ProfileType.OF_MODEL: ProfileModel(OFModel, "ofmodels"),
    ProfileType.SPA: ProfileModel(Spa, "spas"),
}

# Fixed collection order; ProfileType declaration order.
FIXED_ORDER: Tuple[ProfileType, ...] = tuple(ProfileType)


def resolve_profile_type(tag: Optional[str]) -> Optional[ProfileType]:
    """Map a user-type tag to its ProfileType, or None for anything else."""
    try:
        return ProfileType(tag)
    except ValueError:
        return None


def to_object_id(value: Any) -> Optional[ObjectId]:
    if isinstance(value, ObjectId):
        return value
    if isinstance(value, str) and ObjectId.is_valid(value):
        return ObjectId(value)
    return None


def _exclude(fields) -> Dict[str, int]:
    return {f: 0 for f in fields}


class ProfileRepository:
    """Queries against a single profile collection."""

    def __init__(self, db: Database, profile_type: ProfileType):
        self.profile_type = profile_type
        self.model = PROFILE_MODELS[profile_type]
        self.collection = db[self.model.collection]

    def __repr__(self) -> str:
        return f"ProfileRepository({self.profile_type.value})"

    def insert(self, **fields) -> Dict[str, Any]:
        doc = self.model.schema(**fields).model_dump()
        stored = create_document(self.collection.database, self.model.collection, doc)
        logger.info("profile_created", profile_type=self.profile_type.value, profile_id=str(stored["_id"]))
        return stored

    def find_one(self, query: Dict[str, Any], projection: Optional[Dict[str, int]] = None) -> Optional[Dict[str, Any]]:
        return self.collection.find_one(query, projection)

    def find_by_id(self, profile_id: Any, exclude=DETAIL_EXCLUDE) -> Optional[Dict[str, Any]]:
        oid = to_object_id(profile_id)
        if oid is None:
            return None
        return self.collection.find_one({"_id": oid}, _exclude(exclude) if exclude else None)

    def find_by_filter(self, query: Dict[str, Any], skip: int, limit: int) -> List[Dict[str, Any]]:
        cursor = (
            self.collection.find(query, _exclude(LISTING_EXCLUDE))
            .sort(LISTING_SORT)
            .skip(skip)
            .limit(limit)
        )
        return list(cursor)

    def count(self, query: Dict[str, Any]) -> int:
        return self.collection.count_documents(query)

    def exists_identity(self, email: str, username: str) -> bool:
        doc = self.collection.find_one({"$or": [{"email": email}, {"username": username}]}, {"_id": 1})
        return doc is not None

    def increment_views(self, profile_id: Any) -> bool:
        """Bump analytics.views and stamp lastViewed. Returns False if nothing matched."""
        oid = to_object_id(profile_id)
        if oid is None:
            return False
        result = self.collection.update_one(
            {"_id": oid},
            {"$inc": {"analytics.views": 1}, "$set": {"analytics.lastViewed": now_utc()}},
        )
        return result.matched_count > 0

    def record_interaction(self, profile_id: Any, interaction: InteractionType) -> bool:
        oid = to_object_id(profile_id)
        if oid is None:
            return False
        result = self.collection.update_one(
            {"_id": oid},
            {
                "$inc": {"analytics.interactions": 1, f"analytics.{interaction.value}s": 1},
                "$push": {"analytics.interactionHistory": {"type": interaction.value, "timestamp": now_utc()}},
            },
        )
        return result.matched_count > 0

    def read_analytics(self, profile_id: Any) -> Optional[Dict[str, Any]]:
        oid = to_object_id(profile_id)
        if oid is None:
            return None
        return self.collection.find_one({"_id": oid}, {"analytics": 1, "username": 1})


class ProfileDirectory:
    """All profile collections, probed in fixed collection order."""

    def __init__(self, db: Database):
        self.db = db
        self._repos = {t: ProfileRepository(db, t) for t in FIXED_ORDER}

    def __getitem__(self, profile_type: ProfileType) -> ProfileRepository:
        return self._repos[profile_type]

    def repositories(self, selection: Optional[ProfileType] = None) -> List[ProfileRepository]:
        if selection is None:
            return [self._repos[t] for t in FIXED_ORDER]
        return [self._repos[selection]]

    async def gather(
        self,
        fn: Callable[[ProfileRepository], T],
        repos: Optional[List[ProfileRepository]] = None,
    ) -> List[Tuple[ProfileRepository, T]]:
        """Run a blocking call against each repository concurrently.

        Results come back in fixed collection order regardless of which
        query finished first.
        """
        repos = repos if repos is not None else self.repositories()
        results = await asyncio.gather(*(run_in_threadpool(fn, repo) for repo in repos))
        return list(zip(repos, results))

    async def first_match(
        self, fn: Callable[[ProfileRepository], Optional[T]]
    ) -> Tuple[Optional[ProfileType], Optional[T]]:
        """Fan out, then pick the first non-empty result in fixed collection order."""
        for repo, result in await self.gather(fn):
            if result:
                return repo.profile_type, result
        return None, None

    def probe_in_order(
        self, fn: Callable[[ProfileRepository], Optional[T]]
    ) -> Tuple[Optional[ProfileType], Optional[T]]:
        """Query collections one at a time, stopping at the first hit."""
        for repo in self.repositories():
            result = fn(repo)
            if result:
                return repo.profile_type, result
        return None, None


def get_directory(db: Database = Depends(get_db)) -> ProfileDirectory:
    """FastAPI dependency."""
    return ProfileDirectory(db)
