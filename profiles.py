import re
from typing import Any, Dict, List, Optional, Tuple

import structlog
from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException, Path, Query

from analytics import record_view, schedule_views
from database import serialize
from repository import ProfileDirectory, ProfileRepository, get_directory, resolve_profile_type, to_object_id
from schemas import PACKAGE_PRIORITY, ProfileType

logger = structlog.get_logger(__name__)

router = APIRouter(prefix="/profiles", tags=["profiles"])

ATTRIBUTE_FILTERS = ("gender", "bodyType", "breastSize")


def _contains(value: str) -> Dict[str, str]:
    """Case-insensitive substring match on a free-text field."""
    return {"$regex": re.escape(value), "$options": "i"}


def base_filter(county: Optional[str] = None, location: Optional[str] = None, area: Optional[str] = None) -> Dict[str, Any]:
    filt: Dict[str, Any] = {"isActive": True, "currentPackage.status": "active"}
    if county:
        filt["location.county"] = _contains(county)
    if location:
        filt["location.location"] = _contains(location)
    if area:
        filt["location.area"] = _contains(area)
    return filt


def package_priority(profile: Dict[str, Any]) -> int:
    package = profile.get("currentPackage") or {}
    return PACKAGE_PRIORITY.get(package.get("packageType"), 0)


def merge_by_tier(batches: List[Tuple[ProfileRepository, List[Dict[str, Any]]]]) -> List[Dict[str, Any]]:
    """Tag each profile with its type, concatenate in fixed order, then sort by tier.

    The sort is stable: equal tiers keep collection order, then each
    collection's own ordering.
    """
    merged: List[Dict[str, Any]] = []
    for repo, profiles in batches:
        for profile in profiles:
            profile["userType"] = repo.profile_type.value
            merged.append(profile)
    return sorted(merged, key=package_priority, reverse=True)


def _view_targets(profiles: List[Dict[str, Any]]) -> List[Tuple[Any, ProfileType]]:
    return [(p["_id"], ProfileType(p["userType"])) for p in profiles]


# -----------------
# Listing
# -----------------
@router.get("/")
async def list_profiles(
    background_tasks: BackgroundTasks,
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1),
    county: Optional[str] = None,
    location: Optional[str] = None,
    area: Optional[str] = None,
    userType: str = "all",
    gender: str = "all",
    bodyType: str = "all",
    breastSize: str = "all",
    directory: ProfileDirectory = Depends(get_directory),
):
    selection = None
    if userType != "all":
        selection = resolve_profile_type(userType)
        if selection is None:
            raise HTTPException(400, "Invalid user type")

    filt = base_filter(county, location, area)
    attributes = {"gender": gender, "bodyType": bodyType, "breastSize": breastSize}
    skip = (page - 1) * limit

    def fetch(repo: ProfileRepository) -> List[Dict[str, Any]]:
        query = dict(filt)
        if repo.profile_type is not ProfileType.SPA:
            for field in ATTRIBUTE_FILTERS:
                if attributes[field] != "all":
                    query[field] = _contains(attributes[field])
        # skip/limit apply per collection, not to the merged page
        return repo.find_by_filter(query, skip, limit)

    try:
        batches = await directory.gather(fetch, directory.repositories(selection))
    except Exception:
        logger.exception("profile_listing_failed", user_type=userType)
        raise HTTPException(500, "Failed to fetch profiles")

    profiles = merge_by_tier(batches)
    schedule_views(background_tasks, directory, _view_targets(profiles))

    return {
        "success": True,
        "profiles": serialize(profiles),
        "pagination": {
            "page": page,
            "limit": limit,
            "total": len(profiles),
            "hasMore": len(profiles) == limit,
        },
    }


async def _location_listing(
    background_tasks: BackgroundTasks,
    directory: ProfileDirectory,
    location_info: Dict[str, Any],
    area: Optional[str],
    page: int,
    limit: int,
    userType: str,
) -> Dict[str, Any]:
    area = area if area and area != "all" else None
    filt = base_filter(location_info["county"], location_info.get("location"), area)

    if userType == "all":
        repos = directory.repositories()
    else:
        selection = resolve_profile_type(userType)
        # unknown types match nothing here rather than failing the request
        repos = directory.repositories(selection) if selection else []

    skip = (page - 1) * limit
    try:
        counts = await directory.gather(lambda repo: repo.count(filt), repos)
        batches = await directory.gather(lambda repo: repo.find_by_filter(filt, skip, limit), repos)
    except Exception:
        logger.exception("location_listing_failed", **location_info)
        raise HTTPException(500, "Failed to fetch location profiles")

    total = sum(count for _, count in counts)
    profiles = merge_by_tier(batches)
    schedule_views(background_tasks, directory, _view_targets(profiles))

    return {
        "success": True,
        "data": {
            "profiles": serialize(profiles),
            "location": {**location_info, "area": area},
            "pagination": {
                "page": page,
                "limit": limit,
                "total": total,
                "hasMore": skip + len(profiles) < total,
            },
        },
    }


@router.get("/location/{county}")
async def list_by_county(
    background_tasks: BackgroundTasks,
    county: str = Path(...),
    area: Optional[str] = None,
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1),
    userType: str = "all",
    directory: ProfileDirectory = Depends(get_directory),
):
    return await _location_listing(
        background_tasks, directory, {"county": county}, area, page, limit, userType
    )


@router.get("/location/{county}/{location}")
async def list_by_county_and_location(
    background_tasks: BackgroundTasks,
    county: str = Path(...),
    location: str = Path(...),
    area: Optional[str] = None,
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1),
    userType: str = "all",
    directory: ProfileDirectory = Depends(get_directory),
):
    return await _location_listing(
        background_tasks, directory, {"county": county, "location": location}, area, page, limit, userType
    )


# -----------------
# Detail
# -----------------
@router.get("/{profile_id}")
def get_profile(
    background_tasks: BackgroundTasks,
    profile_id: str = Path(...),
    directory: ProfileDirectory = Depends(get_directory),
):
    if to_object_id(profile_id) is None:
        raise HTTPException(400, "Invalid profile ID")

    try:
        profile_type, profile = directory.probe_in_order(lambda repo: repo.find_by_id(profile_id))
    except Exception:
        logger.exception("profile_fetch_failed", profile_id=profile_id)
        raise HTTPException(500, "Failed to fetch profile")

    if profile is None:
        raise HTTPException(404, "Profile not found")

    package = profile.get("currentPackage") or {}
    if not profile.get("isActive") or package.get("status") != "active":
        raise HTTPException(404, "Profile not available")

    profile["userType"] = profile_type.value
    background_tasks.add_task(record_view, directory, profile["_id"], profile_type)

    return {"success": True, "data": serialize(profile)}
