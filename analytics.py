"""
Profile analytics: best-effort view counting, interaction tracking and counter reads.
"""
import asyncio
from typing import Any, List, Tuple

import structlog
from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException
from starlette.concurrency import run_in_threadpool

from database import serialize
from repository import ProfileDirectory, get_directory
from schemas import InteractionRequest, InteractionType, ProfileType

logger = structlog.get_logger(__name__)

router = APIRouter(prefix="/analytics", tags=["analytics"])


# -----------------
# View counting
# -----------------
def record_view(directory: ProfileDirectory, profile_id: Any, profile_type: ProfileType) -> bool:
    """Increment a profile's view counter. Never raises.

    Returns whether the counter was updated; a False result has already been
    logged.
    """
    try:
        updated = directory[profile_type].increment_views(profile_id)
    except Exception as e:
        logger.error(
            "view_increment_failed",
            profile_id=str(profile_id),
            profile_type=profile_type.value,
            error=str(e),
        )
        return False
    if not updated:
        logger.warning("view_increment_missed", profile_id=str(profile_id), profile_type=profile_type.value)
    return updated


async def record_views(directory: ProfileDirectory, profiles: List[Tuple[Any, ProfileType]]) -> int:
    """Increment views for a batch of profiles concurrently; returns how many landed.

    Each update succeeds or fails on its own.
    """
    results = await asyncio.gather(
        *(run_in_threadpool(record_view, directory, profile_id, profile_type) for profile_id, profile_type in profiles)
    )
    return sum(1 for updated in results if updated)


def schedule_views(
    background_tasks: BackgroundTasks,
    directory: ProfileDirectory,
    profiles: List[Tuple[Any, ProfileType]],
) -> None:
    """Queue view increments to run after the response is sent."""
    if profiles:
        background_tasks.add_task(record_views, directory, profiles)


# -----------------
# Endpoints
# -----------------
@router.post("/interaction")
def track_interaction(payload: InteractionRequest, directory: ProfileDirectory = Depends(get_directory)):
    try:
        interaction = InteractionType(payload.interactionType)
    except ValueError:
        raise HTTPException(400, "Invalid interaction type")

    try:
        profile_type, _ = directory.probe_in_order(
            lambda repo: repo.record_interaction(payload.profileId, interaction)
        )
    except Exception:
        logger.exception("interaction_tracking_failed", profile_id=payload.profileId)
        raise HTTPException(500, "Failed to track interaction")

    if profile_type is None:
        raise HTTPException(404, "Profile not found")

    logger.info(
        "interaction_tracked",
        profile_id=payload.profileId,
        profile_type=profile_type.value,
        interaction=interaction.value,
    )
    return {"success": True, "message": "Interaction tracked successfully"}


@router.get("/profile/{profile_id}")
def get_profile_analytics(profile_id: str, directory: ProfileDirectory = Depends(get_directory)):
    # No ownership check: any caller can read any profile's counters.
    try:
        _, doc = directory.probe_in_order(lambda repo: repo.read_analytics(profile_id))
    except Exception:
        logger.exception("analytics_fetch_failed", profile_id=profile_id)
        raise HTTPException(500, "Failed to fetch analytics")

    if not doc or doc.get("analytics") is None:
        raise HTTPException(404, "Analytics not found")

    return {"success": True, "data": serialize(doc["analytics"]), "username": doc.get("username")}
