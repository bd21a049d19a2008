# app/services/segment_service.py
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional, Sequence

from sqlalchemy.ext.asyncio import AsyncSession

from app.models.user import Segment
from app.services import catalog_repo, order_repo

log = logging.getLogger("backoffice.segments")


@dataclass(frozen=True)
class SegmentAssignment:
    user_id: str
    lifetime_spent_cents: int
    segment_id: Optional[int]


def pick_segment(segments: Sequence[Segment], spent_cents: int) -> Optional[Segment]:
    """
    `segments` come highest threshold first. First tier whose range covers
    the spend wins; no match falls back to the lowest tier.
    """
    for seg in segments:
        if spent_cents < int(seg.min_spend_cents):
            continue
        if seg.max_spend_cents is None or spent_cents <= int(seg.max_spend_cents):
            return seg
    return segments[-1] if segments else None


class SegmentService:
    """Recomputes a user's lifetime spend and spend tier inside the caller's transaction."""

    async def assign_for_user(self, session: AsyncSession, user_id: str) -> SegmentAssignment:
        spent = await order_repo.lifetime_spend(session, user_id)
        segment = pick_segment(await catalog_repo.list_active_segments(session), spent)
        segment_id = segment.id if segment is not None else None
        await catalog_repo.set_user_segment(
            session, user_id, segment_id=segment_id, lifetime_spent_cents=spent
        )
        log.info("segment assigned: user=%s spent=%s segment=%s", user_id, spent, segment_id)
        return SegmentAssignment(user_id=user_id, lifetime_spent_cents=spent, segment_id=segment_id)
