"""Ratings left by either side of a completed job."""

from typing import Optional
from uuid import UUID
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.job import JobAssignment, JobStatus, Rating, RaterType
from app.exceptions import ValidationError

ALREADY_RATED = "You have already rated this job"


class RatingService:
    """One rating per rater type per job, only once the job is completed."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def get(self, assignment_id: UUID, rater_type: RaterType) -> Optional[Rating]:
        result = await self.db.execute(
            select(Rating).where(
                Rating.job_assignment_id == assignment_id,
                Rating.rater_type == rater_type,
            )
        )
        return result.scalar_one_or_none()

    async def rate(
        self,
        assignment: JobAssignment,
        rater_type: RaterType,
        rater_id: UUID,
        ratee_id: UUID,
        rating: int,
        review: Optional[str] = None,
    ) -> Rating:
        if assignment.status != JobStatus.COMPLETED:
            raise ValidationError("Can only rate completed jobs", code="rating.job_not_completed")
        if not 1 <= rating <= 5:
            raise ValidationError("Rating must be between 1 and 5", code="rating.out_of_range")

        if await self.get(assignment.id, rater_type):
            raise ValidationError(ALREADY_RATED, code="rating.duplicate")

        entry = Rating(
            job_assignment_id=assignment.id,
            rater_id=rater_id,
            ratee_id=ratee_id,
            rater_type=rater_type,
            rating=rating,
            review=review,
        )
        self.db.add(entry)
        try:
            await self.db.commit()
        except IntegrityError:
            # Lost a race with a concurrent submission
            await self.db.rollback()
            raise ValidationError(ALREADY_RATED, code="rating.duplicate")
        await self.db.refresh(entry)
        return entry
