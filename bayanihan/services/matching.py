"""
Matching engine - ranks open jobs against a worker's skills and barangay.

Pure functions only: the caller loads the worker and the candidate pool,
this module scores and orders them. Nothing is cached; every call ranks
the pool as it was read.

Score per job:
    10 x (number of required skills the worker has)
  +  3 if the job is in the worker's barangay
  +  recency bonus = max(0, 5 - age_in_days / 2)   (gone after 10 days)

Only jobs sharing at least one skill are returned. If none do, the
fallback pool is returned instead: every candidate scored on recency and
location alone, capped at min(fallback_cap, limit).
Ties are broken by newest posting first, then by job id, so the order is
reproducible.
"""
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, List, Optional, Protocol, Sequence
from uuid import UUID

SKILL_WEIGHT = 10
LOCATION_WEIGHT = 3
RECENCY_MAX = 5.0
RECENCY_DECAY_PER_DAY = 0.5
DEFAULT_LIMIT = 10
FALLBACK_CAP = 5

_SECONDS_PER_DAY = 86_400


class WorkerProfile(Protocol):
    skills: Sequence[str]
    barangay: Optional[str]


class MatchableJob(Protocol):
    id: UUID
    skills_required: Sequence[str]
    barangay: str
    date_posted: datetime


@dataclass
class JobMatch:
    job: Any
    match_score: float
    matching_skills: List[str]
    skill_match_percentage: float
    location_match: bool
    recency_days: float
    match_details: Dict[str, Any] = field(default_factory=dict)


def normalize_skill(skill: str) -> str:
    return " ".join(skill.split()).casefold()


def matching_skills(required: Iterable[str], worker_skills: Iterable[str]) -> List[str]:
    """Required skills the worker has, compared case- and whitespace-insensitively."""
    owned = {normalize_skill(s) for s in worker_skills if s and s.strip()}
    seen = set()
    matched = []
    for skill in required or []:
        key = normalize_skill(skill)
        if key in owned and key not in seen:
            seen.add(key)
            matched.append(skill)
    return matched


def same_barangay(a: Optional[str], b: Optional[str]) -> bool:
    if not a or not b:
        return False
    return normalize_skill(a) == normalize_skill(b)


def age_in_days(posted: datetime, now: datetime) -> float:
    if posted.tzinfo is None:
        posted = posted.replace(tzinfo=timezone.utc)
    return max(0.0, (now - posted).total_seconds() / _SECONDS_PER_DAY)


def recency_bonus(age_days: float) -> float:
    return max(0.0, RECENCY_MAX - age_days * RECENCY_DECAY_PER_DAY)


def _score(job: MatchableJob, worker: WorkerProfile, now: datetime, with_skills: bool) -> JobMatch:
    required = list(job.skills_required or [])
    matched = matching_skills(required, worker.skills) if with_skills else []
    location_match = same_barangay(job.barangay, worker.barangay)
    age = age_in_days(job.date_posted, now)

    score = (
        SKILL_WEIGHT * len(matched)
        + (LOCATION_WEIGHT if location_match else 0)
        + recency_bonus(age)
    )
    percentage = (len(matched) / len(required) * 100) if required else 0.0

    return JobMatch(
        job=job,
        match_score=round(score, 4),
        matching_skills=matched,
        skill_match_percentage=round(percentage, 1),
        location_match=location_match,
        recency_days=round(age, 1),
        match_details={
            "skills_matched": len(matched),
            "total_skills_required": len(required),
            "same_location": location_match,
            "days_ago": round(age),
        },
    )


def _rank(matches: List[JobMatch]) -> List[JobMatch]:
    # Three stable passes: id, then date_posted desc, then score desc
    matches = sorted(matches, key=lambda m: str(m.job.id))
    matches = sorted(matches, key=lambda m: m.job.date_posted, reverse=True)
    return sorted(matches, key=lambda m: m.match_score, reverse=True)


def find_matching_jobs(
    worker: WorkerProfile,
    jobs: Sequence[MatchableJob],
    limit: int = DEFAULT_LIMIT,
    *,
    now: Optional[datetime] = None,
    fallback_cap: int = FALLBACK_CAP,
) -> List[JobMatch]:
    """
    Rank `jobs` (already restricted to open, non-deleted ones) for `worker`.

    Returns [] when the worker lists no skills, whatever the pool holds.
    """
    if not worker.skills or not any(s and s.strip() for s in worker.skills):
        return []
    if limit <= 0:
        return []

    now = now or datetime.now(timezone.utc)

    scored = [_score(job, worker, now, with_skills=True) for job in jobs]
    ranked = _rank([m for m in scored if m.matching_skills])

    if not ranked:
        fallback = _rank([_score(job, worker, now, with_skills=False) for job in jobs])
        ranked = fallback[: min(fallback_cap, limit)]

    return ranked[:limit]


def worker_matches_job(worker: WorkerProfile, job: MatchableJob) -> bool:
    """New-job alert rule: same barangay and at least one shared skill."""
    return same_barangay(job.barangay, worker.barangay) and bool(
        matching_skills(job.skills_required, worker.skills or [])
    )
