from datetime import datetime, timedelta, timezone
from types import SimpleNamespace
from uuid import UUID, uuid4

import pytest

from bayanihan.services.matching import (
    FALLBACK_CAP,
    find_matching_jobs,
    matching_skills,
    recency_bonus,
    worker_matches_job,
)

NOW = datetime(2026, 3, 1, 12, 0, tzinfo=timezone.utc)


def worker(skills, barangay="Brgy 1"):
    return SimpleNamespace(id=uuid4(), skills=skills, barangay=barangay)


def job(skills, barangay="Brgy 1", days_ago=0.0, job_id=None):
    return SimpleNamespace(
        id=job_id or uuid4(),
        skills_required=skills,
        barangay=barangay,
        date_posted=NOW - timedelta(days=days_ago),
    )


def test_plumber_only_gets_plumbing_job():
    a = job(["Plumbing"], "Brgy 1")
    b = job(["Carpentry"], "Brgy 2")

    matches = find_matching_jobs(worker(["Plumbing"]), [a, b], now=NOW)

    assert [m.job for m in matches] == [a]
    assert matches[0].matching_skills == ["Plumbing"]
    assert matches[0].location_match is True
    assert matches[0].match_score == 10 + 3 + 5


@pytest.mark.parametrize("skills", [[], ["", "   "]])
def test_no_skills_returns_nothing(skills):
    pool = [job(["Plumbing"]), job(["Cooking"])]
    assert find_matching_jobs(worker(skills), pool, now=NOW) == []


def test_fallback_when_nothing_matches_is_capped():
    pool = [job(["Carpentry"], days_ago=d) for d in range(8)]

    matches = find_matching_jobs(worker(["Tutoring"]), pool, now=NOW)

    assert len(matches) == FALLBACK_CAP
    assert all(m.matching_skills == [] for m in matches)
    # newest first when only recency differs
    assert [m.recency_days for m in matches] == [0, 1, 2, 3, 4]


def test_fallback_respects_smaller_limit():
    pool = [job(["Carpentry"]) for _ in range(8)]
    assert len(find_matching_jobs(worker(["Tutoring"]), pool, limit=2, now=NOW)) == 2


def test_empty_pool():
    assert find_matching_jobs(worker(["Plumbing"]), [], now=NOW) == []


def test_extra_skill_never_lowers_score():
    target = job(["Plumbing", "Electrical"], "Brgy 2", days_ago=3)
    before = find_matching_jobs(worker(["Plumbing"]), [target], now=NOW)[0].match_score
    after = find_matching_jobs(worker(["Plumbing", "Electrical"]), [target], now=NOW)[0].match_score
    assert after >= before
    assert after - before == 10


def test_skill_comparison_ignores_case_and_spacing():
    assert matching_skills(["Aircon  Cleaning", "Plumbing"], ["aircon cleaning"]) == ["Aircon  Cleaning"]


def test_more_skills_outrank_location_and_recency():
    local_new = job(["Plumbing", "Masonry"], "Brgy 1", days_ago=0)
    remote_old = job(["Plumbing", "Electrical"], "Brgy 9", days_ago=20)

    matches = find_matching_jobs(worker(["Plumbing", "Electrical"]), [local_new, remote_old], now=NOW)

    assert [m.job for m in matches] == [remote_old, local_new]
    assert matches[0].skill_match_percentage == 100.0
    assert matches[1].skill_match_percentage == 50.0


def test_ties_break_on_newest_then_id():
    first = UUID("00000000-0000-0000-0000-000000000001")
    second = UUID("00000000-0000-0000-0000-000000000002")
    # recency is clamped to the same bonus for both, so score ties
    old_b = job(["Plumbing"], "Brgy 5", days_ago=30, job_id=second)
    old_a = job(["Plumbing"], "Brgy 5", days_ago=30, job_id=first)
    newer = job(["Plumbing"], "Brgy 5", days_ago=12)

    matches = find_matching_jobs(worker(["Plumbing"]), [old_b, newer, old_a], now=NOW)

    assert [m.job for m in matches] == [newer, old_a, old_b]


def test_limit_truncates():
    pool = [job(["Plumbing"], days_ago=d) for d in range(15)]
    assert len(find_matching_jobs(worker(["Plumbing"]), pool, limit=10, now=NOW)) == 10
    assert find_matching_jobs(worker(["Plumbing"]), pool, limit=0, now=NOW) == []


def test_future_posting_counts_as_today():
    assert recency_bonus(0) == 5.0
    matches = find_matching_jobs(worker(["Plumbing"]), [job(["Plumbing"], days_ago=-1)], now=NOW)
    assert matches[0].recency_days == 0


def test_new_job_alert_rule_needs_same_barangay_and_skill():
    w = worker(["Cooking"], "Poblacion")
    assert worker_matches_job(w, job(["cooking"], "poblacion"))
    assert not worker_matches_job(w, job(["Cooking"], "San Isidro"))
    assert not worker_matches_job(w, job(["Laundry"], "Poblacion"))
