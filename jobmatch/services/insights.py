"""
Aggregate views over training data, feedback and job postings
"""
from datetime import datetime
from typing import Any, Dict, List, Optional

import pandas as pd

from jobmatch.models.response import SkillSuggestion, TrainingStats
from jobmatch.utils.logging_config import get_logger

logger = get_logger(__name__)

FEEDBACK_LABELS = ["very_poor", "poor", "average", "good", "excellent"]
# $bucket ids: lower boundary, or the default for 0.8 and above
BUCKET_LABELS = {0: "very_poor", 0.2: "poor", 0.4: "average", 0.6: "good", "excellent": "excellent"}

MIN_SKILL_DEMAND = 5
TRENDING_SKILLS = 20
SKILL_SUGGESTIONS = 10


def _iso(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value else None


def training_stats(
    type_counts: List[Dict[str, Any]],
    total: int,
    feedback_buckets: List[Dict[str, Any]],
    start: Optional[datetime] = None,
    end: Optional[datetime] = None,
) -> TrainingStats:
    """Shape the server-side training and feedback aggregates into the stats envelope."""
    counts = {label: 0 for label in FEEDBACK_LABELS}
    for bucket in feedback_buckets:
        label = BUCKET_LABELS.get(bucket["_id"])
        if label is None:
            logger.warning(f"Ignoring unknown feedback bucket {bucket['_id']!r}")
            continue
        counts[label] += int(bucket["count"])

    distribution = [
        {"score_range": label, "count": counts[label]}
        for label in reversed(FEEDBACK_LABELS)
        if counts[label]
    ]

    return TrainingStats(
        total=total,
        by_type=[{"data_type": r["data_type"], "count": int(r["count"])} for r in type_counts],
        feedback_distribution=distribution,
        period={"start_date": _iso(start), "end_date": _iso(end)},
    )


def skill_suggestions(jobs: List[Dict[str, Any]], current_skills: List[str]) -> List[SkillSuggestion]:
    """Most demanded skills across recent postings that the user does not list yet."""
    df = pd.DataFrame(jobs, columns=["skills_required", "salary_max"])
    if df.empty:
        return []

    skills = df.explode("skills_required", ignore_index=True).rename(columns={"skills_required": "skill"})
    skills = skills[skills["skill"].apply(lambda s: isinstance(s, str) and bool(s.strip()))].copy()
    if skills.empty:
        return []
    skills["salary_max"] = pd.to_numeric(skills["salary_max"], errors="coerce")

    trending = (
        skills.groupby("skill")
        .agg(job_count=("skill", "size"), avg_salary=("salary_max", "mean"))
        .reset_index()
    )
    trending = trending[trending["job_count"] >= MIN_SKILL_DEMAND]
    trending = trending.sort_values(
        ["job_count", "avg_salary"], ascending=[False, False], na_position="last"
    ).head(TRENDING_SKILLS)

    have = {s.strip().lower() for s in current_skills if s.strip()}
    trending = trending[~trending["skill"].str.lower().isin(have)].head(SKILL_SUGGESTIONS)

    return [
        SkillSuggestion(
            skill=row.skill,
            demand=int(row.job_count),
            average_salary=None if pd.isna(row.avg_salary) else int(round(row.avg_salary)),
        )
        for row in trending.itertuples()
    ]
