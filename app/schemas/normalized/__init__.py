from .evidence import (
    EducationEntity,
    EvidenceEntities,
    EvidenceMap,
    ExperienceEntity,
    ProjectEvidence,
)
from .jd import JobSpec, Seniority
from .match import (
    GapReport,
    MatchedKeyword,
    MatchedKeywordLocation,
    ScoreBreakdown,
    ScoreDetails,
    TransferableSkill,
)
from .resume import (
    CanonicalResume,
    Contact,
    CustomSection,
    EducationEntry,
    ExperienceEntry,
    Photo,
    ProjectEntry,
)

__all__ = [
    "CanonicalResume",
    "Contact",
    "CustomSection",
    "EducationEntry",
    "ExperienceEntry",
    "Photo",
    "ProjectEntry",
    "JobSpec",
    "Seniority",
    "EvidenceMap",
    "EvidenceEntities",
    "ExperienceEntity",
    "EducationEntity",
    "ProjectEvidence",
    "GapReport",
    "MatchedKeyword",
    "MatchedKeywordLocation",
    "TransferableSkill",
    "ScoreBreakdown",
    "ScoreDetails",
]
