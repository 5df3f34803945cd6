import sys
import unittest
from pathlib import Path

from pydantic import ValidationError

PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from app.schemas.analysis import ParseResult  # noqa: E402
from app.schemas.normalized import (  # noqa: E402
    CanonicalResume,
    EvidenceMap,
    ExperienceEntry,
    JobSpec,
    ScoreBreakdown,
)


class NormalizedModelsTests(unittest.TestCase):
    def test_can_instantiate_resume_and_job_spec(self):
        resume = CanonicalResume(
            experience=[ExperienceEntry(role="Engineer", bullets=["Reduced API latency by 20%", "Built CI"])],
        )
        job_spec = JobSpec(
            title="Backend Engineer",
            seniority="Senior",
            must_have_skills=["Python", "python", " SQL "],
            exact_phrases=["Python"],
        )

        self.assertEqual(resume.all_bullets(), ["Reduced API latency by 20%", "Built CI"])
        self.assertEqual(job_spec.seniority, "senior")
        self.assertEqual(job_spec.keyword_universe(), ["Python", "SQL"])

    def test_invalid_seniority_is_rejected(self):
        with self.assertRaises(ValidationError):
            JobSpec(seniority="ninja")

    def test_scores_are_bounded(self):
        with self.assertRaises(ValidationError):
            ScoreBreakdown(total=101, keyword_coverage=0, structure_hygiene=0, relevance_evidence=0, impact_clarity=0)

    def test_evidence_map_is_immutable(self):
        evidence = EvidenceMap(skills=("Python",))
        with self.assertRaises(ValidationError):
            evidence.skills = ("Rust",)

    def test_parse_result_threshold_bands(self):
        resume = CanonicalResume()
        self.assertTrue(ParseResult(resume=resume, confidence=44).should_reject())
        self.assertTrue(ParseResult(resume=resume, confidence=45).needs_review())
        self.assertFalse(ParseResult(resume=resume, confidence=65).needs_review())
        self.assertTrue(ParseResult(resume=resume, confidence=80).auto_accept())


if __name__ == "__main__":
    unittest.main()
