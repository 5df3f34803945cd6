import os
import sys
import unittest
from pathlib import Path
from unittest.mock import patch

PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from app.core.config import load_engine_config  # noqa: E402
from app.core.errors import QuotaExceeded  # noqa: E402
from app.normalize.normalize_jd import (  # noqa: E402
    detect_seniority,
    extract_job_spec,
    extract_job_spec_with_warnings,
    extract_vocabulary_skills,
    heuristic_job_spec,
)
from resume_fixtures import SAMPLE_JOB_TEXT, FailingGenerator, ScriptedGenerator  # noqa: E402


class HeuristicJobSpecTests(unittest.TestCase):
    def test_labelled_fields_and_vocabulary_skills(self):
        spec = heuristic_job_spec(SAMPLE_JOB_TEXT)
        self.assertEqual(spec.title, "Senior Backend Engineer")
        self.assertEqual(spec.company_name, "Initech")
        self.assertEqual(spec.location, "Remote (EU)")
        self.assertEqual(spec.seniority, "senior")
        self.assertEqual(spec.must_have_skills, ["Python", "SQL", "PostgreSQL", "Docker", "Kubernetes", "GraphQL"])
        self.assertEqual(spec.nice_to_have_skills, [])
        self.assertEqual(spec.domain_terms, ["stakeholder", "scalable", "product"])
        self.assertIn("Design and build scalable backend services", spec.responsibilities)

    def test_vocabulary_match_is_plain_substring(self):
        skills = extract_vocabulary_skills("Experience with Django and good RESTful design", load_engine_config().skill_vocabulary)
        self.assertIn("Go", skills)
        self.assertIn("REST", skills)

    def test_title_falls_back_when_nothing_looks_like_a_role(self):
        spec = heuristic_job_spec("We are growing fast and want great people to join us soon.")
        self.assertEqual(spec.title, "Target Role")

    def test_seniority_levels(self):
        self.assertEqual(detect_seniority("Staff Platform Engineer"), "senior")
        self.assertEqual(detect_seniority("Backend developer with 3+ years of experience"), "mid")
        self.assertEqual(detect_seniority("Junior developer, new grads welcome"), "entry")
        self.assertEqual(detect_seniority("Backend developer"), "mid")
        self.assertEqual(detect_seniority("Backend developer, 0-2 years of experience"), "entry")
        self.assertEqual(detect_seniority("Backend developer, 0 to 2 years of experience"), "entry")
        self.assertEqual(detect_seniority("Backend developer, 2-4 years of experience"), "mid")
        self.assertEqual(detect_seniority("Graduate degree and 3+ years of experience"), "mid")

    def test_company_from_sentence_initial_join(self):
        spec = heuristic_job_spec("We build payments.\nJoin Acme Payments and help us scale our ledger.")
        self.assertEqual(spec.company_name, "Acme Payments")


@patch.dict(os.environ, {"LLM_MAX_RETRIES": "0"})
class ModelJobSpecTests(unittest.TestCase):
    def test_model_values_win_and_gaps_are_back_filled(self):
        generator = ScriptedGenerator(
            {"title": "Staff Backend Engineer", "mustHaveSkills": ["Python", "Rust"], "seniority": "principal"}
        )
        spec, warnings = extract_job_spec_with_warnings(SAMPLE_JOB_TEXT, generator=generator)
        self.assertEqual(warnings, [])
        self.assertEqual(spec.title, "Staff Backend Engineer")
        self.assertEqual(spec.must_have_skills, ["Python", "Rust"])
        self.assertEqual(spec.seniority, "senior")
        self.assertEqual(spec.company_name, "Initech")

    def test_quota_falls_back_with_warning(self):
        spec, warnings = extract_job_spec_with_warnings(SAMPLE_JOB_TEXT, generator=ScriptedGenerator(QuotaExceeded()))
        self.assertEqual(spec, heuristic_job_spec(SAMPLE_JOB_TEXT))
        self.assertEqual(warnings, ["Job description parsed heuristically because the AI quota was exceeded."])

    def test_short_text_never_calls_the_model(self):
        generator = ScriptedGenerator({"title": "Ignored"})
        spec, warnings = extract_job_spec_with_warnings("Python dev", generator=generator)
        self.assertEqual(generator.calls, [])
        self.assertEqual(warnings, [])
        self.assertEqual(spec.must_have_skills, ["Python"])

    def test_unexpected_errors_never_escape(self):
        generator = FailingGenerator(RuntimeError("socket closed"))
        spec = extract_job_spec(SAMPLE_JOB_TEXT, generator=generator)
        self.assertEqual(generator.calls, 1)
        self.assertEqual(spec.title, "Senior Backend Engineer")


if __name__ == "__main__":
    unittest.main()
