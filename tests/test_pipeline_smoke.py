import os
import sys
import unittest
from pathlib import Path
from unittest.mock import patch

PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from app.core.errors import ExtractionFailure, LowConfidenceRejection, QuotaExceeded  # noqa: E402
from app.services.pipeline import SAFE_MODE_WARNING, build_evidence_pool, run_generation  # noqa: E402
from resume_fixtures import SAMPLE_JOB_TEXT, SAMPLE_RESUME_TEXT, FailingGenerator, ScriptedGenerator  # noqa: E402


class PipelineSmokeTests(unittest.TestCase):
    def test_offline_generation_passes_the_gate(self):
        result = run_generation(SAMPLE_RESUME_TEXT, SAMPLE_JOB_TEXT)

        self.assertEqual(result.quality_gate.status, "passed")
        self.assertEqual(result.warnings, [])
        self.assertEqual(len(result.rewritten.experience), 2)
        self.assertEqual(result.rewritten.contact.email, "jane.doe@example.com")
        self.assertGreaterEqual(result.analysis.after_score.total, result.analysis.before_score.total)

        metadata = result.analysis.metadata
        self.assertEqual(metadata.model_used, "heuristic")
        self.assertEqual(metadata.rewrite_source, "heuristic")
        self.assertEqual(metadata.job_title, "Senior Backend Engineer")
        self.assertEqual(metadata.parser_confidence, 100)
        self.assertIsNone(metadata.failure_reason)

    def test_evidence_pool_is_raw_text_plus_metrics(self):
        result = run_generation(SAMPLE_RESUME_TEXT, SAMPLE_JOB_TEXT)
        pool = build_evidence_pool(SAMPLE_RESUME_TEXT, result.parse_result)
        self.assertEqual(pool[0], SAMPLE_RESUME_TEXT)
        self.assertIn("30%", pool)

    def test_safe_mode_returns_the_original(self):
        text = SAMPLE_RESUME_TEXT.split("EDUCATION")[0]
        result = run_generation(text, SAMPLE_JOB_TEXT)
        self.assertTrue(result.parse_result.safe_mode_required)
        self.assertEqual(result.rewritten, result.parse_result.resume)
        self.assertIn(SAFE_MODE_WARNING, result.warnings)
        self.assertEqual(result.quality_gate.status, "failed")
        self.assertEqual(result.analysis.metadata.failure_reason, "Quality gate failed: No education entries")

    def test_low_confidence_is_rejected(self):
        text = "Some notes about a person who likes computers and long walks on the beach."
        with self.assertRaises(LowConfidenceRejection) as ctx:
            run_generation(text, SAMPLE_JOB_TEXT)
        self.assertLess(ctx.exception.confidence, ctx.exception.threshold)
        self.assertEqual(ctx.exception.status_code, 422)

    def test_empty_resume_is_an_extraction_failure(self):
        with self.assertRaises(ExtractionFailure):
            run_generation("   ", SAMPLE_JOB_TEXT)

    @patch.dict(os.environ, {"LLM_MAX_RETRIES": "0"})
    def test_quota_during_structuring_surfaces(self):
        with self.assertRaises(QuotaExceeded):
            run_generation(SAMPLE_RESUME_TEXT, SAMPLE_JOB_TEXT, generator=FailingGenerator(QuotaExceeded()))

    @patch.dict(os.environ, {"LLM_MAX_RETRIES": "0"})
    def test_later_stage_quota_degrades_to_heuristics(self):
        structured = {
            "contact": {"name": "Jane Doe"},
            "summary": "Backend engineer with six years of experience building Python services.",
            "experience": [
                {
                    "role": "Senior Software Engineer",
                    "company": "Acme Analytics",
                    "startDate": "Jan 2020",
                    "endDate": "Present",
                    "bullets": [
                        "Built REST APIs in Python and FastAPI serving 2M requests per day",
                        "Reduced infrastructure costs by 30% by migrating batch jobs to Kubernetes",
                    ],
                }
            ],
            "projects": [{"name": "Resume Tailor", "description": "Open-source CLI that scores resumes against job posts"}],
            "education": [{"degree": "BSc Computer Science", "school": "Technical University of Berlin", "date": "2017"}],
            "skills": ["Python", "FastAPI", "PostgreSQL", "Redis", "Docker", "Kubernetes"],
        }
        generator = ScriptedGenerator(structured, QuotaExceeded(), QuotaExceeded(), QuotaExceeded())
        result = run_generation(SAMPLE_RESUME_TEXT, SAMPLE_JOB_TEXT, generator=generator)

        self.assertEqual(result.parse_result.source, "llm")
        self.assertEqual(result.analysis.metadata.model_used, "scripted-model")
        self.assertEqual(result.analysis.metadata.rewrite_source, "heuristic")
        self.assertEqual(
            result.warnings,
            [
                "Job description parsed heuristically because the AI quota was exceeded.",
                "Gap analysis used keyword matching because the AI quota was exceeded.",
                "AI rewrite skipped because the AI quota was exceeded; a conservative rewrite was used.",
            ],
        )


if __name__ == "__main__":
    unittest.main()
