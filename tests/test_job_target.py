import sys
import unittest
from pathlib import Path

PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from app.normalize.job_target import (  # noqa: E402
    is_likely_job_title,
    resolve_job_target_label,
    title_from_job_url,
)
from resume_fixtures import SAMPLE_JOB_TEXT  # noqa: E402


class JobTargetLabelTests(unittest.TestCase):
    def test_analysis_title_wins(self):
        analysis = {"metadata": {"job_title": "Staff Data Engineer"}}
        label = resolve_job_target_label(job_text=SAMPLE_JOB_TEXT, analysis=analysis)
        self.assertEqual(label, "Staff Data Engineer")

    def test_generic_analysis_title_falls_through_to_job_text(self):
        analysis = {"metadata": {"job_title": "Target Role"}}
        self.assertEqual(resolve_job_target_label(job_text=SAMPLE_JOB_TEXT, analysis=analysis), "Senior Backend Engineer")

    def test_title_from_url_slug(self):
        url = "https://jobs.example.com/careers/senior-data-engineer-12345"
        self.assertEqual(title_from_job_url(url), "Senior Data Engineer")
        self.assertEqual(resolve_job_target_label(job_url=url), "Senior Data Engineer")

    def test_snippet_is_truncated(self):
        text = (
            "We build tools for climate researchers and care deeply about our craft, our users and the planet we share."
        )
        label = resolve_job_target_label(job_text=text)
        self.assertTrue(label.endswith("..."))
        self.assertEqual(len(label), 72)

    def test_host_then_fallback(self):
        self.assertEqual(resolve_job_target_label(job_url="https://www.example.com/"), "example.com")
        self.assertEqual(resolve_job_target_label(), "Job Target")

    def test_title_heuristics_reject_greetings_and_sections(self):
        self.assertTrue(is_likely_job_title("Senior Backend Engineer"))
        self.assertFalse(is_likely_job_title("Dear Hiring Manager"))
        self.assertFalse(is_likely_job_title("Responsibilities"))
        self.assertFalse(is_likely_job_title("Engineer"))


if __name__ == "__main__":
    unittest.main()
