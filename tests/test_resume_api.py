import os
import sys
import unittest
from pathlib import Path

# Keep API tests deterministic and fast by default.
os.environ.setdefault("AI_ENABLED", "0")
os.environ.setdefault("RATE_LIMIT_ENABLED", "0")

PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from fastapi.testclient import TestClient  # noqa: E402

from app.core.rate_limit import limiter  # noqa: E402
from app.main import app  # noqa: E402
from resume_fixtures import (  # noqa: E402
    SAMPLE_JOB_TEXT,
    SAMPLE_RESUME_TEXT,
    build_evidence_map,
    build_job_spec,
    build_resume,
)


class ResumeApiTests(unittest.TestCase):
    @classmethod
    def setUpClass(cls):
        os.environ["AI_ENABLED"] = "0"
        limiter.enabled = False
        cls.client = TestClient(app)
        cls.resume = build_resume().model_dump(mode="json")
        cls.job_spec = build_job_spec().model_dump(mode="json")

    def test_health_reports_engine_versions(self):
        response = self.client.get("/v1/health")
        self.assertEqual(response.status_code, 200)
        body = response.json()
        self.assertEqual(body["status"], "healthy")
        self.assertEqual(body["engine_version"], "2.0.0")
        self.assertFalse(body["ai_enabled"])

    def test_parse_resume_contract_shape(self):
        response = self.client.post("/v1/resume/parse", json={"resume_text": SAMPLE_RESUME_TEXT})
        self.assertEqual(response.status_code, 200)
        body = response.json()
        self.assertEqual(body["source"], "heuristic")
        self.assertEqual(body["confidence"], 100)
        self.assertEqual(body["resume"]["contact"]["name"], "Jane Doe")
        self.assertFalse(body["safe_mode_required"])

    def test_parse_resume_rejects_unusable_text(self):
        response = self.client.post("/v1/resume/parse", json={"resume_text": "too short"})
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()["detail"]["code"], "extraction_failed")

    def test_parse_job(self):
        response = self.client.post("/v1/jobs/parse", json={"job_text": SAMPLE_JOB_TEXT})
        self.assertEqual(response.status_code, 200)
        body = response.json()
        self.assertEqual(body["job_spec"]["title"], "Senior Backend Engineer")
        self.assertEqual(body["warnings"], [])

    def test_score_and_gap(self):
        payload = {"resume": self.resume, "job_spec": self.job_spec}
        score = self.client.post("/v1/resume/score", json=payload)
        self.assertEqual(score.status_code, 200)
        self.assertEqual(score.json()["structure_hygiene"], 100)

        gap = self.client.post("/v1/resume/gap", json=payload)
        self.assertEqual(gap.status_code, 200)
        self.assertEqual(gap.json()["missing_keywords"], ["GraphQL", "MySQL", "Azure"])

    def test_validate_flags_injected_skill(self):
        rewritten = dict(self.resume, skills=[*self.resume["skills"], "Rust"])
        response = self.client.post(
            "/v1/resume/validate",
            json={
                "rewritten": rewritten,
                "original": self.resume,
                "evidence_pool": [SAMPLE_RESUME_TEXT],
                "evidence_map": build_evidence_map().model_dump(mode="json"),
            },
        )
        self.assertEqual(response.status_code, 200)
        body = response.json()
        self.assertEqual(body["status"], "failed")
        self.assertEqual(body["issues"], ["Injected skill not in evidence: Rust"])

    def test_generate_contract_shape(self):
        response = self.client.post(
            "/v1/resume/generate",
            json={"resume_text": SAMPLE_RESUME_TEXT, "job_text": SAMPLE_JOB_TEXT},
        )
        self.assertEqual(response.status_code, 200)
        body = response.json()
        self.assertEqual(body["job_target_label"], "Senior Backend Engineer")
        result = body["result"]
        self.assertEqual(result["quality_gate"]["status"], "passed")
        self.assertEqual(result["analysis"]["metadata"]["model_used"], "heuristic")
        self.assertIn("before_score", result["analysis"])

    def test_generate_rejects_low_confidence(self):
        response = self.client.post(
            "/v1/resume/generate",
            json={
                "resume_text": "Some notes about a person who likes computers and long walks on the beach.",
                "job_text": SAMPLE_JOB_TEXT,
            },
        )
        self.assertEqual(response.status_code, 422)
        detail = response.json()["detail"]
        self.assertEqual(detail["code"], "low_confidence")
        self.assertEqual(detail["threshold"], 45)
        self.assertLess(detail["confidence"], 45)

    def test_generate_from_upload(self):
        response = self.client.post(
            "/v1/resume/generate-from-pdf",
            files={"file": ("resume.txt", SAMPLE_RESUME_TEXT.encode("utf-8"), "text/plain")},
            data={"job_text": SAMPLE_JOB_TEXT, "job_url": "https://jobs.example.com/careers/senior-backend-engineer"},
        )
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()["result"]["parse_result"]["confidence"], 100)

    def test_generate_from_upload_rejects_unsupported_type(self):
        response = self.client.post(
            "/v1/resume/generate-from-pdf",
            files={"file": ("resume.docx", b"PK\x03\x04", "application/octet-stream")},
            data={"job_text": SAMPLE_JOB_TEXT},
        )
        self.assertEqual(response.status_code, 400)
        self.assertIn("Unsupported file type", response.json()["detail"])

    def test_cover_letter_template_without_ai(self):
        response = self.client.post(
            "/v1/cover-letter",
            json={"resume": self.resume, "job_text": SAMPLE_JOB_TEXT, "job_spec": self.job_spec},
        )
        self.assertEqual(response.status_code, 200)
        body = response.json()
        self.assertEqual(body["source"], "template")
        self.assertTrue(body["text"].startswith("Dear Hiring Manager,"))


if __name__ == "__main__":
    unittest.main()
