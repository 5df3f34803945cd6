import os
import sys
import unittest
from pathlib import Path
from unittest.mock import patch

PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from app.core.errors import AccessForbidden, QuotaExceeded, StructuringFailure  # noqa: E402
from app.normalize.normalize_resume import (  # noqa: E402
    compute_confidence,
    is_date_backed,
    structure_resume,
    verify_entities,
)
from app.schemas.normalized import CanonicalResume, Contact, EducationEntry, ExperienceEntry  # noqa: E402
from resume_fixtures import LINKEDIN, PROJECT_URL, SAMPLE_RESUME_TEXT, ScriptedGenerator  # noqa: E402


def _model_payload(**overrides):
    payload = {
        "contact": {"name": "Jane Doe", "email": "someone.else@example.org", "location": "Berlin, Germany"},
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
        "education": [{"degree": "BSc Computer Science", "school": "Technical University of Berlin", "date": "2017"}],
        "skills": ["Python", "FastAPI", "PostgreSQL", "Redis", "Docker", "Kubernetes"],
    }
    payload.update(overrides)
    return payload


class HeuristicStructuringTests(unittest.TestCase):
    @classmethod
    def setUpClass(cls):
        cls.result = structure_resume(SAMPLE_RESUME_TEXT)

    def test_contact_comes_from_header_and_anchors(self):
        contact = self.result.resume.contact
        self.assertEqual(contact.name, "Jane Doe")
        self.assertEqual(contact.email, "jane.doe@example.com")
        self.assertEqual(contact.phone, "+49 151 2345 6789")
        self.assertEqual(contact.linkedin, LINKEDIN)
        self.assertEqual(contact.location, "Berlin, Germany")

    def test_experience_entries_keep_roles_dates_and_bullets(self):
        experience = self.result.resume.experience
        self.assertEqual(len(experience), 2)
        self.assertEqual(experience[0].role, "Senior Software Engineer")
        self.assertEqual(experience[0].company, "Acme Analytics")
        self.assertEqual(experience[0].start_date, "Jan 2020")
        self.assertEqual(experience[0].end_date, "Present")
        self.assertEqual(len(experience[0].bullets), 3)
        self.assertEqual(experience[1].company, "Globex")
        self.assertEqual(experience[1].end_date, "Dec 2019")
        self.assertEqual(experience[1].bullets[0], "Developed data pipelines with PostgreSQL and Redis")

    def test_projects_education_and_skills(self):
        resume = self.result.resume
        self.assertEqual(len(resume.projects), 1)
        self.assertEqual(resume.projects[0].name, "Resume Tailor")
        self.assertEqual(resume.projects[0].url, PROJECT_URL)
        self.assertEqual(resume.projects[0].technologies, ["Python", "FastAPI"])
        self.assertEqual(resume.education[0].school, "Technical University of Berlin")
        self.assertEqual(resume.education[0].degree, "BSc Computer Science")
        self.assertEqual(resume.education[0].date, "2017")
        self.assertIn("Kubernetes", resume.skills)
        self.assertEqual(len(resume.skills), 7)

    def test_complete_resume_gets_full_confidence_without_safe_mode(self):
        self.assertEqual(self.result.source, "heuristic")
        self.assertEqual(self.result.confidence, 100)
        self.assertEqual(self.result.warnings, [])
        self.assertEqual(self.result.missing_fields, [])
        self.assertFalse(self.result.safe_mode_required)
        self.assertTrue(self.result.auto_accept())

    def test_evidence_map_holds_literal_skills_and_links(self):
        evidence = self.result.evidence_map
        self.assertEqual(set(evidence.skills), set(self.result.resume.skills))
        self.assertIn(PROJECT_URL, evidence.links)
        self.assertIn(LINKEDIN, evidence.links)
        self.assertIn("30%", evidence.metrics)
        self.assertEqual(self.result.resume.portfolio_links, list(evidence.links))
        self.assertEqual(len(evidence.entities.experiences), 2)

    def test_missing_education_requires_safe_mode(self):
        text = SAMPLE_RESUME_TEXT.split("EDUCATION")[0]
        result = structure_resume(text)
        self.assertEqual(result.resume.education, [])
        self.assertTrue(result.safe_mode_required)


class ConfidenceTests(unittest.TestCase):
    def test_warning_penalty_is_capped(self):
        resume = CanonicalResume()
        self.assertEqual(compute_confidence(resume, []), 40)
        self.assertEqual(compute_confidence(resume, ["w"] * 2), 30)
        self.assertEqual(compute_confidence(resume, ["w"] * 10), 20)

    def test_bonuses_add_up(self):
        resume = CanonicalResume(
            contact=Contact(name="Jane Doe", email="jane@example.com"),
            experience=[ExperienceEntry(role="Engineer", bullets=["Built things"])],
            skills=["a", "b", "c", "d", "e"],
            education=[EducationEntry(school="Some University")],
        )
        self.assertEqual(compute_confidence(resume, []), 100)
        self.assertEqual(compute_confidence(resume, ["one warning"]), 95)


class VerificationTests(unittest.TestCase):
    def test_unbacked_company_is_blanked_with_warning(self):
        resume = CanonicalResume(
            experience=[ExperienceEntry(role="Senior Software Engineer", company="Hooli", start_date="Jan 2020")]
        )
        warnings = []
        verified = verify_entities(resume, SAMPLE_RESUME_TEXT, warnings)
        self.assertEqual(verified.experience[0].company, "")
        self.assertEqual(verified.experience[0].role, "Senior Software Engineer")
        self.assertEqual(warnings, ["Verification: experience[0].company not found in source text"])

    def test_entries_left_empty_are_dropped(self):
        resume = CanonicalResume(
            experience=[ExperienceEntry(role="Astronaut", company="Hooli")],
            education=[EducationEntry(school="Unknown Academy", degree="PhD Physics")],
        )
        warnings = []
        verified = verify_entities(resume, SAMPLE_RESUME_TEXT, warnings)
        self.assertEqual(verified.experience, [])
        self.assertEqual(verified.education, [])
        self.assertEqual(len(warnings), 4)

    def test_dates_are_backed_by_their_years(self):
        self.assertTrue(is_date_backed(SAMPLE_RESUME_TEXT, "Jan 2020"))
        self.assertTrue(is_date_backed(SAMPLE_RESUME_TEXT, "01/2020"))
        self.assertFalse(is_date_backed(SAMPLE_RESUME_TEXT, "2031"))
        self.assertFalse(is_date_backed(SAMPLE_RESUME_TEXT, ""))


@patch.dict(os.environ, {"LLM_MAX_RETRIES": "0"})
class ModelStructuringTests(unittest.TestCase):
    def test_regex_anchors_override_model_contact(self):
        generator = ScriptedGenerator(_model_payload())
        result = structure_resume(SAMPLE_RESUME_TEXT, generator=generator)
        self.assertEqual(result.source, "llm")
        self.assertEqual(result.resume.contact.email, "jane.doe@example.com")
        self.assertEqual(result.resume.contact.linkedin, LINKEDIN)
        self.assertEqual(generator.calls[0]["temperature"], 0.1)
        self.assertTrue(generator.calls[0]["json_mode"])

    def test_hallucinated_company_forces_safe_mode(self):
        payload = _model_payload()
        payload["experience"][0]["company"] = "Hooli"
        result = structure_resume(SAMPLE_RESUME_TEXT, generator=ScriptedGenerator(payload))
        self.assertEqual(result.resume.experience[0].company, "")
        self.assertIn("Verification: experience[0].company not found in source text", result.warnings)
        self.assertTrue(result.safe_mode_required)

    def test_empty_model_sections_are_recovered_from_text(self):
        payload = _model_payload(education=[], projects=[])
        result = structure_resume(SAMPLE_RESUME_TEXT, generator=ScriptedGenerator(payload))
        self.assertEqual(result.resume.education[0].school, "Technical University of Berlin")
        self.assertEqual(result.resume.projects[0].name, "Resume Tailor")
        self.assertIn("Heuristic recovery used for education section", result.warnings)
        self.assertIn("Heuristic recovery used for projects section", result.warnings)

    def test_quota_and_access_errors_surface_unchanged(self):
        with self.assertRaises(QuotaExceeded):
            structure_resume(SAMPLE_RESUME_TEXT, generator=ScriptedGenerator(QuotaExceeded()))
        with self.assertRaises(AccessForbidden):
            structure_resume(SAMPLE_RESUME_TEXT, generator=ScriptedGenerator(AccessForbidden()))

    def test_invalid_model_output_becomes_structuring_failure(self):
        with self.assertRaises(StructuringFailure) as ctx:
            structure_resume(SAMPLE_RESUME_TEXT, generator=ScriptedGenerator("this is not json"))
        self.assertEqual(ctx.exception.status_code, 502)

    def test_prefer_heuristic_skips_the_model(self):
        generator = ScriptedGenerator(_model_payload())
        result = structure_resume(SAMPLE_RESUME_TEXT, generator=generator, prefer_heuristic=True)
        self.assertEqual(result.source, "heuristic")
        self.assertEqual(generator.calls, [])


if __name__ == "__main__":
    unittest.main()
