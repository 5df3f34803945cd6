from __future__ import annotations

import json

from app.schemas.normalized import CanonicalResume, EvidenceMap, GapReport, JobSpec

RESUME_TEXT_LIMIT = 12000
JOB_TEXT_LIMIT = 10000


def build_resume_parse_prompt(text: str) -> str:
    return f"""You are a Resume Parser. Extract facts from this raw resume text into STRICT JSON.
Never hallucinate or invent information. If a field is missing, leave it as an empty string "" or empty array [].
The text may be in any language. Extract names and roles in their original language.

INPUT TEXT:
{text[:RESUME_TEXT_LIMIT]}

OUTPUT JSON FORMAT:
{{
    "contact": {{ "name": "", "email": "", "phone": "", "linkedin": "", "location": "" }},
    "summary": "",
    "experience": [
        {{ "role": "", "company": "", "startDate": "", "endDate": "", "bullets": [""] }}
    ],
    "projects": [
        {{ "name": "", "description": "", "technologies": [""], "url": "" }}
    ],
    "skills": [""],
    "education": [
        {{ "degree": "", "school": "", "date": "" }}
    ],
    "certifications": [""],
    "achievements": [""],
    "languages": [""],
    "customSections": [
        {{ "title": "", "items": [""] }}
    ]
}}

RULES:
1. ONLY return the JSON object, nothing else. No markdown blocks.
2. Deduplicate skills. Sort skills with most important/technical first.
3. Keep bullets exactly as written, just formatted cleanly. Don't rewrite them.
4. Keep experience, projects and education in the order they appear in the text.
5. Ensure "experience" exists even if empty.
6. Put content that fits none of the fields into "customSections" with its original heading."""


def build_job_spec_prompt(text: str) -> str:
    return f"""Parse this job description into JSON.

Return only valid JSON with this exact shape:
{{
  "title": "string",
  "companyName": "string",
  "location": "string",
  "seniority": "entry | mid | senior",
  "mustHaveSkills": ["string"],
  "niceToHaveSkills": ["string"],
  "softSkills": ["string"],
  "exactPhrases": ["string"],
  "responsibilities": ["string"],
  "domainTerms": ["string"]
}}

Use empty strings or empty arrays for anything the posting does not state.

Job description:
{text[:JOB_TEXT_LIMIT]}"""


def build_gap_prompt(resume: CanonicalResume, job_spec: JobSpec) -> str:
    bullets = "\n".join(resume.all_bullets())
    projects = "\n".join(
        f"{project.name}: {project.description} [{', '.join(project.technologies)}]" for project in resume.projects
    )
    return f"""You are a Resume-to-Job gap analyzer.

TASK: Compare the candidate's resume data against the job requirements and produce a gap analysis.

CANDIDATE SKILLS: {', '.join(resume.skills)}

CANDIDATE EXPERIENCE BULLETS:
{bullets[:4000]}

CANDIDATE PROJECTS:
{projects[:2000]}

CANDIDATE CERTIFICATIONS: {', '.join(resume.certifications) or 'none'}

JOB REQUIREMENTS:
- Must-have: {', '.join(job_spec.must_have_skills)}
- Nice-to-have: {', '.join(job_spec.nice_to_have_skills)}
- Key phrases: {', '.join(job_spec.exact_phrases)}
- Responsibilities: {'; '.join(job_spec.responsibilities)}

OUTPUT: Return ONLY valid JSON:
{{
    "matchedKeywords": [{{ "keyword": "React", "foundIn": ["skills", "experience"] }}],
    "missingKeywords": ["keyword"],
    "transferableSkills": [{{ "sourceSkill": "Vue", "targetSkill": "React", "confidence": "medium" }}],
    "recommendations": ["Add keyword X to summary"]
}}

RULES:
1. "foundIn" values must come from: "skills", "experience", "projects", "summary", "certifications"
2. missingKeywords = skills/phrases from the job that have NO evidence in the resume at all
3. transferableSkills confidence must be one of "high", "medium", "low"
4. recommendations = specific, actionable suggestions for the rewrite step"""


def build_rewrite_prompt(
    resume: CanonicalResume,
    job_spec: JobSpec,
    gap_report: GapReport,
    evidence_map: EvidenceMap,
    *,
    power_verbs: list[str],
    min_bullets: int,
    max_bullets: int,
    max_words: int,
    max_verb_repetitions: int,
) -> str:
    experience = [
        {
            "role": entry.role,
            "company": entry.company,
            "startDate": entry.start_date,
            "endDate": entry.end_date,
            "bullets": entry.bullets,
        }
        for entry in resume.experience
    ]
    projects = [project.model_dump() for project in resume.projects]
    education = [entry.model_dump() for entry in resume.education]
    evidence = evidence_map.model_dump(mode="json")
    phrase_examples = '", "'.join(job_spec.exact_phrases[:3])

    return f"""You are an Expert ATS Resume Writer.

TASK: Return a PATCH only. Do not regenerate the full resume JSON.

=== CANDIDATE DATA (FACTS - DO NOT CHANGE) ===
Contact: {json.dumps(resume.contact.model_dump())}
Summary: {resume.summary}
Experience (preserve ALL role/company/dates exactly):
{json.dumps(experience, indent=2)}

Projects:
{json.dumps(projects, indent=2)}

Skills (original): {', '.join(resume.skills)}

Education (preserve exactly): {json.dumps(education)}

Certifications: {', '.join(resume.certifications) or 'none'}

=== TARGET JOB ===
Title: {job_spec.title}
Must-have skills: {', '.join(job_spec.must_have_skills)}
Nice-to-have: {', '.join(job_spec.nice_to_have_skills)}
Key phrases (use verbatim): {', '.join(job_spec.exact_phrases)}
Responsibilities: {'; '.join(job_spec.responsibilities)}
Domain terms: {', '.join(job_spec.domain_terms)}

=== GAP ANALYSIS ===
Matched keywords: {', '.join(item.keyword for item in gap_report.matched_keywords)}
Recommendations (only when evidence-backed): {'; '.join(gap_report.recommendations)}

=== EVIDENCE LOCK (MANDATORY) ===
Allowed skills only: {', '.join(evidence_map.skills)}
Allowed experience entities: {json.dumps(evidence['entities']['experiences'])}
Allowed education entities: {json.dumps(evidence['entities']['education'])}
Allowed projects only: {json.dumps(evidence['projects'])}
Allowed links: {json.dumps(evidence['links'])}
Allowed metrics/numbers: {json.dumps(evidence['metrics'])}

=== REWRITE RULES (MANDATORY) ===
1. NEVER invent companies, roles, dates, degrees, or schools
2. NEVER add skills the candidate doesn't have evidence for
3. Rewrite ONLY: summary, bullets, project descriptions, and skill ordering
4. Every bullet: Action Verb + Scope/Context + Tool/Technology + Outcome
5. Each bullet: max {max_words} words
6. Each role keeps at least its original bullet count and stays within {min_bullets}-{max_bullets}
7. No power verb may appear more than {max_verb_repetitions} times across ALL bullets. Verbs: {', '.join(power_verbs)}
8. Summary: 3-4 sentences for THIS job, only evidence-backed must-have keywords
9. Skills: reorder only; output must be a subset of allowed skills
10. Use EXACT PHRASES from the job where naturally applicable (e.g., "{phrase_examples}")
11. Only use metrics from the allowed list. NEVER invent numeric outcomes
12. Never output "Unknown", "N/A", "TBD" or "-"; use "" when unsure
13. NEVER remove project links

=== OUTPUT FORMAT ===
Return ONLY valid JSON patch with this shape:
{{
    "summary": "rewritten summary",
    "skills": ["reordered evidence-backed skills only"],
    "experienceBullets": [{{ "index": 0, "bullets": ["rewritten bullet"] }}],
    "projectDescriptions": [{{ "index": 0, "description": "rewritten description" }}]
}}"""


def build_cover_letter_prompt(resume: CanonicalResume, job_spec: JobSpec, job_text: str) -> str:
    company = job_spec.company_name.strip()
    location = job_spec.location.strip()
    has_company = bool(company)
    key_experience = ", ".join(f"{entry.role} at {entry.company}" for entry in resume.experience[:2])
    excerpt = f"JOB POSTING EXCERPT (for company context):\n{job_text[:1500]}" if has_company else ""
    why_step = (
        "Why this company: 1-2 sentences specific to THIS company using only available job context."
        if has_company
        else "Why this role/domain: 1-2 sentences on why this role/domain is compelling."
    )
    why_rule = (
        "Explain why this exact company based on provided context."
        if has_company
        else "Do not invent company details; focus on role/domain motivation."
    )

    return f"""You are a professional Cover Letter Writer.

TASK: Write a concise, compelling cover letter (200-320 words) based on the candidate's resume and the target job.

CANDIDATE:
Name: {resume.contact.name or 'Candidate'}
Summary: {resume.summary}
Key Experience: {key_experience}
Top Skills: {', '.join(resume.skills[:8])}

TARGET JOB:
Title: {job_spec.title}
Must-have: {', '.join(job_spec.must_have_skills)}
Responsibilities: {'; '.join(job_spec.responsibilities[:4])}
Company: {company or 'the company'}
Location: {location or 'not specified'}

{excerpt}

=== STRUCTURE ===
1. Hook (1 sentence): role alignment and immediate fit
2. Proof Point 1: one evidence-backed achievement mapped to a must-have requirement
3. Proof Point 2: another evidence-backed achievement mapped to a different requirement
4. {why_step}
5. Professional close: 1-2 sentences

=== RULES ===
1. LENGTH: 200-320 words.
2. Professional, confident tone
3. Every claim must be backed by the resume. Do NOT invent achievements.
4. {why_rule}
5. No placeholders like "[Your Name]" or "[Company Name]"
6. Plain text only
7. Start with "Dear Hiring Manager," unless a hiring manager name is available"""
