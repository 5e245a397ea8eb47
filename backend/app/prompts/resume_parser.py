"""
Resume Parser Prompt — turns a resume (embedded text or attached document)
into the canonical extraction JSON.

Used by llm_service.request_extraction()
Temperature: 0.1 | Max tokens: 4096 | Raw JSON, no fences

The key names and the YYYY-MM-DD date format below are the wire contract with
resume_mapper.py — change both together.
"""

INTRO_WITH_TEXT = """\
You are an expert Resume Parsing AI. Your job is to extract data from the resume text provided below, \
and STRUCTURE IT EXACTLY according to the following JSON schema.

--- RESUME TEXT ---
{resume_text}
--- END RESUME TEXT ---
"""

INTRO_WITH_DOCUMENT = """\
You are an expert Resume Parsing AI. Your job is to extract data from the attached resume document \
(PDF/Image), and STRUCTURE IT EXACTLY according to the following JSON schema.
Read every page of the attached document before answering.
"""

SCHEMA = """\
REQUIRED JSON STRUCTURE:
{
  "contact_info": {
    "fullName": "string",
    "email": "string",
    "phone": "string",
    "location": "string",
    "linkedin": "string",
    "portfolio": "string"
  },
  "summary": {
    "heading": "string",
    "summary": "string"
  },
  "work_experience": [
    {
      "role": "string",
      "company": "string",
      "location": "string",
      "startDate": "YYYY-MM-DD",
      "endDate": "YYYY-MM-DD or 'Present'",
      "isCurrent": boolean,
      "description": "string"
    }
  ],
  "education": [
    {
      "institution": "string",
      "degree": "string",
      "fieldOfStudy": "string",
      "location": "string",
      "graduationDate": "YYYY-MM-DD",
      "details": "string"
    }
  ],
  "skills": [
    {
      "category": "string (e.g. Languages, Frameworks)",
      "items": "comma separated string (e.g. Python, React, AWS)"
    }
  ],
  "projects": [
    {
      "title": "string",
      "link": "string",
      "description": "string",
      "technologies": "string"
    }
  ],
  "certifications": [
    {
      "name": "string",
      "issuer": "string",
      "date": "YYYY-MM-DD",
      "expirationDate": "YYYY-MM-DD",
      "url": "string"
    }
  ],
  "volunteer": [
    {
      "role": "string",
      "organization": "string",
      "startDate": "YYYY-MM-DD",
      "endDate": "YYYY-MM-DD",
      "description": "string"
    }
  ],
  "custom_sections": [
    {
      "heading": "string (e.g. Publications, Awards, Languages)",
      "items": [
        {
          "title": "string",
          "description": "string",
          "date": "string (optional)"
        }
      ]
    }
  ]
}
"""

RULES = """\
Rules:
1. If a field is missing, use null or an empty string. Use [] for sections that are not present.
2. Dates must be YYYY-MM-DD. If only the month and year are known, use YYYY-MM-01. \
If only the year is known, use YYYY-01-01.
3. Do NOT infer, add, or rewrite content — extract it as written.
4. Anything that does not fit a known section goes into "custom_sections" under its original heading.
5. Return ONLY the raw JSON object as your entire response. Do NOT wrap it in markdown \
code fences (no ```), and do not add any explanation before or after it.
"""


def build_prompt(resume_text: str | None = None) -> str:
    """
    Build the single instruction string sent to the extraction model.

    With ``resume_text`` the text is embedded verbatim; without it the model
    is told to read the attached document instead. Pure: same input, same output.
    """
    if resume_text:
        intro = INTRO_WITH_TEXT.format(resume_text=resume_text)
    else:
        intro = INTRO_WITH_DOCUMENT
    return f"{intro}\n{SCHEMA}\n{RULES}"
