import pytest

from app.prompts.resume_parser import build_prompt


def test_prompt_embeds_resume_text_verbatim():
    text = "Jane Doe\nStaff Engineer {at} Acme"

    prompt = build_prompt(text)

    assert text in prompt
    assert "attached resume document" not in prompt


def test_prompt_without_text_points_at_attached_document():
    prompt = build_prompt()

    assert "attached resume document" in prompt
    assert "RESUME TEXT" not in prompt


def test_prompt_is_deterministic():
    assert build_prompt("same") == build_prompt("same")
    assert build_prompt() == build_prompt(None)


@pytest.mark.parametrize(
    "key",
    [
        "contact_info",
        "summary",
        "work_experience",
        "education",
        "skills",
        "projects",
        "certifications",
        "volunteer",
        "custom_sections",
        "fullName",
        "graduationDate",
        "expirationDate",
        "isCurrent",
    ],
)
def test_prompt_names_every_schema_field(key):
    assert f'"{key}"' in build_prompt("x")


def test_prompt_sets_date_and_output_rules():
    prompt = build_prompt("x")

    assert "YYYY-MM-DD" in prompt
    assert "YYYY-01-01" in prompt
    assert "ONLY the raw JSON object" in prompt
    assert "markdown" in prompt
