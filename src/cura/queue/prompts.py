"""Prompt builders for analyze and build tasks."""

from __future__ import annotations

from typing import Any

from cura.queue.profile import MasterProfile

ANALYZE_RESPONSE_SHAPE = """{
  "matchScore": 0,
  "overallFit": "2-3 sentence assessment",
  "keywordAnalysis": {"present": ["keyword"], "missing": ["keyword"]},
  "keyRequirements": ["requirement 1", "requirement 2"],
  "changes": [
    {
      "section": "experience" | "project" | "summary" | "skills",
      "sectionIndex": 0,
      "field": "bullets" | "summary" | "role" | "skills",
      "bulletIndex": 0,
      "currentText": "exact current text from resume",
      "suggestedText": "exact suggested replacement",
      "categoryName": "only for skills - which category",
      "reason": "why this change improves the resume",
      "keywordsAdded": ["keyword"]
    }
  ]
}"""

BUILD_RESPONSE_SHAPE = """{
  "selectedExperiences": ["experience_id_1", "experience_id_2"],
  "selectedEducation": ["education_id_1"],
  "selectedProjects": ["project_id_1", "project_id_2"],
  "selectedSkillCategories": ["skill_category_id_1"],
  "tailoredContent": {
    "experiences": {"experience_id_1": {"bullets": ["tailored bullet 1"]}},
    "projects": {"project_id_1": {"bullets": ["tailored bullet 1"]}}
  },
  "reasoning": "2-3 sentences explaining the selection"
}"""


def build_analyze_prompt(
    *,
    job_description: str,
    resume_content: str | None,
    skill_categories: list[dict[str, Any]],
    has_document: bool,
) -> str:
    """Prompt asking for exact before/after text changes against a job description."""

    lines = ["You are an expert career counselor and resume consultant.", ""]
    if has_document:
        lines.append("I have uploaded a resume PDF.")
    else:
        lines.append("I have provided resume content.")
        if resume_content:
            lines.extend(["", "RESUME CONTENT:", resume_content])
    if skill_categories:
        lines.extend(["", "CURRENT SKILL CATEGORIES:"])
        lines.extend(
            f"{index}. {category.get('name', '')}: "
            f"{', '.join(str(skill) for skill in category.get('skills') or [])}"
            for index, category in enumerate(skill_categories)
        )
    lines.extend(
        [
            "",
            "JOB DESCRIPTION:",
            job_description,
            "",
            "Analyze the resume against this job description and provide SPECIFIC, "
            "ACTIONABLE text changes. For each change give the EXACT current text "
            "(word-for-word from the resume), the EXACT suggested replacement, the "
            "section and indices where it applies, and a brief reason.",
            "",
            "Format your response as JSON with this EXACT structure:",
            ANALYZE_RESPONSE_SHAPE,
            "",
            "CRITICAL INSTRUCTIONS:",
            "- For currentText, use the EXACT text from the resume word-for-word.",
            "- For bullet points, provide the complete bullet text.",
            "- For skills, sectionIndex is the category number listed above and "
            "bulletIndex is the position of the skill inside that category.",
            '- To add a new skill use currentText="" and put the skill in suggestedText, '
            "choosing the most appropriate existing category.",
            "- matchScore is an integer from 0 to 100.",
            "- Return 5-10 specific text changes with exact before/after text.",
        ],
    )
    return "\n".join(lines)


def build_curated_prompt(
    *,
    job_description: str,
    profile: MasterProfile,
    max_experiences: int,
    max_projects: int,
    max_bullets_per_experience: int,
    max_bullets_per_project: int,
) -> str:
    """Prompt asking the model to select profile items by id and tailor bullets."""

    lines = [
        "You are an expert resume builder and career counselor. You will help create "
        "an optimized resume from a candidate's profile data.",
        "",
        "USER'S PROFILE DATA:",
        "",
        f"EXPERIENCES ({len(profile.experiences)} total):",
    ]
    for index, experience in enumerate(profile.experiences, start=1):
        lines.extend(
            [
                f"{index}. ID: {experience.id}",
                f"   {experience.role} at {experience.company}",
                f"   Location: {experience.location or 'N/A'}",
                f"   Duration: {experience.start_date} to {experience.end_date or 'Present'}",
                "   Bullets:",
                *(f"   - {bullet}" for bullet in experience.bullets),
            ],
        )
    lines.extend(["", f"EDUCATION ({len(profile.education)} total):"])
    for index, education in enumerate(profile.education, start=1):
        lines.extend(
            [
                f"{index}. ID: {education.id}",
                f"   {education.degree}",
                f"   Institution: {education.institution}",
                f"   Location: {education.location or 'N/A'}",
                f"   Duration: {education.start_date or 'N/A'} to {education.end_date or 'N/A'}",
            ],
        )
    lines.extend(["", f"PROJECTS ({len(profile.projects)} total):"])
    for index, project in enumerate(profile.projects, start=1):
        lines.extend(
            [
                f"{index}. ID: {project.id}",
                f"   {project.name}",
                f"   Link: {project.link or 'N/A'}",
                "   Description:",
                *(f"   - {bullet}" for bullet in project.bullets),
            ],
        )
    lines.extend(["", "SKILLS:"])
    lines.extend(
        f"ID: {category.id} | {category.name}: {', '.join(category.skills)}"
        for category in profile.skill_categories
    )
    lines.extend(
        [
            "",
            "JOB DESCRIPTION:",
            job_description,
            "",
            "Selection Guidelines:",
            f"- Select the {max_experiences} most relevant work experiences.",
            "- Include all education entries unless clearly irrelevant.",
            f"- Select the {max_projects} most impressive or relevant projects.",
            "- Choose skill categories that match the job requirements.",
            f"- Tailor at most {max_bullets_per_experience} bullets per experience and "
            f"{max_bullets_per_project} bullets per project; keep the core facts.",
            "",
            "Return a JSON response with this EXACT structure:",
            BUILD_RESPONSE_SHAPE,
            "",
            "CRITICAL INSTRUCTIONS:",
            '- Use the EXACT ID strings shown after "ID:" in the profile data above.',
            "- Only select items that exist in the profile.",
            "- Return ONLY the JSON object, no additional text.",
        ],
    )
    return "\n".join(lines)
