# -*- coding: utf-8 -*-
"""
Prompts for the Document Generator Agent.
"""

DEFAULT_MARKETING_PLAN_SECTIONS = [
    "Executive Summary",
    "Market Analysis",
    "Target Market Segmentation",
    "Marketing Channels & Tactics",
    "Budget Allocation",
    "Implementation Timeline",
    "Success Metrics",
]

COMPLETE_DOCUMENT_SECTION = "Complete Document"

# --- System prompts ---
SECTION_SYSTEM_PROMPT = (
    "You are an expert marketing strategist and content creator. Generate professional, detailed, "
    "and actionable content for a SINGLE SECTION of a marketing document. Always use the specific "
    "business name provided and NEVER use placeholder text like 'brand name', 'your company', etc. "
    "Format your response using Markdown for better readability, including headings, bullet points, "
    "and emphasis where appropriate."
)

DOCUMENT_SYSTEM_PROMPT = (
    "You are an expert business strategist and content creator. Generate a COMPLETE, well-structured "
    "document with multiple subsections. Include clear headings for each major point and organize the "
    "content logically. Always use the specific business name provided and NEVER use placeholder text. "
    "Format your response using Markdown with proper headings, subheadings, bullet points, and emphasis "
    "where appropriate. The document should be comprehensive and cover all aspects requested in the prompt."
)

# --- User prompt suffixes ---
SECTION_USER_SUFFIX = """

I need detailed content for the "{section}" section. Start your response with the section title formatted as a markdown heading (e.g., "# {section}" or "## {section}"). Then write 2-3 paragraphs of professional marketing content tailored specifically to the business name and details provided above. Use markdown formatting to make the content more readable and structured (bullet points, emphasis, etc.)."""

DOCUMENT_USER_SUFFIX = """

Create a complete, well-structured document addressing all key points. Organize it with clear headings and subheadings, and ensure the content provides specific, actionable insights tailored to the business details provided. Use markdown formatting throughout to improve readability."""

# --- Instruction blocks appended to every prepared prompt ---
IMPORTANT_INSTRUCTIONS = """

===IMPORTANT INSTRUCTIONS===
1. USE THE EXACT BUSINESS NAME: "{business_name}" throughout the document. This is mandatory.
2. NEVER use placeholder text like "brand name", "your company", "our SaaS", etc. Always use "{business_name}" instead.
3. Customize ALL content specifically for {business_name} using the information provided below.
4. Be specific, practical, and actionable - avoid generic marketing language.

"""

BUSINESS_CONTEXT = """===BUSINESS CONTEXT===
Business Name: {business_name}
Business Type: {business_type}
Target Audience: {target_audience}
Budget: {budget}
Goals: {goals}
Challenges: {challenges}
"""

SKIPPED_REQUIRED_INFO = """The user has chosen to skip providing specific details for this document.
Make smart, professional assumptions based on the business context above.
Focus on being specific to this business type and goals.
"""

FINAL_REMINDER = """
===FINAL REMINDER===
ALWAYS refer to the business by its actual name "{business_name}" and NEVER use generic placeholders.
Create content that feels custom-written for {business_name} specifically.
Double-check your response to ensure "{business_name}" appears in every section.
Do not include these instructions in your response.
"""

FAILED_SECTION_MESSAGE = (
    '[Content generation for "{section}" failed after {attempts} attempts. '
    'Please try regenerating this document.]'
)

EMPTY_SECTION_MESSAGE = '[Content could not be generated for "{section}"]'
