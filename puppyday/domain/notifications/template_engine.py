"""
Notification template engine.
Renders {{variable}} placeholders (dotted paths allowed) and measures SMS cost.
"""

import math
import re
from typing import Any, Optional

SMS_SINGLE_SEGMENT_LENGTH = 160
SMS_MULTI_SEGMENT_LENGTH = 153

# Twilio link shortening turns any URL into a fixed-length link
SHORTENED_URL_LENGTH = 23

PLACEHOLDER_PATTERN = re.compile(r"\{\{([^}]+)\}\}")
URL_PATTERN = re.compile(r"https?://\S+")

DEFAULT_BUSINESS_CONTEXT = {
    "name": "Puppy Day",
    "address": "14936 Leffingwell Rd, La Mirada, CA 90638",
    "phone": "(657) 252-2903",
    "email": "puppyday14936@gmail.com",
    "hours": "Monday-Saturday, 9:00 AM - 5:00 PM",
    "website": "https://thepuppyday.com",
}

HTML_ESCAPES = {
    "&": "&amp;",
    "<": "&lt;",
    ">": "&gt;",
    '"': "&quot;",
    "'": "&#x27;",
    "/": "&#x2F;",
}


def _get_nested_value(data: dict, path: str) -> Any:
    current: Any = data
    for key in path.split("."):
        if not isinstance(current, dict):
            return None
        current = current.get(key)
    return current


def render(template: str, data: dict, business_context: Optional[dict] = None) -> str:
    """Substitute placeholders; unknown placeholders are left as-is"""
    merged = {**data, "business": business_context or DEFAULT_BUSINESS_CONTEXT}

    def replace(match: re.Match) -> str:
        value = _get_nested_value(merged, match.group(1).strip())
        if value is None:
            return match.group(0)
        return str(value)

    return PLACEHOLDER_PATTERN.sub(replace, template)


def extract_variables(template: str) -> list[str]:
    variables: list[str] = []
    for match in PLACEHOLDER_PATTERN.finditer(template):
        path = match.group(1).strip()
        if path not in variables:
            variables.append(path)
    return variables


def validate_template(template: str, declared_variables: list[dict]) -> dict:
    """
    Check a template against its declared variable list.

    Missing required variables are errors; placeholders that are not declared
    are warnings (business.* is always available).
    """
    errors: list[str] = []
    warnings: list[str] = []
    used = extract_variables(template)

    for variable in declared_variables:
        if not variable.get("required"):
            continue
        name = variable["name"]
        if not any(v == name or v.startswith(f"{name}.") for v in used):
            errors.append(f"Required variable '{name}' is missing from template")

    declared_names = {v["name"] for v in declared_variables}
    for path in used:
        if path.startswith("business."):
            continue
        if path.split(".")[0] not in declared_names:
            warnings.append(f"Variable '{path}' is not defined in template variables list")

    return {"valid": not errors, "errors": errors, "warnings": warnings}


def calculate_character_count(template: str, declared_variables: list[dict]) -> int:
    """Worst-case rendered length: every variable at its max_length, URLs shortened"""
    max_length = len(template)
    by_name = {v["name"]: v for v in declared_variables}

    for match in PLACEHOLDER_PATTERN.finditer(template):
        variable = by_name.get(match.group(1).strip().split(".")[0])
        if variable and variable.get("max_length"):
            max_length += variable["max_length"] - len(match.group(0))

    for url in URL_PATTERN.findall(template):
        if len(url) > SHORTENED_URL_LENGTH:
            max_length -= len(url) - SHORTENED_URL_LENGTH

    return max_length


def calculate_segment_count(text: str) -> int:
    length = len(text)
    if length == 0:
        return 0
    if length <= SMS_SINGLE_SEGMENT_LENGTH:
        return 1
    return math.ceil(length / SMS_MULTI_SEGMENT_LENGTH)


def calculate_max_sms_length(template: str, declared_variables: list[dict]) -> dict:
    max_length = calculate_character_count(template, declared_variables)
    return {
        "max_length": max_length,
        "would_exceed_single_segment": max_length > SMS_SINGLE_SEGMENT_LENGTH,
        "estimated_segments": calculate_segment_count("x" * max_length),
    }


def render_with_metadata(
    text_template: str,
    data: dict,
    subject_template: Optional[str] = None,
    html_template: Optional[str] = None,
    business_context: Optional[dict] = None,
) -> dict:
    """Render every part of a template and report SMS length/segments"""
    text = render(text_template, data, business_context)
    segment_count = calculate_segment_count(text)
    warnings = []
    if len(text) > SMS_SINGLE_SEGMENT_LENGTH:
        warnings.append(f"Message is {len(text)} characters ({segment_count} SMS segments)")

    return {
        "subject": render(subject_template, data, business_context) if subject_template else None,
        "html": render(html_template, data, business_context) if html_template else None,
        "text": text,
        "character_count": len(text),
        "segment_count": segment_count,
        "warnings": warnings,
    }


def escape_html(text: str) -> str:
    return "".join(HTML_ESCAPES.get(char, char) for char in text)
