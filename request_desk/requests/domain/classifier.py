"""
Request Classifier
==================

Keyword rules that fill in category, priority, routing unit and the
acknowledgment text for a new request.

Both rule lists are evaluated top to bottom and the first matching pattern
wins, so list order is the precedence contract: a text mentioning both
"fire" and "computer" is IT, because the IT rule comes first. Patterns are
plain unanchored substrings ("it" also matches "with").
"""

import re
from typing import Dict, List, Optional, Pattern, Tuple

from request_desk.config import Category, Priority
from request_desk.requests.domain.entities import Classification


def _rule(pattern: str) -> Pattern[str]:
    return re.compile(pattern, re.IGNORECASE)


CATEGORY_RULES: List[Tuple[Pattern[str], Category]] = [
    (_rule(r"computer|laptop|software|network|internet|wifi|password|email|printer|it|technical|system"),
     Category.IT),
    (_rule(r"clean|room|office|repair|maintenance|hvac|air condition|heating|ventilation|building"),
     Category.FACILITIES),
    (_rule(r"desk|chair|furniture|equipment|table|cabinet|storage|supplies"),
     Category.EQUIPMENT),
    (_rule(r"safety|fire|emergency|hazard|accident|injury|security|alarm|evacuation"),
     Category.SAFETY),
    (_rule(r"leave|vacation|payroll|benefits|training|hr|human resource|staff|employee|recruitment"),
     Category.HR),
]

DEFAULT_CATEGORY = Category.OTHER

PRIORITY_RULES: List[Tuple[Pattern[str], Priority]] = [
    (_rule(r"urgent|emergency|critical|immediate|asap|broken|not working|down|fire|safety|injury"),
     Priority.CRITICAL),
    (_rule(r"important|high priority|soon|needed|blocking|cannot work"),
     Priority.HIGH),
    (_rule(r"low priority|when possible|not urgent|minor|small"),
     Priority.LOW),
]

DEFAULT_PRIORITY = Priority.MEDIUM

ASSIGNED_UNITS: Dict[Category, str] = {
    Category.IT: "IT Division",
    Category.FACILITIES: "Technical Division",
    Category.EQUIPMENT: "Procurement Division",
    Category.SAFETY: "Safety Division",
    Category.HR: "HR Division",
    Category.OTHER: "General Support",
}

RESPONSE_TEMPLATES: Dict[Category, str] = {
    Category.IT: (
        'Your request regarding "{title}" has been received and forwarded to the '
        "IT and Technical Support Division. Our team will review your request and "
        "contact you shortly."
    ),
    Category.FACILITIES: (
        'Your request regarding "{title}" has been received and forwarded to the '
        "Facilities and Maintenance Division. A technician will be assigned to "
        "address your concern."
    ),
    Category.EQUIPMENT: (
        'Your request regarding "{title}" has been received and forwarded to the '
        "Equipment and Furniture Division. We will process your request and notify "
        "you of the next steps."
    ),
    Category.SAFETY: (
        'Your request regarding "{title}" has been received and forwarded to the '
        "Safety and Fire Protection Division. This matter will be treated with high "
        "priority."
    ),
    Category.HR: (
        'Your request regarding "{title}" has been received and forwarded to the '
        "Human Resources Division. An HR representative will contact you to discuss "
        "your request."
    ),
    Category.OTHER: (
        'Your request regarding "{title}" has been received. We will review the '
        "details and route it to the appropriate department for handling."
    ),
}


def categorize(text: str) -> Category:
    return next((category for pattern, category in CATEGORY_RULES if pattern.search(text)), DEFAULT_CATEGORY)


def prioritize(text: str) -> Priority:
    return next((priority for pattern, priority in PRIORITY_RULES if pattern.search(text)), DEFAULT_PRIORITY)


def assigned_unit_for(category: Category) -> str:
    return ASSIGNED_UNITS.get(category, ASSIGNED_UNITS[Category.OTHER])


def response_for(title: str, category: Category) -> str:
    template = RESPONSE_TEMPLATES.get(category, RESPONSE_TEMPLATES[Category.OTHER])
    return template.format(title=title)


def classify(title: Optional[str], description: Optional[str]) -> Classification:
    """
    Classify a request from its title and description.

    Never fails: text that matches no rule gets ``Other`` / ``Medium``.
    """
    title = title or ""
    text = f"{title} {description or ''}".lower()
    category = categorize(text)
    return Classification(
        category=category,
        priority=prioritize(text),
        assigned_unit=assigned_unit_for(category),
        generated_response=response_for(title, category),
    )


def apply_overrides(
    classification: Classification,
    category: Optional[Category] = None,
    priority: Optional[Priority] = None,
) -> Classification:
    """
    Apply caller-chosen category/priority on top of the classifier result.

    Only the two chosen fields change. The routing unit and acknowledgment
    stay as the classifier derived them from the text.
    """
    if category is None and priority is None:
        return classification

    return Classification(
        category=Category(category) if category is not None else classification.category,
        priority=Priority(priority) if priority is not None else classification.priority,
        assigned_unit=classification.assigned_unit,
        generated_response=classification.generated_response,
    )
