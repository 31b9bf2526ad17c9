"""
Message Templates - Named Templates with {{placeholder}} Substitution

Deal notes and notification text are produced from a template id and a
record of named fields. Substitution is kept apart from the domain code that
supplies the fields.
"""

from __future__ import annotations

import re
from typing import Any, Final, Mapping


# =============================================================================
# Template Registry
# =============================================================================

MESSAGE_TEMPLATES: Final[dict[str, str]] = {
    "deal_created": "Deal {{deal_number}} created for {{buyer_name}} at {{agreed_price}}",
    "stage_progressed": "Deal {{deal_number}} moved from {{from_stage}} to {{to_stage}} by {{agent_id}}",
    "payment_recorded": (
        "{{payment_type}} payment of {{amount}} recorded on deal {{deal_number}}"
        " (receipt {{receipt_number}})"
    ),
    "deal_completed": "Deal {{deal_number}} completed by {{agent_id}}",
    "deal_cancelled": "Deal cancelled: {{reason}}",
    "commission_created": "Commission of {{amount}} created for agent {{agent_id}} on {{property_id}}",
    "commission_approved": "Commission {{commission_id}} approved by {{approved_by}}",
    "commission_rejected": "Commission {{commission_id}} rejected: {{reason}}",
    "commission_overridden": (
        "Commission {{commission_id}} overridden to {{amount}} by {{overridden_by}}: {{reason}}"
    ),
}

PLACEHOLDER_PATTERN: Final = re.compile(r"\{\{\s*([A-Za-z_][A-Za-z0-9_]*)\s*\}\}")


# =============================================================================
# Rendering
# =============================================================================


def substitute(template: str, fields: Mapping[str, Any]) -> str:
    """
    Replace {{name}} placeholders with values from fields.

    Placeholders with no matching field are left untouched so a missing
    value is visible in the output rather than silently blank.
    """

    def replace(match: re.Match) -> str:
        name = match.group(1)
        if name not in fields or fields[name] is None:
            return match.group(0)
        return str(fields[name])

    return PLACEHOLDER_PATTERN.sub(replace, template)


def render_template(template_id: str, fields: Mapping[str, Any]) -> str:
    """
    Render a registered template.

    Raises:
        KeyError: If template_id is not registered
    """
    if template_id not in MESSAGE_TEMPLATES:
        raise KeyError(f"Unknown message template: {template_id}")
    return substitute(MESSAGE_TEMPLATES[template_id], fields)


def template_placeholders(template_id: str) -> tuple[str, ...]:
    """Names of the placeholders a registered template expects."""
    return tuple(PLACEHOLDER_PATTERN.findall(MESSAGE_TEMPLATES[template_id]))
