"""
Message personalization for column triggers.

Replaces lead placeholders in a trigger template. Both Spanish and English
token spellings are accepted because templates are written by CRM users.
"""
from typing import Callable, Dict, Mapping, Optional

# token -> accessor over the lead fields
TOKEN_FIELDS: Dict[str, Callable[[Mapping[str, Optional[str]]], Optional[str]]] = {
    "{{nombre}}": lambda fields: fields.get("name"),
    "{{name}}": lambda fields: fields.get("name"),
    "{{telefono}}": lambda fields: fields.get("phone"),
    "{{phone}}": lambda fields: fields.get("phone"),
}


def render(template: str, fields: Mapping[str, Optional[str]]) -> str:
    """
    Render a trigger template for one lead.

    Args:
        template: Message text, may contain {{nombre}}, {{name}}, {{telefono}}, {{phone}}
        fields: {"name": ..., "phone": ...}

    Returns:
        The literal text to send. Every occurrence of a known token is
        replaced (case-sensitive); unknown tokens are left as they are.
        Nothing is escaped.
    """
    message = template or ""
    for token, accessor in TOKEN_FIELDS.items():
        if token in message:
            message = message.replace(token, accessor(fields) or "")
    return message
