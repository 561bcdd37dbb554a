"""Template rendering for alert e-mails using Jinja2.

Each alert kind has three templates in ``email_templates``:
``<kind>_subject.j2``, ``<kind>_body.html.j2`` and ``<kind>_body.txt.j2``.
"""

import logging
from typing import Dict

from jinja2 import Environment, PackageLoader, StrictUndefined, TemplateError

from .models import NotificationTemplateError

logger = logging.getLogger(__name__)

INSTANT_MATCH = "instant_match"
DIGEST = "digest"
TEMPLATE_KINDS = (INSTANT_MATCH, DIGEST)


class TemplateRenderer:
    """Renders subject, HTML body and text body for an alert kind.

    Undefined variables raise instead of rendering as empty strings, so a
    context builder that forgets a key fails loudly.
    """

    def __init__(self, template_dir: str = "email_templates"):
        self.env = Environment(
            loader=PackageLoader("listing_alerts.notifications", template_dir),
            autoescape=True,
            undefined=StrictUndefined,
            trim_blocks=True,
            lstrip_blocks=True,
        )

    def render(self, kind: str, context: Dict) -> Dict[str, str]:
        """Render all three templates of ``kind``.

        Returns:
            Dictionary with subject (single line), html_body and text_body

        Raises:
            NotificationTemplateError: If the kind is unknown or rendering fails
        """
        if kind not in TEMPLATE_KINDS:
            raise NotificationTemplateError(f"Unknown template kind: {kind}")

        try:
            subject = self.env.get_template(f"{kind}_subject.j2").render(context)
            html_body = self.env.get_template(f"{kind}_body.html.j2").render(context)
            text_body = self.env.get_template(f"{kind}_body.txt.j2").render(context)
        except TemplateError as e:
            error_msg = f"Template rendering failed for {kind}: {e}"
            logger.error(error_msg, exc_info=True)
            raise NotificationTemplateError(error_msg) from e

        return {
            "subject": " ".join(subject.split()),
            "html_body": html_body,
            "text_body": text_body,
        }
