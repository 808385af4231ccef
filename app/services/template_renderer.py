"""Template rendering service using Jinja2.

Confirmation messages may reference the quiz result and form title, e.g.
"You scored {{ score }} out of {{ max_score }}". Templates are rendered with
StrictUndefined so a typo in a variable name is reported instead of
silently rendering as blank. Output is plain text carried in JSON, so it
is not HTML-escaped.
"""

from typing import Optional

from jinja2 import BaseLoader, Environment, StrictUndefined, TemplateError

from app.config import get_settings
from app.schemas.form import Form
from app.services.scoring import ScoreResult
from app.logging_config import get_logger

logger = get_logger(__name__)


class TemplateRenderError(Exception):
    """Raised when template rendering fails."""
    pass


class TemplateRenderer:
    """Service for rendering Jinja2 templates with fill-session context."""

    def __init__(self):
        """Initialize Jinja2 environment with strict settings."""
        self.env = Environment(
            loader=BaseLoader(),
            autoescape=False,
            undefined=StrictUndefined,
        )

    def render(self, template_text: str, context: dict) -> str:
        """Render template with context variables.

        Args:
            template_text: Template string with Jinja2 syntax
            context: Dictionary of variables for template

        Returns:
            Rendered text

        Raises:
            TemplateRenderError: If template is invalid or variables are missing

        Example:
            >>> renderer = TemplateRenderer()
            >>> renderer.render("Score: {{ score }}", {"score": 7})
            'Score: 7'
        """
        try:
            template = self.env.from_string(template_text)
            return template.render(context)
        except TemplateError as e:
            logger.error(f"Template rendering error: {e}")
            raise TemplateRenderError(f"Failed to render template: {e}")

    def render_confirmation(self, form: Form, score: Optional[ScoreResult] = None) -> str:
        """Render the message shown after a successful submission.

        Falls back to the configured default message when the form has
        none. A broken template is reported and the raw text is shown.

        Args:
            form: Submitted form
            score: Quiz result, if the form is in quiz mode

        Returns:
            Confirmation text
        """
        template_text = form.settings.confirmation_message or get_settings().default_confirmation_message
        context = {
            "form_title": form.title,
            "score": score.score if score else None,
            "max_score": score.max_score if score else None,
        }
        try:
            return self.render(template_text, context)
        except TemplateRenderError:
            logger.warning(
                f"Showing unrendered confirmation message for form {form.id}",
                extra={"form_id": form.id},
            )
            return template_text


# Global singleton instance
_renderer_instance: Optional[TemplateRenderer] = None


def get_template_renderer() -> TemplateRenderer:
    """Get global TemplateRenderer instance.

    Returns:
        Global TemplateRenderer instance
    """
    global _renderer_instance
    if _renderer_instance is None:
        _renderer_instance = TemplateRenderer()
    return _renderer_instance
