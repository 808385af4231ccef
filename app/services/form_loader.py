"""Form loader service with caching and validation.

This module loads form definitions from YAML or JSON files, validates them
against Pydantic schemas, and caches the results for performance.
"""

from functools import lru_cache
from pathlib import Path
from typing import Optional

import yaml
from pydantic import ValidationError

from app.config import get_settings
from app.schemas.form import Form
from app.services.form_checker import FormChecker
from app.logging_config import get_logger

logger = get_logger(__name__)

# Searched in order; YAML is a superset of JSON so one parser reads all three
FORM_FILE_SUFFIXES = (".yaml", ".yml", ".json")


class FormNotFoundError(Exception):
    """Raised when a form definition file is not found."""
    pass


class FormDefinitionError(Exception):
    """Raised when a form definition fails to parse or validate."""
    pass


class FormLoader:
    """Service for loading and caching form definitions.

    Forms are loaded from files in the forms directory and validated
    against Pydantic schemas. Results are cached for performance.
    """

    def __init__(self, forms_dir: Optional[str] = None):
        """Initialize form loader.

        Args:
            forms_dir: Path to forms directory (defaults to settings.forms_dir)
        """
        if forms_dir is None:
            forms_dir = get_settings().forms_dir

        self.forms_dir = Path(forms_dir)

        if not self.forms_dir.exists():
            logger.warning(f"Forms directory not found: {self.forms_dir}")

    def _find_file(self, form_id: str) -> Optional[Path]:
        # Form IDs become file names; never let one escape the directory
        if not form_id or Path(form_id).name != form_id or form_id.startswith("."):
            return None
        for suffix in FORM_FILE_SUFFIXES:
            candidate = self.forms_dir / f"{form_id}{suffix}"
            if candidate.exists():
                return candidate
        return None

    @lru_cache(maxsize=128)
    def load_form(self, form_id: str) -> Form:
        """Load and validate a form definition.

        Results are cached for performance. Clear cache with
        clear_cache() if definitions change on disk.

        Args:
            form_id: Form identifier (file name without extension)

        Returns:
            Validated Form object

        Raises:
            FormNotFoundError: If no definition file exists
            FormDefinitionError: If the file fails to parse or validate

        Example:
            >>> loader = FormLoader()
            >>> form = loader.load_form("customer_feedback")
            >>> print(form.title)
            'Customer Feedback'
        """
        path = self._find_file(form_id)
        if path is None:
            logger.info(f"Form file not found: {form_id}")
            raise FormNotFoundError(f"Form '{form_id}' not found in {self.forms_dir}")

        try:
            with open(path, "r", encoding="utf-8") as f:
                raw_data = yaml.safe_load(f)
        except yaml.YAMLError as e:
            logger.error(f"Parsing error for form {form_id}: {e}")
            raise FormDefinitionError(f"Invalid YAML/JSON in form '{form_id}': {e}")
        except OSError as e:
            logger.error(f"Error reading form file {path}: {e}")
            raise FormDefinitionError(f"Error reading form '{form_id}': {e}")

        if not isinstance(raw_data, dict):
            raise FormDefinitionError(f"Form '{form_id}' must be a mapping at the top level")

        # The file name is the form's identity
        raw_data.setdefault("id", form_id)

        try:
            form = Form.model_validate(raw_data)
        except ValidationError as e:
            logger.error(f"Validation error for form {form_id}: {e}")
            raise FormDefinitionError(f"Validation failed for form '{form_id}': {e}")

        if form.id != form_id:
            raise FormDefinitionError(
                f"Form file '{path.name}' declares id '{form.id}', expected '{form_id}'"
            )

        FormChecker.check(form)

        logger.info(f"Successfully loaded form: {form_id} ({len(form.questions)} questions)")
        return form

    def list_forms(self) -> list[str]:
        """List all available form IDs.

        Returns:
            Sorted list of form IDs (file names without extension)
        """
        if not self.forms_dir.exists():
            return []

        form_ids = {
            path.stem
            for path in self.forms_dir.iterdir()
            if path.is_file() and path.suffix in FORM_FILE_SUFFIXES
        }

        logger.debug(f"Found {len(form_ids)} forms: {sorted(form_ids)}")
        return sorted(form_ids)

    def clear_cache(self):
        """Clear the form cache.

        Useful during development or when forms are updated at runtime.
        """
        self.load_form.cache_clear()
        logger.info("Form cache cleared")


# Global singleton instance
_loader_instance: Optional[FormLoader] = None


def get_form_loader() -> FormLoader:
    """Get global FormLoader instance.

    Creates singleton instance on first call.

    Returns:
        Global FormLoader instance
    """
    global _loader_instance
    if _loader_instance is None:
        _loader_instance = FormLoader()
    return _loader_instance
