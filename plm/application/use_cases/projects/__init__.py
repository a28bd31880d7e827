"""Project and template use cases."""

from plm.application.use_cases.projects.instantiate_from_template import (
    InstantiateProjectFromTemplateUseCase,
)
from plm.application.use_cases.projects.templates import TemplateService, validate_template

__all__ = ["InstantiateProjectFromTemplateUseCase", "TemplateService", "validate_template"]
