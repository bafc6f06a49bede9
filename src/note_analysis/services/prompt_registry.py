"""Prompt template registry.

Holds every known template keyed by id and resolves
``(category, version, language)`` lookups with a per-category default as
fallback. One registry is built at application startup and injected through
``app.state``; there is no module-level instance.
"""

import copy
import dataclasses
import logging
import threading
from collections import Counter
from collections.abc import Iterable
from typing import Any

from note_analysis.entities import (
    PromptPerformance,
    PromptSelection,
    PromptTemplate,
    RegistryConfig,
)
from note_analysis.exceptions import DuplicateTemplateError, PromptNotFoundError

logger = logging.getLogger(__name__)


class PromptRegistry:
    """In-memory template registry.

    Templates are immutable once registered except for
    ``metadata.performance``, which ``update_performance`` rewrites.

    ``reload()`` clears and rebuilds the map under the registry lock, but
    callers holding templates from before the reload keep the old objects.

    Example:
        ```python
        from note_analysis.prompts import ALL_TEMPLATES, DEFAULT_TEMPLATE_IDS

        registry = PromptRegistry.create(ALL_TEMPLATES, DEFAULT_TEMPLATE_IDS)
        template = registry.get("hashtag", version="v9")  # falls back to the default
        ```
    """

    def __init__(
        self,
        templates: Iterable[PromptTemplate] = (),
        defaults: dict[str, str] | None = None,
        config: RegistryConfig | None = None,
    ) -> None:
        """Initialize the registry.

        Args:
            templates: Templates loaded now and on every reload().
            defaults: Category to template id used when a lookup has no match.
            config: Registry toggles. Defaults to the development profile.
        """
        self._source = tuple(templates)
        self._source_defaults = dict(defaults or {})
        self._config = config or RegistryConfig()
        self._templates: dict[str, PromptTemplate] = {}
        self._defaults: dict[str, str] = {}
        self._lock = threading.RLock()
        self._load()

    @classmethod
    def create(
        cls,
        templates: Iterable[PromptTemplate] | None = None,
        defaults: dict[str, str] | None = None,
        config: RegistryConfig | None = None,
    ) -> "PromptRegistry":
        """Factory method loading the built-in templates unless others are given."""
        if templates is None:
            from note_analysis.prompts import ALL_TEMPLATES, DEFAULT_TEMPLATE_IDS

            templates = ALL_TEMPLATES
            defaults = DEFAULT_TEMPLATE_IDS if defaults is None else defaults
        return cls(templates=templates, defaults=defaults, config=config)

    def _load(self) -> None:
        with self._lock:
            self._templates.clear()
            for template in self._source:
                # Copy metadata so performance updates never leak into the
                # module-level template definitions.
                self.register_template(
                    dataclasses.replace(template, metadata=copy.deepcopy(template.metadata))
                )
            self._defaults = dict(self._source_defaults)
            logger.debug("Loaded %d prompt templates", len(self._templates))

    def register_template(self, template: PromptTemplate, overwrite: bool = True) -> None:
        """Store a template by id.

        Args:
            template: The template to register
            overwrite: When False an existing id raises DuplicateTemplateError
                instead of being replaced.
        """
        with self._lock:
            if template.id in self._templates:
                if not overwrite:
                    raise DuplicateTemplateError(f"Prompt already registered with ID: {template.id}")
                logger.info("Overwriting prompt template %s", template.id)
            self._templates[template.id] = template

    def set_default(self, category: str, template_id: str) -> None:
        """Make ``template_id`` the fallback for ``category``."""
        with self._lock:
            self.get_by_id(template_id)
            self._defaults[category] = template_id

    def get(
        self,
        category: str,
        version: str | None = None,
        language: str | None = None,
    ) -> PromptTemplate:
        """Resolve a template, falling back to the category default."""
        return self.select(category, version=version, language=language).template

    def select(
        self,
        category: str,
        version: str | None = None,
        language: str | None = None,
    ) -> PromptSelection:
        """Resolve a template for a category.

        Matches on ``version`` (defaulting to the configured default version)
        and, only when given, on ``language``. With no match the category
        default is returned.

        Raises:
            PromptNotFoundError: If nothing matches and the category has no default
        """
        wanted_version = version or self._config.default_version
        with self._lock:
            matches = [
                t
                for t in self._templates.values()
                if t.category == category
                and t.version == wanted_version
                and (language is None or t.language == language)
            ]
            if language is None:
                # Prefer the configured default language among equal versions
                matches.sort(key=lambda t: t.language != self._config.default_language)

            if matches:
                return PromptSelection(template=matches[0])

            default = self._default_for(category)

        if default is None:
            raise PromptNotFoundError(
                f"No prompt found for category: {category}, version: {wanted_version}, "
                f"language: {language or self._config.default_language}"
            )
        logger.debug("No %s prompt for %s/%s, using default %s", category, wanted_version, language, default.id)
        return PromptSelection(template=default)

    def _default_for(self, category: str) -> PromptTemplate | None:
        template_id = self._defaults.get(category)
        if template_id is None:
            return None
        return self._templates.get(template_id)

    def get_by_id(self, template_id: str) -> PromptTemplate:
        with self._lock:
            template = self._templates.get(template_id)
        if template is None:
            raise PromptNotFoundError(f"Prompt not found with ID: {template_id}")
        return template

    def list_by_category(self, category: str) -> list[PromptTemplate]:
        with self._lock:
            return [t for t in self._templates.values() if t.category == category]

    def list_by_version(self, version: str) -> list[PromptTemplate]:
        with self._lock:
            return [t for t in self._templates.values() if t.version == version]

    def list_all(self) -> list[PromptTemplate]:
        with self._lock:
            return list(self._templates.values())

    def search_by_tag(self, tag: str) -> list[PromptTemplate]:
        with self._lock:
            return [t for t in self._templates.values() if tag in t.metadata.tags]

    def get_performance(self, template_id: str) -> PromptPerformance | None:
        return self.get_by_id(template_id).metadata.performance

    def update_performance(
        self,
        template_id: str,
        input_tokens: int,
        output_tokens: int,
        success: bool,
        response_time_ms: float,
    ) -> PromptPerformance:
        """Fold one request's measurements into a template's performance."""
        with self._lock:
            template = self.get_by_id(template_id)
            if template.metadata.performance is None:
                template.metadata.performance = PromptPerformance(usage_count=0)
            template.metadata.performance.record(
                input_tokens=input_tokens,
                output_tokens=output_tokens,
                success=success,
                response_time_ms=response_time_ms,
            )
            return template.metadata.performance

    @property
    def config(self) -> RegistryConfig:
        return self._config

    def update_config(self, **changes: Any) -> RegistryConfig:
        with self._lock:
            self._config = dataclasses.replace(self._config, **changes)
            return self._config

    def reload(self) -> None:
        """Drop all registrations and reload the source templates."""
        self._load()

    def get_stats(self) -> dict[str, Any]:
        templates = self.list_all()
        return {
            "total": len(templates),
            "byCategory": dict(Counter(t.category for t in templates)),
            "byVersion": dict(Counter(t.version for t in templates)),
            "byLanguage": dict(Counter(t.language for t in templates)),
            "withCaching": sum(1 for t in templates if t.caching_enabled),
            "withExamples": sum(1 for t in templates if t.examples),
            "withPerformance": sum(1 for t in templates if t.metadata.performance),
            "defaults": dict(self._defaults),
        }
