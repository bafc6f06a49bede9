"""Builds provider requests from prompt templates."""

import re
from dataclasses import dataclass, field
from typing import Any

from note_analysis.entities import PromptTemplate
from note_analysis.exceptions import PromptValidationError
from note_analysis.services.token_budget import estimate_tokens

_PLACEHOLDER = re.compile(r"\{\{([^}]+)\}\}")
_VERSION = re.compile(r"^v\d+$")

VALID_LANGUAGES = ("ja", "en")
VALID_CATEGORIES = ("hashtag", "eyecatch", "article", "analysis", "titles")
VALID_OUTPUT_TYPES = ("text", "json", "structured")
DEFAULT_MAX_TOKENS = 1000


def build_system_blocks(system_prompt: str, cache: bool) -> list[dict[str, Any]]:
    """Anthropic system blocks, marked ephemeral-cacheable when ``cache`` is set."""
    block: dict[str, Any] = {"type": "text", "text": system_prompt}
    if cache:
        block["cache_control"] = {"type": "ephemeral"}
    return [block]


def _render(value: Any) -> str:
    if isinstance(value, (list, tuple)):
        return ", ".join(str(v) for v in value)
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


@dataclass
class ValidationResult:
    valid: bool
    errors: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)
    estimated_tokens: dict[str, int] | None = None

    def format(self) -> str:
        lines = ["Validation passed" if self.valid else "Validation failed"]
        if self.errors:
            lines.append("Errors:")
            lines.extend(f"  - {error}" for error in self.errors)
        if self.warnings:
            lines.append("Warnings:")
            lines.extend(f"  - {warning}" for warning in self.warnings)
        return "\n".join(lines)


def validate_prompt(template: PromptTemplate) -> ValidationResult:
    """Check a template's structure and placeholder consistency.

    Errors make the template unusable; warnings flag likely mistakes such
    as declared-but-unused variables or very short cache TTLs.
    """
    errors: list[str] = []
    warnings: list[str] = []

    if not template.id.strip():
        errors.append("Prompt ID is required")
    if not template.system_prompt.strip():
        errors.append("System prompt is required")
    if not template.user_prompt_template.strip():
        errors.append("User prompt template is required")

    if not template.metadata.author:
        warnings.append("Author metadata is missing")
    if not template.metadata.created_at:
        errors.append("CreatedAt metadata is required")
    if not template.metadata.description:
        warnings.append("Description metadata is missing")

    if not _VERSION.match(template.version):
        errors.append(f"Invalid version: {template.version}")
    if template.language not in VALID_LANGUAGES:
        errors.append(f"Invalid language: {template.language}")
    if template.category not in VALID_CATEGORIES:
        errors.append(f"Invalid category: {template.category}")

    if template.max_tokens is not None:
        if template.max_tokens < 50:
            warnings.append("Max tokens is very low (< 50), may truncate responses")
        if template.max_tokens > 4096:
            warnings.append("Max tokens is very high (> 4096), may be costly")

    if template.temperature is not None:
        if not 0 <= template.temperature <= 1:
            errors.append("Temperature must be between 0 and 1")
        elif template.temperature > 0.9:
            warnings.append("High temperature (> 0.9) may produce inconsistent results")

    for variable in template.variables:
        if f"{{{{{variable}}}}}" not in template.user_prompt_template:
            warnings.append(f'Variable "{variable}" declared but not used in template')
    for name in _PLACEHOLDER.findall(template.user_prompt_template):
        if name not in template.variables:
            errors.append(f'Placeholder "{{{{{name}}}}}" used but not declared in variables')

    if _PLACEHOLDER.search(template.system_prompt):
        warnings.append("System prompt contains variable placeholders - these will not be replaced")

    if template.caching is not None:
        if template.caching.enabled and not template.caching.ttl:
            errors.append("Caching TTL is required when caching is enabled")
        elif template.caching.ttl and template.caching.ttl < 60:
            warnings.append("Caching TTL is very short (< 60s), may not be effective")
        elif template.caching.ttl and template.caching.ttl > 600:
            warnings.append("Caching TTL is very long (> 10min), may serve stale results")

    if template.output_format is not None:
        if template.output_format.type not in VALID_OUTPUT_TYPES:
            errors.append(f"Invalid output format type: {template.output_format.type}")
        elif template.output_format.type == "json" and not template.output_format.schema:
            warnings.append("JSON output format should have a schema defined")

    for example in template.examples:
        for name in example.input:
            if name not in template.variables:
                warnings.append(f"Example uses undeclared variable: {name}")

    performance = template.metadata.performance
    if performance is not None:
        if not 0 <= performance.success_rate <= 1:
            errors.append("Success rate must be between 0 and 1")
        if performance.quality_score is not None and not 0 <= performance.quality_score <= 5:
            errors.append("Quality score must be between 0 and 5")
        if performance.usage_count < 0:
            errors.append("Usage count cannot be negative")

    return ValidationResult(valid=not errors, errors=errors, warnings=warnings)


@dataclass(frozen=True)
class BuiltPrompt:
    """A template rendered with concrete variables, ready for the gateway."""

    system_prompt: str
    messages: list[dict[str, Any]]
    max_tokens: int
    temperature: float | None
    use_cache: bool
    metadata: dict[str, Any]

    @property
    def system(self) -> list[dict[str, Any]]:
        return build_system_blocks(self.system_prompt, self.use_cache)


class PromptBuilder:
    """Renders templates into system and user messages."""

    def __init__(self, skip_validation: bool = False, caching_enabled: bool = True) -> None:
        self._skip_validation = skip_validation
        self._caching_enabled = caching_enabled

    def build(self, template: PromptTemplate, variables: dict[str, Any]) -> BuiltPrompt:
        """Render ``template`` with ``variables``.

        Raises:
            PromptValidationError: If the template is invalid or a variable is missing
        """
        if not self._skip_validation:
            result = self.validate_build(template, variables)
            if not result.valid:
                raise PromptValidationError(f"Prompt validation failed: {', '.join(result.errors)}")

        user_prompt = self.inject_variables(template.user_prompt_template, variables)
        return BuiltPrompt(
            system_prompt=template.system_prompt,
            messages=[{"role": "user", "content": user_prompt}],
            max_tokens=template.max_tokens or DEFAULT_MAX_TOKENS,
            temperature=template.temperature,
            use_cache=self._caching_enabled and template.caching_enabled,
            metadata={
                "promptId": template.id,
                "version": template.version,
                "category": template.category,
            },
        )

    @staticmethod
    def inject_variables(text: str, variables: dict[str, Any]) -> str:
        """Replace ``{{name}}`` placeholders.

        Lists are joined with ", " and booleans rendered lower-case.
        Substitution is a single pass over ``text``, so injected values are
        never scanned for placeholders themselves.
        """
        missing = [name for name in _PLACEHOLDER.findall(text) if name not in variables]
        if missing:
            names = ", ".join(f"{{{{{name}}}}}" for name in dict.fromkeys(missing))
            raise PromptValidationError(f"Missing variables in template: {names}")

        return _PLACEHOLDER.sub(lambda match: _render(variables[match.group(1)]), text)

    def validate_build(self, template: PromptTemplate, variables: dict[str, Any]) -> ValidationResult:
        result = validate_prompt(template)
        if not result.valid:
            return result

        for name in template.variables:
            if name not in variables:
                result.errors.append(f"Missing required variable: {name}")
        for name in variables:
            if name not in template.variables:
                result.warnings.append(f"Unexpected variable: {name}")

        if not result.errors:
            user_prompt = self.inject_variables(template.user_prompt_template, variables)
            input_tokens = estimate_tokens(template.system_prompt + user_prompt)
            output_tokens = template.max_tokens or DEFAULT_MAX_TOKENS
            result.estimated_tokens = {
                "input": input_tokens,
                "output": output_tokens,
                "total": input_tokens + output_tokens,
            }

        result.valid = not result.errors
        return result

    def preview(self, template: PromptTemplate, variables: dict[str, Any]) -> dict[str, Any]:
        user_prompt = self.inject_variables(template.user_prompt_template, variables)
        return {
            "system": template.system_prompt,
            "user": user_prompt,
            "metadata": {
                "id": template.id,
                "version": template.version,
                "category": template.category,
                "maxTokens": template.max_tokens,
                "temperature": template.temperature,
                "cachingEnabled": template.caching_enabled,
                "estimatedInputTokens": estimate_tokens(template.system_prompt + user_prompt),
                "estimatedOutputTokens": template.max_tokens or DEFAULT_MAX_TOKENS,
            },
        }
