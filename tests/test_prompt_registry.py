"""
Tests for the prompt template registry.
"""

import dataclasses

import pytest

from note_analysis.entities import RegistryConfig
from note_analysis.exceptions import DuplicateTemplateError, PromptNotFoundError
from note_analysis.prompts import (
    ALL_TEMPLATES,
    DEFAULT_TEMPLATE_IDS,
    HASHTAG_V1_EN,
    HASHTAG_V1_JA,
    HASHTAG_V2_JSON,
)
from note_analysis.services import PromptRegistry, validate_prompt


@pytest.fixture
def registry():
    return PromptRegistry.create()


def test_builtin_templates_are_valid():
    """Every shipped template passes structural validation."""
    for template in ALL_TEMPLATES:
        result = validate_prompt(template)
        assert result.valid, f"{template.id}: {result.errors}"


def test_every_category_has_a_default(registry):
    for category, template_id in DEFAULT_TEMPLATE_IDS.items():
        assert registry.get(category).id == template_id


def test_get_by_version_and_language(registry):
    assert registry.get("hashtag", version="v2").id == HASHTAG_V2_JSON.id
    assert registry.get("hashtag", version="v1", language="en").id == HASHTAG_V1_EN.id


def test_default_language_is_preferred(registry):
    """Without a language the configured default language wins."""
    assert registry.get("hashtag", version="v1").id == HASHTAG_V1_JA.id


def test_unknown_version_falls_back_to_default(registry):
    selection = registry.select("hashtag", version="v9")
    assert selection.template.id == HASHTAG_V1_JA.id
    assert not selection.from_experiment


def test_unknown_category_raises(registry):
    with pytest.raises(PromptNotFoundError):
        registry.get("poetry")


def test_get_by_id(registry):
    assert registry.get_by_id(HASHTAG_V1_JA.id).category == "hashtag"
    with pytest.raises(PromptNotFoundError):
        registry.get_by_id("missing")


def test_register_without_overwrite_rejects_duplicate(registry):
    with pytest.raises(DuplicateTemplateError):
        registry.register_template(HASHTAG_V1_JA, overwrite=False)


def test_register_overwrites_by_default(registry):
    changed = dataclasses.replace(HASHTAG_V1_JA, max_tokens=123)
    registry.register_template(changed)
    assert registry.get_by_id(HASHTAG_V1_JA.id).max_tokens == 123


def test_set_default(registry):
    registry.set_default("hashtag", HASHTAG_V2_JSON.id)
    assert registry.get("hashtag", version="v9").id == HASHTAG_V2_JSON.id

    with pytest.raises(PromptNotFoundError):
        registry.set_default("hashtag", "missing")


def test_update_performance_does_not_touch_module_templates(registry):
    """Performance is tracked on the registry's own copy of each template."""
    before = HASHTAG_V1_JA.metadata.performance.usage_count

    performance = registry.update_performance(HASHTAG_V1_JA.id, 400, 100, True, 900.0)

    assert performance.usage_count == before + 1
    assert HASHTAG_V1_JA.metadata.performance.usage_count == before


def test_update_performance_starts_empty_record(registry):
    performance = registry.update_performance(HASHTAG_V1_EN.id, 400, 100, False, 1000.0)
    assert performance.usage_count == 1
    assert performance.avg_input_tokens == 400
    assert performance.success_rate == 0.0


def test_reload_discards_runtime_changes(registry):
    registry.register_template(dataclasses.replace(HASHTAG_V1_JA, id="custom-v1-ja"))
    registry.update_performance(HASHTAG_V1_EN.id, 400, 100, True, 1000.0)

    registry.reload()

    with pytest.raises(PromptNotFoundError):
        registry.get_by_id("custom-v1-ja")
    assert registry.get_performance(HASHTAG_V1_EN.id) is None


def test_config_changes_default_version():
    registry = PromptRegistry.create(config=RegistryConfig(default_version="v2"))
    assert registry.get("hashtag").id == HASHTAG_V2_JSON.id


def test_search_and_listing(registry):
    assert HASHTAG_V2_JSON in registry.search_by_tag("json")
    assert {t.id for t in registry.list_by_category("hashtag")} >= {HASHTAG_V1_JA.id, HASHTAG_V1_EN.id}
    assert all(t.version == "v2" for t in registry.list_by_version("v2"))


def test_get_stats(registry):
    stats = registry.get_stats()
    assert stats["total"] == len(ALL_TEMPLATES)
    assert stats["byCategory"]["hashtag"] == 3
    assert stats["defaults"] == DEFAULT_TEMPLATE_IDS
