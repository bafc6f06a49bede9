"""Built-in prompt templates and experiments.

The registry loads ``ALL_TEMPLATES`` at startup and uses
``DEFAULT_TEMPLATE_IDS`` as the per-category fallback.
"""

from note_analysis.entities import Experiment, ExperimentVariant

from .analysis import ANALYSIS_FULL_V1_JA, ANALYSIS_LIGHT_V2_JA, ANALYSIS_TEMPLATES, ARTICLE_V1_JA
from .eyecatch import EYECATCH_TEMPLATES, EYECATCH_V1_JA, EYECATCH_V2_JSON
from .hashtag import HASHTAG_TEMPLATES, HASHTAG_V1_EN, HASHTAG_V1_JA, HASHTAG_V2_JSON
from .titles import TITLES_TEMPLATES, TITLES_V1_JA, TITLES_V2_JSON

ALL_TEMPLATES = (
    *HASHTAG_TEMPLATES,
    *EYECATCH_TEMPLATES,
    *ANALYSIS_TEMPLATES,
    *TITLES_TEMPLATES,
)

DEFAULT_TEMPLATE_IDS: dict[str, str] = {
    "hashtag": HASHTAG_V1_JA.id,
    "eyecatch": EYECATCH_V1_JA.id,
    "article": ARTICLE_V1_JA.id,
    "analysis": ANALYSIS_FULL_V1_JA.id,
    "titles": TITLES_V1_JA.id,
}


def default_experiments() -> list[Experiment]:
    """Experiments installed when the registry profile enables experiments."""
    return [
        Experiment(
            id="hashtag-format-v1-vs-v2",
            name="Hashtag output format: line list vs JSON",
            category="hashtag",
            description="Compare parse reliability of the text and JSON hashtag prompts",
            variants=[
                ExperimentVariant(id="control", prompt=HASHTAG_V1_JA, traffic_percentage=50),
                ExperimentVariant(id="json", prompt=HASHTAG_V2_JSON, traffic_percentage=50),
            ],
        ),
    ]


__all__ = [
    "ALL_TEMPLATES",
    "DEFAULT_TEMPLATE_IDS",
    "default_experiments",
    "ANALYSIS_FULL_V1_JA",
    "ANALYSIS_LIGHT_V2_JA",
    "ARTICLE_V1_JA",
    "EYECATCH_V1_JA",
    "EYECATCH_V2_JSON",
    "HASHTAG_V1_EN",
    "HASHTAG_V1_JA",
    "HASHTAG_V2_JSON",
    "TITLES_V1_JA",
    "TITLES_V2_JSON",
]
