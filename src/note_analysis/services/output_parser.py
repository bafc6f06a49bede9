"""Parsing and normalization of model output.

Model text is first *extracted* into a plain dict according to the
template's output format (``text``, ``json`` or ``structured``), then
*normalized* into the response shape of an endpoint.

In ``lenient`` mode shape deviations are repaired: lists are truncated or
padded, strings clipped, scores clamped, and missing sections replaced by
defaults. In ``strict`` mode the template's OutputValidation constraints are
enforced on the extracted data and any deviation raises ParsingError.
Unparseable output raises ParsingError in both modes.
"""

import json
import logging
import math
import re
from typing import Any

from note_analysis.config import settings
from note_analysis.entities import OutputValidation, PromptTemplate
from note_analysis.exceptions import ParsingError

logger = logging.getLogger(__name__)

HASHTAG_COUNT = 20
MAX_TITLES = 5
MAX_INSIGHTS = 5
MAX_SUMMARY_LENGTH = 100
DEFAULT_PALETTE = ("#4A90E2", "#50E3C2", "#F5A623", "#FFFFFF")
DEFAULT_IMAGE_PROMPT = (
    "A modern, professional illustration representing the article's theme "
    "with clean composition and vibrant colors"
)
DEFAULT_COMPOSITION_IDEAS = ("シンプルな構図", "中央配置", "バランスの取れたレイアウト")
DEFAULT_IMAGE_SUMMARY = "記事の内容を視覚的に表現したイメージ"

# Generic note.com tags used to pad short hashtag lists
FALLBACK_HASHTAGS = (
    "#note",
    "#ブログ",
    "#コラム",
    "#エッセイ",
    "#日記",
    "#毎日note",
    "#note初心者",
    "#やってみた",
    "#学び",
    "#気づき",
    "#考え方",
    "#仕事",
    "#ライフスタイル",
    "#自己成長",
    "#読書",
    "#おすすめ",
    "#ノウハウ",
    "#体験談",
    "#これからの働き方",
    "#最近の学び",
)

_CODE_FENCE = re.compile(r"```(?:json)?\s*\n?")
_LIST_MARKER = re.compile(r"^(?:[-*・]|\d+[.)])\s*")
_SECTION = re.compile(r"^---([A-Z_]+)---\s*$", re.MULTILINE)

ARTICLE_SECTIONS = ("HASHTAGS", "IMAGE_PROMPT", "COMPOSITION_IDEAS", "SUMMARY")

VALIDATION_MODES = ("lenient", "strict")


def _excerpt(text: str, size: int = 200) -> str:
    if len(text) <= size * 2:
        return text
    return f"{text[:size]} ... {text[-size:]}"


def _lookup(data: dict[str, Any], dotted: str) -> Any:
    value: Any = data
    for part in dotted.split("."):
        if not isinstance(value, dict):
            return None
        value = value.get(part)
    return value


def _lines(text: str) -> list[str]:
    return [line.strip() for line in text.splitlines() if line.strip()]


class OutputNormalizer:
    """Turns raw completion text into endpoint payloads."""

    def __init__(self, mode: str = "lenient") -> None:
        if mode not in VALIDATION_MODES:
            raise ValueError(f"mode must be one of {list(VALIDATION_MODES)}, got {mode}")
        self._mode = mode

    @classmethod
    def create(cls) -> "OutputNormalizer":
        return cls(mode=settings.output_validation_mode)

    @property
    def mode(self) -> str:
        return self._mode

    @property
    def strict(self) -> bool:
        return self._mode == "strict"

    # Extraction

    def extract_json(self, text: str) -> dict[str, Any]:
        """Parse a JSON object, tolerating code fences and surrounding prose."""
        cleaned = _CODE_FENCE.sub("", text).strip()
        try:
            data = json.loads(cleaned)
        except json.JSONDecodeError:
            start, end = cleaned.find("{"), cleaned.rfind("}")
            if start == -1 or end <= start:
                self._fail(text, "no JSON object found")
            try:
                data = json.loads(cleaned[start : end + 1])
            except json.JSONDecodeError as e:
                self._fail(text, f"invalid JSON: {e}")

        if not isinstance(data, dict):
            self._fail(text, "JSON root is not an object")
        return data

    def extract_sections(self, text: str) -> dict[str, str]:
        """Split ``---NAME---`` delimited output into a name to body map."""
        markers = list(_SECTION.finditer(text))
        if not markers:
            self._fail(text, "no section markers found")

        sections: dict[str, str] = {}
        for i, marker in enumerate(markers):
            end = markers[i + 1].start() if i + 1 < len(markers) else len(text)
            sections[marker.group(1)] = text[marker.end() : end].strip()
        return sections

    @staticmethod
    def hashtag_lines(text: str) -> list[str]:
        """Lines that are hashtags, with any list marker removed."""
        tags = []
        for line in _lines(text):
            line = _LIST_MARKER.sub("", line)
            if line.startswith("#") or line.startswith("＃"):
                tags.append(line)
        return tags

    def _fail(self, text: str, reason: str) -> None:
        logger.error("Failed to parse model output (%s): %r", reason, _excerpt(text))
        raise ParsingError("Failed to parse analysis data")

    # Constraint checks

    def check_constraints(self, data: dict[str, Any], validation: OutputValidation | None) -> None:
        """Enforce declared output constraints in strict mode."""
        if not self.strict or validation is None:
            return

        problems = []
        for name in validation.required:
            if not _lookup(data, name):
                problems.append(f"missing {name}")
        for name, minimum in validation.min_length.items():
            value = _lookup(data, name)
            if value is not None and len(value) < minimum:
                problems.append(f"{name} has {len(value)} items, expected at least {minimum}")
        for name, maximum in validation.max_length.items():
            value = _lookup(data, name)
            if value is not None and len(value) > maximum:
                problems.append(f"{name} has length {len(value)}, expected at most {maximum}")

        if problems:
            logger.error("Model output violates constraints: %s", "; ".join(problems))
            raise ParsingError("Analysis output did not match the expected format")

    # Field normalizers

    def _list(self, value: Any, limit: int, item_length: int | None = None) -> list[str]:
        if not isinstance(value, list):
            return []
        items = [str(item).strip() for item in value if str(item).strip()]
        if item_length is not None:
            items = [item[:item_length] for item in items]
        return items[:limit]

    def _text(self, value: Any, limit: int | None = None, default: str = "") -> str:
        text = str(value).strip() if value not in (None, "") else default
        return text[:limit] if limit is not None else text

    def _score(self, value: Any) -> int:
        try:
            number = float(value)
        except (TypeError, ValueError):
            number = math.nan
        except OverflowError:
            # integers too large for a float
            number = math.inf if value > 0 else -math.inf
        if math.isnan(number):
            if self.strict:
                raise ParsingError("Analysis output contains a non-numeric score")
            return 0
        if math.isinf(number):
            if self.strict:
                raise ParsingError("Analysis output contains a score outside 0-100")
            return 100 if number > 0 else 0

        score = int(round(number))
        if self.strict and not 0 <= score <= 100:
            raise ParsingError("Analysis output contains a score outside 0-100")
        return min(max(score, 0), 100)

    def _objects(self, value: Any, keys: tuple[str, ...], limit: int = 5) -> list[dict[str, str]]:
        if not isinstance(value, list):
            return []
        items = []
        for item in value[:limit]:
            if isinstance(item, dict):
                items.append({key: self._text(item.get(key)) for key in keys})
        return items

    def hashtags(self, tags: Any) -> list[str]:
        """Exactly HASHTAG_COUNT unique ``#``-prefixed tags.

        Raises:
            ParsingError: If no tag could be extracted at all
        """
        seen: list[str] = []
        for tag in tags if isinstance(tags, list) else []:
            tag = "".join(str(tag).split()).replace("＃", "#")
            if not tag or tag == "#":
                continue
            if not tag.startswith("#"):
                tag = f"#{tag}"
            if tag not in seen:
                seen.append(tag)

        if not seen:
            logger.error("Model output contained no hashtags")
            raise ParsingError("Failed to generate hashtags")

        if len(seen) != HASHTAG_COUNT:
            logger.warning("Got %d hashtags (expected %d)", len(seen), HASHTAG_COUNT)
        for fallback in FALLBACK_HASHTAGS:
            if len(seen) >= HASHTAG_COUNT:
                break
            if fallback not in seen:
                seen.append(fallback)
        return seen[:HASHTAG_COUNT]

    # Endpoint payloads

    def parse_hashtags(self, text: str, template: PromptTemplate) -> dict[str, Any]:
        """Payload for /api/generate-hashtags: ``{"hashtags": [...]}``."""
        if template.output_format is not None and template.output_format.type == "json":
            raw = {"hashtags": self.extract_json(text).get("hashtags")}
        else:
            raw = {"hashtags": self.hashtag_lines(text)}
        self.check_constraints(raw, _validation(template))
        return {"hashtags": self.hashtags(raw["hashtags"])}

    def parse_article(self, text: str, template: PromptTemplate) -> dict[str, Any]:
        """Payload for /api/analyze-article: hashtags plus an eye-catch block."""
        if template.output_format is not None and template.output_format.type == "json":
            data = self.extract_json(text)
            eyecatch = data.get("eyeCatch") if isinstance(data.get("eyeCatch"), dict) else data
            raw = {
                "hashtags": data.get("hashtags"),
                "imagePrompt": eyecatch.get("imagePrompt") or eyecatch.get("mainPrompt"),
                "compositionIdeas": eyecatch.get("compositionIdeas"),
                "summary": eyecatch.get("summary"),
            }
        else:
            sections = self.extract_sections(text)
            raw = {
                "hashtags": self.hashtag_lines(sections.get("HASHTAGS", "")),
                "imagePrompt": sections.get("IMAGE_PROMPT", ""),
                "compositionIdeas": _lines(sections.get("COMPOSITION_IDEAS", "")),
                "summary": sections.get("SUMMARY", ""),
            }
        self.check_constraints(raw, _validation(template))

        ideas = self._list(raw["compositionIdeas"], 5) or list(DEFAULT_COMPOSITION_IDEAS)
        return {
            "hashtags": self.hashtags(raw["hashtags"]),
            "eyeCatch": {
                "imagePrompt": self._text(raw["imagePrompt"], default=DEFAULT_IMAGE_PROMPT),
                "compositionIdeas": ideas,
                "summary": self._text(raw["summary"], MAX_SUMMARY_LENGTH),
            },
        }

    def parse_eyecatch(self, text: str, template: PromptTemplate) -> dict[str, Any]:
        """Payload for /api/generate-eyecatch.

        Sectioned output yields the image prompt, composition ideas and
        summary; JSON output may add a color palette, mood and style.
        """
        if template.output_format is not None and template.output_format.type == "json":
            data = self.extract_json(text)
            self.check_constraints(data, _validation(template))
            raw = {
                "imagePrompt": data.get("mainPrompt") or data.get("imagePrompt"),
                "compositionIdeas": data.get("compositionIdeas"),
                "summary": data.get("summary"),
            }
            extras = {
                "colorPalette": self._list(data.get("colorPalette"), 4, 20) or list(DEFAULT_PALETTE),
                "mood": self._text(data.get("mood"), 50) or None,
                "style": self._text(data.get("style"), 50) or None,
            }
        else:
            sections = self.extract_sections(text)
            raw = {
                "imagePrompt": sections.get("IMAGE_PROMPT", ""),
                "compositionIdeas": [
                    _LIST_MARKER.sub("", line) for line in _lines(sections.get("COMPOSITION_IDEAS", ""))
                ],
                "summary": sections.get("SUMMARY", ""),
            }
            self.check_constraints(raw, _validation(template))
            extras = {}

        ideas = self._list(raw["compositionIdeas"], 5) or list(DEFAULT_COMPOSITION_IDEAS)
        return {
            "eyeCatch": {
                "imagePrompt": self._text(raw["imagePrompt"], default=DEFAULT_IMAGE_PROMPT),
                "compositionIdeas": ideas,
                "summary": self._text(raw["summary"], MAX_SUMMARY_LENGTH, DEFAULT_IMAGE_SUMMARY),
                **extras,
            },
        }

    def parse_titles(self, text: str, template: PromptTemplate) -> dict[str, Any]:
        """Payload for /api/generate-titles: up to MAX_TITLES title strings.

        Raises:
            ParsingError: If no title could be extracted at all
        """
        if template.output_format is not None and template.output_format.type == "json":
            items = self.extract_json(text).get("titles")
            items = items if isinstance(items, list) else []
            candidates = [item.get("title") if isinstance(item, dict) else item for item in items]
        else:
            candidates = [_LIST_MARKER.sub("", line) for line in _lines(text)]

        raw = {"titles": [str(c).strip() for c in candidates if c is not None and str(c).strip()]}
        self.check_constraints(raw, _validation(template))

        titles = self._list(raw["titles"], MAX_TITLES, 100)
        if not titles:
            logger.error("Model output contained no titles: %r", _excerpt(text))
            raise ParsingError("Failed to generate titles")
        if len(titles) < MAX_TITLES:
            logger.warning("Got %d titles (expected %d)", len(titles), MAX_TITLES)
        return {"titles": titles}

    def parse_full(self, text: str, template: PromptTemplate) -> dict[str, Any]:
        """Payload for /api/analyze-article-full."""
        data = self.extract_json(text)
        self.check_constraints(data, _validation(template))

        insights = data.get("insights") if isinstance(data.get("insights"), dict) else {}
        image = data.get("eyeCatchImage") if isinstance(data.get("eyeCatchImage"), dict) else {}
        virality = data.get("viralityScore") if isinstance(data.get("viralityScore"), dict) else {}
        reading = data.get("readingTime") if isinstance(data.get("readingTime"), dict) else {}
        rewrite = data.get("rewriteSuggestions") if isinstance(data.get("rewriteSuggestions"), dict) else {}
        money = data.get("monetization") if isinstance(data.get("monetization"), dict) else {}
        emotion = data.get("emotionalAnalysis") if isinstance(data.get("emotionalAnalysis"), dict) else {}
        tones = emotion.get("tones") if isinstance(emotion.get("tones"), dict) else {}
        audience = emotion.get("audienceFit") if isinstance(emotion.get("audienceFit"), list) else []

        titles = self._list(data.get("suggestedTitles"), MAX_TITLES, 100)
        if len(titles) < MAX_TITLES:
            logger.warning("Got %d titles (expected %d)", len(titles), MAX_TITLES)

        return {
            "suggestedTitles": titles,
            "insights": {
                "whatYouLearn": self._list(insights.get("whatYouLearn"), MAX_INSIGHTS, 200),
                "benefits": self._list(insights.get("benefits"), MAX_INSIGHTS, 200),
                "recommendedFor": self._list(insights.get("recommendedFor"), MAX_INSIGHTS, 200),
                "oneLiner": self._text(insights.get("oneLiner"), 100),
            },
            "eyeCatchImage": {
                "mainPrompt": self._text(image.get("mainPrompt"), 1000, DEFAULT_IMAGE_PROMPT),
                "compositionIdeas": self._list(image.get("compositionIdeas"), 3, 100)
                or list(DEFAULT_COMPOSITION_IDEAS),
                "colorPalette": self._list(image.get("colorPalette"), 4, 20) or list(DEFAULT_PALETTE),
                "mood": self._text(image.get("mood"), 50, "モダンでプロフェッショナル"),
                "style": self._text(image.get("style"), 50, "ミニマルモダン"),
                "summary": self._text(
                    image.get("summary"), MAX_SUMMARY_LENGTH, DEFAULT_IMAGE_SUMMARY
                ),
            },
            "hashtags": self.hashtags(data.get("hashtags")),
            "viralityScore": {
                "overall": self._score(virality.get("overall", 0)),
                "titleAppeal": self._score(virality.get("titleAppeal", 0)),
                "openingHook": self._score(virality.get("openingHook", 0)),
                "empathy": self._score(virality.get("empathy", 0)),
                "shareability": self._score(virality.get("shareability", 0)),
                "improvements": self._list(virality.get("improvements"), 5, 200),
            },
            "readingTime": {
                key: self._text(reading.get(key))
                for key in ("total", "introduction", "mainContent", "conclusion")
            },
            "rewriteSuggestions": {
                "originalTitle": self._text(rewrite.get("originalTitle")),
                "improvedTitles": self._objects(
                    rewrite.get("improvedTitles"), ("title", "reason", "expectedImprovement")
                ),
            },
            "seriesIdeas": self._objects(
                data.get("seriesIdeas"), ("title", "description", "targetAudience")
            ),
            "monetization": {
                "score": self._score(money.get("score", 0)),
                "recommendations": self._objects(
                    money.get("recommendations"),
                    ("method", "expectedRevenue", "difficulty", "description"),
                ),
            },
            "emotionalAnalysis": {
                "tones": {
                    key: self._score(tones.get(key, 0)) for key in ("positive", "analytical", "neutral")
                },
                "emotionalFlow": self._text(emotion.get("emotionalFlow")),
                "audienceFit": [
                    {"audience": self._text(item.get("audience")), "score": self._score(item.get("score", 0))}
                    for item in audience[:5]
                    if isinstance(item, dict)
                ],
            },
        }


def _validation(template: PromptTemplate) -> OutputValidation | None:
    return template.output_format.validation if template.output_format is not None else None
