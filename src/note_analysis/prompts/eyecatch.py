"""Eye-catch image suggestion prompt templates."""

from note_analysis.entities import (
    OutputFormat,
    OutputValidation,
    PromptCacheConfig,
    PromptMetadata,
    PromptTemplate,
)

EYECATCH_V1_JA = PromptTemplate(
    id="eyecatch-generation-v1-ja",
    category="eyecatch",
    version="v1",
    language="ja",
    system_prompt="""あなたはnote.com記事のアイキャッチ画像提案エキスパートです。記事を分析し、以下の3つを生成してください：

1. IMAGE_PROMPT: DALL-E用の詳細な英語プロンプト（1-2文、具体的な視覚要素・色・スタイル・雰囲気を含む）
2. COMPOSITION_IDEAS: 代替構成案（日本語、3-5個、各1文、色・ムード・スタイルを含む）
3. SUMMARY: 記事要約（日本語、100文字以内）

出力形式：
---IMAGE_PROMPT---
[英語プロンプト]
---COMPOSITION_IDEAS---
[構成案1]
[構成案2]
[構成案3]
---SUMMARY---
[要約]""",
    user_prompt_template="記事テキスト：\n{{articleText}}",
    variables=("articleText",),
    metadata=PromptMetadata(
        author="System",
        created_at="2025-01-15T00:00:00Z",
        updated_at="2025-01-20T00:00:00Z",
        description="Production eye-catch generation with structured output",
        tags=("production", "optimized", "cached"),
    ),
    output_format=OutputFormat(
        type="structured",
        fields=("imagePrompt", "compositionIdeas", "summary"),
        validation=OutputValidation(
            required=("imagePrompt", "compositionIdeas", "summary"),
            max_length={"summary": 100},
        ),
    ),
    caching=PromptCacheConfig(enabled=True, ttl=300, strategy="static"),
    max_tokens=800,
    temperature=0.7,
)

EYECATCH_V2_JSON = PromptTemplate(
    id="eyecatch-generation-v2-json",
    category="eyecatch",
    version="v2",
    language="ja",
    system_prompt="""あなたはnote.com記事のアイキャッチ画像提案エキスパートです。記事を分析し、以下のJSON形式で画像提案を返してください。

出力形式（JSON）：
{
  "mainPrompt": "詳細な英語画像生成プロンプト（DALL-E/Midjourney用）",
  "compositionIdeas": ["構図案1", "構図案2", "構図案3"],
  "colorPalette": ["#HEX1", "#HEX2", "#HEX3", "#HEX4"],
  "mood": "雰囲気を表す言葉",
  "style": "アートスタイル（例：ミニマルモダン、水彩画風、3Dレンダリング）",
  "summary": "記事要約（100文字以内）"
}

重要：
- JSON以外の説明は含めない
- colorPaletteは必ず4色のHEXコードで
- summaryは100文字以内""",
    user_prompt_template="記事テキスト：\n{{articleText}}",
    variables=("articleText",),
    metadata=PromptMetadata(
        author="System",
        created_at="2025-01-20T00:00:00Z",
        description="Enhanced JSON format with color palette and metadata",
        tags=("experimental", "json", "enhanced"),
    ),
    output_format=OutputFormat(
        type="json",
        fields=("mainPrompt", "compositionIdeas", "colorPalette", "mood", "style", "summary"),
        validation=OutputValidation(
            required=("mainPrompt", "compositionIdeas", "colorPalette", "summary"),
            max_length={"summary": 100},
        ),
    ),
    caching=PromptCacheConfig(enabled=True, ttl=300, strategy="static"),
    max_tokens=900,
    temperature=0.8,
)

EYECATCH_TEMPLATES = (EYECATCH_V1_JA, EYECATCH_V2_JSON)
