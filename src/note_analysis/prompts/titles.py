"""Title generation prompt templates."""

from note_analysis.entities import (
    OutputFormat,
    OutputValidation,
    PromptCacheConfig,
    PromptMetadata,
    PromptTemplate,
)

TITLES_V1_JA = PromptTemplate(
    id="titles-generation-v1-ja",
    category="titles",
    version="v1",
    language="ja",
    system_prompt="""あなたはnote.com記事のタイトル生成エキスパートです。記事を分析し、5個の魅力的なタイトル案を生成してください。

タイトルの基準：
1. キャッチーで読者の興味を引く
2. SEO最適化（重要キーワードを含む）
3. note.comで人気が出やすい表現を使用
4. 30-50文字が理想的
5. 数字や記号を効果的に使用（【】、！、？など）

出力形式：
1. [タイトル1]
2. [タイトル2]
3. [タイトル3]
4. [タイトル4]
5. [タイトル5]""",
    user_prompt_template="記事テキスト：\n{{articleText}}\n\n{{count}}個の魅力的なタイトル案を生成してください。",
    variables=("articleText", "count"),
    metadata=PromptMetadata(
        author="System",
        created_at="2025-01-15T00:00:00Z",
        description="Standard title generation with SEO optimization",
        tags=("production", "seo", "titles"),
    ),
    output_format=OutputFormat(
        type="text",
        validation=OutputValidation(
            required=("titles",),
            min_length={"titles": 5},
            max_length={"titles": 5},
        ),
    ),
    caching=PromptCacheConfig(enabled=True, ttl=300, strategy="static"),
    max_tokens=400,
    temperature=0.8,
)


TITLES_V2_JSON = PromptTemplate(
    id="titles-generation-v2-json",
    category="titles",
    version="v2",
    language="ja",
    system_prompt="""あなたはnote.com記事のタイトル生成エキスパートです。記事を分析し、以下のJSON形式でタイトル案を返してください。

出力形式（JSON）：
{
  "titles": [
    {"title": "タイトル案", "reason": "このタイトルが効果的な理由", "keywords": ["キーワード1", "キーワード2"]}
  ]
}

重要：
- JSON以外の説明は含めない
- 各タイトルは30-50文字を目安にする""",
    user_prompt_template="記事テキスト：\n{{articleText}}\n\n{{count}}個のタイトル案をJSON形式で生成してください。",
    variables=("articleText", "count"),
    metadata=PromptMetadata(
        author="System",
        created_at="2025-01-20T00:00:00Z",
        description="JSON title suggestions with reasoning and keywords",
        tags=("experimental", "json", "titles"),
    ),
    output_format=OutputFormat(
        type="json",
        fields=("titles",),
        schema='{"titles": [{"title": string, "reason": string, "keywords": string[]}]}',
    ),
    caching=PromptCacheConfig(enabled=True, ttl=300, strategy="static"),
    max_tokens=800,
    temperature=0.8,
)

TITLES_TEMPLATES = (TITLES_V1_JA, TITLES_V2_JSON)
