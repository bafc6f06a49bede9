"""Hashtag generation prompt templates."""

from note_analysis.entities import (
    OutputFormat,
    OutputValidation,
    PromptCacheConfig,
    PromptExample,
    PromptMetadata,
    PromptPerformance,
    PromptTemplate,
)

HASHTAG_V1_JA = PromptTemplate(
    id="hashtag-generation-v1-ja",
    category="hashtag",
    version="v1",
    language="ja",
    system_prompt="""あなたはnote.com記事のハッシュタグ生成エキスパートです。以下のルールに従って正確に20個のハッシュタグを生成してください：

1. 必ず「#」で始める
2. 日本語を優先
3. note.comで検索されやすいタグを選ぶ
4. 一般的なタグと具体的なタグをバランスよく含める
5. 1行に1つずつ記載
6. 必ず20個生成

出力形式：
#タグ1
#タグ2
...
#タグ20""",
    user_prompt_template="記事テキスト：\n{{articleText}}\n\n20個のハッシュタグを生成してください。",
    variables=("articleText",),
    examples=(
        PromptExample(
            description="Technology article about AI",
            input={
                "articleText": "ChatGPTを使った効率的な仕事術について解説します。"
                "AIツールを活用することで、日々の業務が劇的に改善されます。"
            },
            expected_output="#AI\n#ChatGPT\n#仕事術\n#効率化\n#生産性向上\n...",
            tags=("technology", "ai"),
        ),
    ),
    metadata=PromptMetadata(
        author="System",
        created_at="2025-01-15T00:00:00Z",
        updated_at="2025-01-20T00:00:00Z",
        description="Production hashtag generation prompt with cost optimization",
        tags=("production", "optimized", "cached"),
        performance=PromptPerformance(
            avg_input_tokens=450,
            avg_output_tokens=120,
            success_rate=0.98,
            usage_count=1250,
            avg_response_time=1200,
            quality_score=4.5,
            last_updated="2025-01-20T00:00:00Z",
        ),
    ),
    output_format=OutputFormat(
        type="text",
        validation=OutputValidation(
            required=("hashtags",),
            min_length={"hashtags": 20},
            max_length={"hashtags": 20},
        ),
    ),
    caching=PromptCacheConfig(enabled=True, ttl=300, strategy="static"),
    max_tokens=500,
    temperature=0.7,
)

HASHTAG_V1_EN = PromptTemplate(
    id="hashtag-generation-v1-en",
    category="hashtag",
    version="v1",
    language="en",
    system_prompt="""You are a hashtag generation expert for note.com articles. Generate exactly 20 hashtags following these rules:

1. Always start with "#"
2. Prioritize Japanese hashtags (even for English content)
3. Choose tags that are searchable on note.com
4. Balance general and specific tags
5. One tag per line
6. Generate exactly 20 tags

Output format:
#tag1
#tag2
...
#tag20""",
    user_prompt_template="Article text:\n{{articleText}}\n\nGenerate 20 hashtags.",
    variables=("articleText",),
    metadata=PromptMetadata(
        author="System",
        created_at="2025-01-15T00:00:00Z",
        description="English variant of hashtag generation prompt",
        tags=("english", "production"),
    ),
    output_format=OutputFormat(type="text"),
    caching=PromptCacheConfig(enabled=True, ttl=300, strategy="static"),
    max_tokens=500,
    temperature=0.7,
)

HASHTAG_V2_JSON = PromptTemplate(
    id="hashtag-generation-v2-json",
    category="hashtag",
    version="v2",
    language="ja",
    system_prompt="""あなたはnote.com記事のハッシュタグ生成エキスパートです。記事を分析し、以下のJSON形式で20個のハッシュタグを返してください。

出力形式（JSON）：
{
  "hashtags": ["#タグ1", "#タグ2", ..., "#タグ20"],
  "categories": {
    "trending": ["#トレンドタグ1", ...],
    "niche": ["#ニッチタグ1", ...],
    "general": ["#一般タグ1", ...]
  },
  "confidence": 0.95
}

重要：
- JSON以外の説明は含めない
- 必ず有効なJSON形式で返す
- hashtagsには必ず20個のタグを含める""",
    user_prompt_template="記事テキスト：\n{{articleText}}\n\nJSON形式で20個のハッシュタグを生成してください。",
    variables=("articleText",),
    metadata=PromptMetadata(
        author="System",
        created_at="2025-01-20T00:00:00Z",
        description="JSON output variant for structured data",
        tags=("experimental", "json", "structured"),
    ),
    output_format=OutputFormat(
        type="json",
        fields=("hashtags", "categories", "confidence"),
        schema='{"hashtags": string[], "categories": {"trending": string[], '
        '"niche": string[], "general": string[]}, "confidence": number}',
    ),
    caching=PromptCacheConfig(enabled=True, ttl=300, strategy="static"),
    max_tokens=600,
    temperature=0.7,
)

HASHTAG_TEMPLATES = (HASHTAG_V1_JA, HASHTAG_V1_EN, HASHTAG_V2_JSON)
